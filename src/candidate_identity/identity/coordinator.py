"""Profile link coordinator — the public identity operations.

Each operation validates its input, asks :class:`IdentityResolver` what to
do, then commits the decision through :class:`CandidateRepository`. OTP
issuance and redemption are delegated to :class:`OtpChallengeService`.
Nothing is retried here: a uniqueness violation is reported to the caller,
who starts a fresh resolution.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from candidate_identity.database.repository import CandidateRepository
from candidate_identity.errors import (
    ConflictError,
    ConflictKind,
    IdentityProviderUnavailableError,
    ProfileNotFoundError,
    ProfileNotLinkedError,
    ValidationError,
)
from candidate_identity.identity.assertion import IdentityAssertion
from candidate_identity.identity.resolver import IdentityResolver, Outcome
from candidate_identity.identity.validation import (
    RegistrationInput,
    is_profile_complete,
    is_valid_name,
    require_profile_phone,
    validate_registration,
)
from candidate_identity.models.candidate import Candidate
from candidate_identity.services.identity_provider import FirebaseIdentityProvider
from candidate_identity.services.notifier import MergeNotifier
from candidate_identity.services.otp_challenge import Channel, OtpChallengeService

logger = logging.getLogger(__name__)

# Profile fields a bound candidate may edit, with their numeric bounds
TEXT_FIELDS = ("address", "city", "state", "degree")
SCORE_BOUNDS = {
    "tenth_percentage": (0.0, 100.0),
    "twelfth_percentage": (0.0, 100.0),
    "degree_cgpa": (0.0, 10.0),
}


@dataclass(frozen=True)
class LinkResult:
    registered: bool
    candidate_id: int | None = None


class ProfileLinkCoordinator:
    """Orchestrates registration, linking and OTP merges for one request.

    Parameters
    ----------
    repository:
        Store access bound to the request's database session.
    otp_service:
        Shared OTP service (its ledger outlives the request).
    region:
        Phone region used for profile phone validation.
    notifier:
        Optional best-effort notifier invoked after a merge commits.
    identity_provider:
        Needed only for email-code sign-in.
    """

    def __init__(
        self,
        repository: CandidateRepository,
        otp_service: OtpChallengeService,
        region: str | None = None,
        notifier: MergeNotifier | None = None,
        identity_provider: FirebaseIdentityProvider | None = None,
    ) -> None:
        self._repo = repository
        self._resolver = IdentityResolver(repository)
        self._otp = otp_service
        self._region = region
        self._notifier = notifier
        self._provider = identity_provider

    # ── Registration ─────────────────────────────────────

    async def registration_status(self, subject_id: str) -> bool:
        """Return whether the caller's bound profile is complete."""
        candidate = await self._repo.find_by_subject(subject_id)
        return is_profile_complete(candidate, self._region)

    async def register(
        self,
        assertion: IdentityAssertion,
        first_name: str | None,
        last_name: str | None,
        email: str | None,
        phone: str | None,
    ) -> int:
        """Register a new profile or complete the caller's existing one.

        Returns the candidate id. Raises ``ValidationError`` for bad input
        and ``ConflictError`` when the phone or email belongs to a profile
        bound to another sign-in; neither touches the store.
        """
        data = validate_registration(first_name, last_name, email, phone, self._region)
        subject_id = assertion.subject_id
        resolution = await self._resolver.resolve_registration(subject_id, data, assertion.email)

        if resolution.outcome is Outcome.CONFLICT:
            logger.info(
                "Registration for %s blocked: %s %s belongs to candidate %s",
                subject_id,
                resolution.conflict.value,
                data.phone if resolution.conflict is ConflictKind.PHONE else data.email,
                resolution.candidate_id,
            )
            raise ConflictError(resolution.conflict)

        if resolution.outcome is Outcome.CREATE_PROFILE:
            candidate = Candidate(external_subject_id=subject_id)
            self._apply_registration(candidate, data)
            self._repo.add(candidate)
        else:
            candidate = resolution.profile
            previous = candidate.external_subject_id
            self._apply_registration(candidate, data)
            candidate.external_subject_id = subject_id
            if previous is not None and previous != subject_id:
                logger.info(
                    "Re-linking candidate %s from %s to provider-verified %s",
                    candidate.id,
                    previous,
                    subject_id,
                )

        await self._repo.commit()
        logger.info(
            "Registration for %s committed as %s (candidate %s)",
            subject_id,
            resolution.outcome.value,
            candidate.id,
        )
        return candidate.id

    @staticmethod
    def _apply_registration(candidate: Candidate, data: RegistrationInput) -> None:
        candidate.first_name = data.first_name
        candidate.last_name = data.last_name
        candidate.email = data.email
        candidate.phone = data.phone

    # ── Link only ────────────────────────────────────────

    async def link(self, assertion: IdentityAssertion) -> LinkResult:
        """Attach the caller to an unbound profile matching its verified contacts."""
        resolution = await self._resolver.resolve_link_only(
            assertion.subject_id, assertion.email, assertion.phone
        )
        if resolution.outcome is Outcome.NOT_REGISTERED:
            logger.info("Link for %s: not registered yet", assertion.subject_id)
            return LinkResult(registered=False)

        candidate = resolution.profile
        if resolution.outcome is Outcome.SILENT_RELINK:
            candidate.external_subject_id = assertion.subject_id
            await self._repo.commit()
            logger.info("Linked %s to candidate %s (%s)", assertion.subject_id, candidate.id, resolution.rule)
        return LinkResult(registered=True, candidate_id=candidate.id)

    # ── OTP ──────────────────────────────────────────────

    async def send_otp(self, contact: str | None, channel: Channel) -> str:
        return await self._otp.issue(contact, channel)

    async def verify_and_merge(
        self,
        assertion: IdentityAssertion,
        contact: str | None,
        code: str | None,
        channel: Channel,
    ) -> int:
        """Redeem an OTP and move the contact's profile onto the caller.

        This is the only operation that takes a binding away from another
        sign-in, and only after the caller proved the contact. Any other
        profile still bound to the caller is released first so the subject
        id stays unique.
        """
        normalized = self._otp.verify_and_consume(contact, code, channel)
        if channel is Channel.EMAIL:
            candidate = await self._repo.find_by_email(normalized)
            label = "email"
        else:
            candidate = await self._repo.find_by_phone(normalized)
            label = "phone"
        if candidate is None:
            logger.info("Merge for %s: no candidate owns %s", assertion.subject_id, normalized)
            raise ProfileNotFoundError(f"No candidate profile found for this {label}")

        subject_id = assertion.subject_id
        if candidate.external_subject_id == subject_id:
            return candidate.id

        current = await self._repo.find_by_subject(subject_id)
        if current is not None:
            current.external_subject_id = None
            await self._repo.flush()
            logger.info("Released candidate %s from %s before merge", current.id, subject_id)

        previous = candidate.external_subject_id
        candidate.external_subject_id = subject_id
        await self._repo.commit()
        logger.info(
            "Merged candidate %s into %s after %s verification (was %s)",
            candidate.id,
            subject_id,
            label,
            previous,
        )

        if self._notifier is not None:
            await self._notifier.profile_merged(candidate, subject_id, label)
        return candidate.id

    async def sign_in_with_email_code(self, email: str | None, code: str | None) -> str:
        """Exchange an emailed code for an identity-provider sign-in token."""
        if self._provider is None or not self._provider.is_configured:
            raise IdentityProviderUnavailableError("Firebase auth not configured")
        normalized = self._otp.verify_and_consume(email, code, Channel.EMAIL)
        token = await self._provider.custom_token_for_email(normalized)
        logger.info("Issued sign-in token for %s", normalized)
        return token

    # ── Profile ──────────────────────────────────────────

    async def get_profile(self, subject_id: str) -> Candidate:
        candidate = await self._repo.find_by_subject(subject_id)
        if candidate is None:
            logger.info("No candidate linked for %s", subject_id)
            raise ProfileNotLinkedError()
        return candidate

    async def update_profile(self, subject_id: str, changes: dict[str, Any]) -> Candidate:
        """Apply a partial update to the caller's bound profile.

        Email and sign-in binding are not editable here; they change only
        through registration or an OTP merge. Empty score values clear the
        score.
        """
        candidate = await self.get_profile(subject_id)
        updates = self._validated_updates(changes)
        for key, value in updates.items():
            setattr(candidate, key, value)
        await self._repo.commit()
        logger.info("Candidate %s updated fields %s", candidate.id, sorted(updates))
        return candidate

    def _validated_updates(self, changes: dict[str, Any]) -> dict[str, Any]:
        updates: dict[str, Any] = {}
        for key in ("first_name", "last_name"):
            if changes.get(key) is not None:
                if not is_valid_name(changes[key]):
                    raise ValidationError(key, "Name must be at least 2 characters")
                updates[key] = changes[key].strip()
        if changes.get("phone") is not None:
            updates["phone"] = require_profile_phone(changes["phone"], self._region)
        for key in TEXT_FIELDS:
            if changes.get(key) is not None:
                updates[key] = str(changes[key]).strip() or None
        for key, (low, high) in SCORE_BOUNDS.items():
            if key in changes and changes[key] is not None:
                updates[key] = _score(key, changes[key], low, high)
        return updates


def _score(field: str, value: Any, low: float, high: float) -> float | None:
    if value == "":
        return None
    try:
        score = float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(field, f"{field} must be a number") from exc
    if not low <= score <= high:
        raise ValidationError(field, f"{field} must be between {low:g} and {high:g}")
    return score
