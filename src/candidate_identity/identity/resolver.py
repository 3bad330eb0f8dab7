"""Identity resolver — decides how a sign-in relates to existing profiles.

The resolver only reads. It gathers the profiles matching the caller's
subject id, phone and email, then walks an ordered rule table; the first
rule whose predicate holds decides the outcome. The order is part of the
contract: a phone bound to someone else is reported before an email bound
to someone else.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from candidate_identity.database.repository import CandidateRepository
from candidate_identity.errors import ConflictKind
from candidate_identity.identity.validation import RegistrationInput, normalize_email
from candidate_identity.models.candidate import Candidate

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    UPDATE_PROFILE = "update_profile"
    CREATE_PROFILE = "create_profile"
    SILENT_RELINK = "silent_relink"
    CONFLICT = "conflict"
    ALREADY_LINKED = "already_linked"
    NOT_REGISTERED = "not_registered"


@dataclass(frozen=True)
class Resolution:
    """Tagged decision plus the profile it applies to, if any."""

    outcome: Outcome
    profile: Candidate | None = None
    conflict: ConflictKind | None = None
    rule: str = ""

    @property
    def candidate_id(self) -> int | None:
        return self.profile.id if self.profile is not None else None


@dataclass(frozen=True)
class Facts:
    """Read-only snapshot the rules are evaluated against."""

    subject_id: str
    by_subject: Candidate | None = None
    by_email: Candidate | None = None
    by_phone: Candidate | None = None
    vouched_email: str | None = None


@dataclass(frozen=True)
class Rule:
    name: str
    applies: Callable[[Facts], bool]
    decide: Callable[[Facts], Resolution]


def bound_elsewhere(profile: Candidate | None, subject_id: str) -> bool:
    return (
        profile is not None
        and profile.external_subject_id is not None
        and profile.external_subject_id != subject_id
    )


def unbound(profile: Candidate | None) -> bool:
    return profile is not None and profile.external_subject_id is None


def _email_vouched(f: Facts) -> bool:
    return f.vouched_email is not None and f.vouched_email == normalize_email(f.by_email.email)


REGISTRATION_RULES: tuple[Rule, ...] = (
    Rule(
        "subject-bound",
        lambda f: f.by_subject is not None,
        lambda f: Resolution(Outcome.UPDATE_PROFILE, f.by_subject),
    ),
    Rule(
        "phone-bound-elsewhere",
        lambda f: bound_elsewhere(f.by_phone, f.subject_id),
        lambda f: Resolution(Outcome.CONFLICT, f.by_phone, ConflictKind.PHONE),
    ),
    Rule(
        "email-bound-elsewhere-vouched",
        lambda f: bound_elsewhere(f.by_email, f.subject_id) and _email_vouched(f),
        lambda f: Resolution(Outcome.SILENT_RELINK, f.by_email),
    ),
    Rule(
        "email-bound-elsewhere",
        lambda f: bound_elsewhere(f.by_email, f.subject_id),
        lambda f: Resolution(Outcome.CONFLICT, f.by_email, ConflictKind.EMAIL),
    ),
    Rule(
        "email-unbound",
        lambda f: unbound(f.by_email),
        lambda f: Resolution(Outcome.SILENT_RELINK, f.by_email),
    ),
    Rule(
        "phone-unbound",
        lambda f: unbound(f.by_phone),
        lambda f: Resolution(Outcome.SILENT_RELINK, f.by_phone),
    ),
    Rule(
        "no-match",
        lambda f: True,
        lambda f: Resolution(Outcome.CREATE_PROFILE),
    ),
)

LINK_RULES: tuple[Rule, ...] = (
    Rule(
        "subject-bound",
        lambda f: f.by_subject is not None,
        lambda f: Resolution(Outcome.ALREADY_LINKED, f.by_subject),
    ),
    Rule(
        "email-unbound",
        lambda f: unbound(f.by_email),
        lambda f: Resolution(Outcome.SILENT_RELINK, f.by_email),
    ),
    Rule(
        "phone-unbound",
        lambda f: unbound(f.by_phone),
        lambda f: Resolution(Outcome.SILENT_RELINK, f.by_phone),
    ),
    Rule(
        "no-match",
        lambda f: True,
        lambda f: Resolution(Outcome.NOT_REGISTERED),
    ),
)


def evaluate(rules: tuple[Rule, ...], facts: Facts) -> Resolution:
    """Return the decision of the first rule that applies."""
    for rule in rules:
        if rule.applies(facts):
            return replace(rule.decide(facts), rule=rule.name)
    raise LookupError("rule table has no fallback rule")


class IdentityResolver:
    """Decides create / attach / challenge for a verified identity."""

    def __init__(self, repository: CandidateRepository) -> None:
        self._repo = repository

    async def resolve_registration(
        self,
        subject_id: str,
        candidate: RegistrationInput,
        asserted_email: str | None = None,
    ) -> Resolution:
        """Resolve a register / complete-profile request.

        Parameters
        ----------
        subject_id:
            The caller's verified subject id.
        candidate:
            Validated registration payload.
        asserted_email:
            Email the identity provider itself verified for the caller, if
            any. Only this email may take over a profile bound elsewhere
            without an OTP challenge.
        """
        facts = Facts(
            subject_id=subject_id,
            by_subject=await self._repo.find_by_subject(subject_id),
            by_phone=await self._repo.find_by_phone(candidate.phone),
            by_email=await self._repo.find_by_email(candidate.email),
            vouched_email=normalize_email(asserted_email) or None,
        )
        resolution = evaluate(REGISTRATION_RULES, facts)
        logger.debug(
            "Registration for %s resolved to %s by rule %s (candidate=%s)",
            subject_id,
            resolution.outcome.value,
            resolution.rule,
            resolution.candidate_id,
        )
        return resolution

    async def resolve_link_only(
        self,
        subject_id: str,
        asserted_email: str | None,
        asserted_phone: str | None,
    ) -> Resolution:
        """Resolve an "attach me if I already exist" request.

        Only unbound profiles are attached; anything else that is not
        already linked reports ``NOT_REGISTERED`` so the caller can route
        to registration.
        """
        facts = Facts(
            subject_id=subject_id,
            by_subject=await self._repo.find_by_subject(subject_id),
            by_email=await self._repo.find_by_email(asserted_email) if asserted_email else None,
            by_phone=await self._repo.find_by_phone(asserted_phone) if asserted_phone else None,
        )
        resolution = evaluate(LINK_RULES, facts)
        logger.debug(
            "Link for %s resolved to %s by rule %s (candidate=%s)",
            subject_id,
            resolution.outcome.value,
            resolution.rule,
            resolution.candidate_id,
        )
        return resolution
