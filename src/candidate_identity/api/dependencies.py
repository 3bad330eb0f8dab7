"""Request dependencies — shared services and per-request wiring."""

from __future__ import annotations

import logging

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from candidate_identity.config import settings
from candidate_identity.database.engine import get_session
from candidate_identity.database.repository import CandidateRepository
from candidate_identity.errors import AuthenticationError
from candidate_identity.identity.assertion import IdentityAssertion
from candidate_identity.identity.coordinator import ProfileLinkCoordinator
from candidate_identity.services.email_service import EmailService
from candidate_identity.services.identity_provider import FirebaseIdentityProvider
from candidate_identity.services.notifier import MergeNotifier
from candidate_identity.services.otp_challenge import Channel, OtpChallengeService
from candidate_identity.services.otp_ledger import OtpLedger
from candidate_identity.services.sms_service import SmsService

logger = logging.getLogger(__name__)

# ── Shared instances (created once, reused across requests) ──
otp_ledger = OtpLedger(ttl_seconds=settings.otp_ttl_minutes * 60)
_email_service = EmailService()
_otp_service = OtpChallengeService(
    otp_ledger,
    {Channel.EMAIL: _email_service, Channel.SMS: SmsService()},
    region=settings.phone_region,
)
_identity_provider = FirebaseIdentityProvider()
_notifier = MergeNotifier(_email_service, settings.admin_notify_email)


def get_otp_service() -> OtpChallengeService:
    return _otp_service


def get_identity_provider() -> FirebaseIdentityProvider:
    return _identity_provider


def get_notifier() -> MergeNotifier:
    return _notifier


def get_coordinator(
    session: AsyncSession = Depends(get_session),
    otp_service: OtpChallengeService = Depends(get_otp_service),
    notifier: MergeNotifier = Depends(get_notifier),
    provider: FirebaseIdentityProvider = Depends(get_identity_provider),
) -> ProfileLinkCoordinator:
    return ProfileLinkCoordinator(
        CandidateRepository(session),
        otp_service,
        region=settings.phone_region,
        notifier=notifier,
        identity_provider=provider,
    )


async def get_identity(
    authorization: str | None = Header(default=None),
    provider: FirebaseIdentityProvider = Depends(get_identity_provider),
) -> IdentityAssertion:
    """Verify the bearer ID token and return the caller's identity."""
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("No Bearer token in Authorization header")
        raise AuthenticationError("Access denied. No token provided.")

    token = authorization[len("Bearer "):].strip()
    if not token:
        logger.warning("Empty token after Bearer prefix")
        raise AuthenticationError("Access denied. Invalid token.")

    return await provider.verify(token)
