"""OTP challenge service — issues, dispatches and redeems one-time codes."""

from __future__ import annotations

import logging
import secrets
from enum import Enum
from typing import Protocol

from candidate_identity.errors import ChallengeError, ChannelUnavailableError
from candidate_identity.identity.validation import (
    require_contact_phone,
    require_email,
    require_otp_code,
)
from candidate_identity.services.otp_ledger import OtpLedger

logger = logging.getLogger(__name__)

CODE_SPACE = 1_000_000  # 000000-999999


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class OtpSender(Protocol):
    """Delivery collaborator for one channel."""

    @property
    def is_configured(self) -> bool: ...

    async def send_code(self, contact: str, code: str) -> None: ...


# (status, message) when a channel has no credentials
_UNAVAILABLE = {
    Channel.EMAIL: (
        503,
        "Email is not configured. Set SMTP_HOST and EMAIL_FROM in .env",
    ),
    Channel.SMS: (
        501,
        "SMS is not configured. Sign in with that phone number from the login "
        "page instead, or use a different number.",
    ),
}


def generate_code() -> str:
    return f"{secrets.randbelow(CODE_SPACE):06d}"


def normalize_contact(contact: str | None, channel: Channel, region: str | None = None) -> str:
    """Normalize *contact* into the ledger key for *channel*."""
    if channel is Channel.EMAIL:
        return require_email(contact)
    return require_contact_phone(contact, region)


class OtpChallengeService:
    """Issues codes into an :class:`OtpLedger` and verifies them.

    Parameters
    ----------
    ledger:
        Where pending codes live. Owned by the caller so its lifetime is
        explicit.
    senders:
        Delivery collaborator per channel. A missing or unconfigured sender
        makes that channel unavailable.
    region:
        Phone region used to complete 10-digit national numbers.
    """

    def __init__(
        self,
        ledger: OtpLedger,
        senders: dict[Channel, OtpSender],
        region: str | None = None,
    ) -> None:
        self._ledger = ledger
        self._senders = senders
        self._region = region

    def is_available(self, channel: Channel) -> bool:
        sender = self._senders.get(channel)
        return sender is not None and sender.is_configured

    async def issue(self, contact: str | None, channel: Channel) -> str:
        """Generate a code for *contact*, store it and send it.

        Returns the normalized contact. Raises ``ValidationError`` for a bad
        contact, ``ChannelUnavailableError`` when the channel has no
        credentials and ``DeliveryError`` when the sender refuses the message.
        If delivery fails the stored code stays behind; it cannot be redeemed
        without the undelivered code and the next issue overwrites it.
        """
        normalized = normalize_contact(contact, channel, self._region)
        if not self.is_available(channel):
            status, message = _UNAVAILABLE[channel]
            logger.warning("OTP requested for %s but %s is not configured", normalized, channel.value)
            raise ChannelUnavailableError(channel.value, message, status)

        code = generate_code()
        self._ledger.put(normalized, code)
        await self._senders[channel].send_code(normalized, code)
        logger.info("OTP issued to %s via %s", normalized, channel.value)
        return normalized

    def verify_and_consume(self, contact: str | None, code: str | None, channel: Channel) -> str:
        """Redeem *code* for *contact*; returns the normalized contact.

        Raises ``ValidationError`` for malformed input and ``ChallengeError``
        when the code is missing, expired or wrong. A successful call
        deletes the code, so it works exactly once.
        """
        normalized = normalize_contact(contact, channel, self._region)
        entered = require_otp_code(code)
        try:
            self._ledger.consume(normalized, entered)
        except ChallengeError as exc:
            logger.info("OTP verification failed for %s: %s", normalized, exc.reason.value)
            raise
        logger.info("OTP verified for %s", normalized)
        return normalized
