"""Email service — sends verification codes and notices via async SMTP."""

from __future__ import annotations

import logging
from email.message import EmailMessage

import aiosmtplib

from candidate_identity.config import Settings, settings
from candidate_identity.errors import DeliveryError

logger = logging.getLogger(__name__)


class EmailService:
    """Sends transactional emails using the configured SMTP server."""

    channel = "email"

    def __init__(self, config: Settings | None = None) -> None:
        self._config = config or settings

    @property
    def is_configured(self) -> bool:
        return self._config.email_configured

    async def send_code(self, to_email: str, code: str) -> None:
        """Send a one-time sign-in code.

        Raises ``DeliveryError`` if the SMTP server does not accept it.
        """
        minutes = self._config.otp_ttl_minutes
        msg = self._build(
            to_email,
            subject="Your sign-in code",
            body=(
                f"Your one-time sign-in code is: {code}\n\n"
                f"It expires in {minutes} minutes. If you didn't request this, "
                "you can ignore this email."
            ),
        )
        msg.add_alternative(
            f"<p>Your one-time sign-in code is: <strong>{code}</strong></p>"
            f"<p>It expires in {minutes} minutes. If you didn't request this, "
            "you can ignore this email.</p>",
            subtype="html",
        )
        logger.info("Sending verification code email to %s", to_email)
        await self._deliver(msg, to_email)

    async def send_relink_notice(
        self, to_email: str, candidate_email: str, subject_id: str, via: str
    ) -> None:
        """Tell an administrator that a profile was re-linked by an OTP merge.

        Parameters
        ----------
        to_email:
            Administrator address.
        candidate_email:
            Email of the merged profile.
        subject_id:
            The identity-provider subject the profile is now bound to.
        via:
            Contact channel the caller proved (``email`` or ``phone``).
        """
        msg = self._build(
            to_email,
            subject=f"Candidate account merged — {self._config.app_name}",
            body=(
                f"The candidate profile {candidate_email} was merged into sign-in "
                f"{subject_id} after {via} verification.\n\n"
                "No action is needed unless the candidate did not request this."
            ),
        )
        logger.info("Sending relink notice for %s to %s", candidate_email, to_email)
        await self._deliver(msg, to_email)

    def _build(self, to_email: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._config.email_from
        msg["To"] = to_email
        msg.set_content(body)
        return msg

    async def _deliver(self, msg: EmailMessage, to_email: str) -> None:
        try:
            await aiosmtplib.send(
                msg,
                hostname=self._config.smtp_host,
                port=self._config.smtp_port,
                username=self._config.smtp_username or None,
                password=self._config.smtp_password or None,
                start_tls=True,
                timeout=self._config.outbound_timeout_seconds,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("Email to %s failed: %s", to_email, exc)
            raise DeliveryError(self.channel) from exc

        logger.info("Email sent to %s", to_email)
