"""SMS service — async HTTP client for the Twilio Messages API.

Phone numbers are stored as digits including the country code, so the
E.164 form is simply ``+`` followed by the digits.
"""

from __future__ import annotations

import logging

import httpx

from candidate_identity.config import Settings, settings
from candidate_identity.errors import DeliveryError

logger = logging.getLogger(__name__)


class SmsService:
    """Async HTTP wrapper around Twilio's REST API."""

    channel = "sms"

    def __init__(
        self,
        config: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or settings
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._config.sms_configured

    async def send_code(self, phone_digits: str, code: str) -> None:
        """Text a verification code to *phone_digits*.

        Raises ``DeliveryError`` unless Twilio accepts the message.
        """
        cfg = self._config
        url = (
            f"{cfg.twilio_api_base_url.rstrip('/')}/Accounts/"
            f"{cfg.twilio_account_sid}/Messages.json"
        )
        payload = {
            "To": f"+{phone_digits}",
            "From": cfg.twilio_phone_number,
            "Body": (
                f"Your verification code is: {code}. "
                f"It expires in {cfg.otp_ttl_minutes} minutes."
            ),
        }
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=cfg.outbound_timeout_seconds
            ) as client:
                resp = await client.post(
                    url,
                    data=payload,
                    auth=(cfg.twilio_account_sid, cfg.twilio_auth_token),
                )
        except httpx.HTTPError as exc:
            logger.exception("SMS request error for %s: %s", phone_digits, exc)
            raise DeliveryError(self.channel) from exc

        if resp.status_code not in (200, 201):
            logger.error("SMS send failed for %s: %s %s", phone_digits, resp.status_code, resp.text)
            raise DeliveryError(self.channel)

        try:
            sid = resp.json().get("sid")
        except ValueError:
            sid = None
            logger.warning("SMS accepted for %s with unreadable body: %s", phone_digits, resp.text)
        logger.info("SMS accepted for %s (sid=%s)", phone_digits, sid)
