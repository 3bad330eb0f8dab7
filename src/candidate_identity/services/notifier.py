"""Best-effort notifications sent after identity changes are committed."""

from __future__ import annotations

import logging

from candidate_identity.errors import DeliveryError
from candidate_identity.models.candidate import Candidate
from candidate_identity.services.email_service import EmailService

logger = logging.getLogger(__name__)


class MergeNotifier:
    """Emails an administrator when an OTP merge moves a sign-in binding.

    Delivery is at-most-once: failures are logged and never undo the merge.
    """

    def __init__(self, email_service: EmailService, admin_email: str = "") -> None:
        self._email = email_service
        self._admin_email = admin_email

    async def profile_merged(self, candidate: Candidate, subject_id: str, via: str) -> None:
        if not self._admin_email or not self._email.is_configured:
            logger.debug("Merge notice for candidate %s skipped (not configured)", candidate.id)
            return
        try:
            await self._email.send_relink_notice(
                self._admin_email, candidate.email, subject_id, via
            )
        except DeliveryError:
            logger.warning(
                "Merge notice for candidate %s (subject %s) was not delivered",
                candidate.id,
                subject_id,
            )
