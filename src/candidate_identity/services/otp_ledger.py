"""In-memory ledger of pending one-time codes with expiry."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from candidate_identity.errors import ChallengeError, ChallengeFailure

logger = logging.getLogger(__name__)

# OTP validity period in seconds
OTP_TTL_SECONDS = 600  # 10 minutes


@dataclass(frozen=True)
class PendingOtp:
    code: str
    expires_at: float


class OtpLedger:
    """Lock-guarded in-memory OTP ledger.

    Each entry maps ``contact → PendingOtp``; at most one code is pending
    per contact. Expired entries are purged lazily on access, or in bulk by
    :meth:`purge_expired`. Nothing is persisted: a restart drops every
    pending code.

    Parameters
    ----------
    ttl_seconds:
        Lifetime of a freshly stored code.
    clock:
        Returns the current time in seconds; injectable for tests.
    """

    def __init__(
        self,
        ttl_seconds: float = OTP_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, PendingOtp] = {}
        self._lock = threading.Lock()

    def put(self, contact: str, code: str) -> PendingOtp:
        """Store *code* for *contact*, replacing any pending code."""
        entry = PendingOtp(code=code, expires_at=self._clock() + self._ttl)
        with self._lock:
            replaced = contact in self._entries
            self._entries[contact] = entry
        if replaced:
            logger.debug("Replaced pending OTP for %s", contact)
        return entry

    def consume(self, contact: str, code: str) -> None:
        """Check *code* against the pending entry and delete it on a match.

        The lookup, expiry check and delete happen under one lock so two
        concurrent submissions of the right code cannot both succeed.

        Raises ``ChallengeError`` with reason ``NOT_FOUND`` (never issued or
        already used), ``EXPIRED`` (entry purged) or ``INVALID`` (entry kept
        so the caller may retry before expiry).
        """
        with self._lock:
            entry = self._entries.get(contact)
            if entry is None:
                raise ChallengeError(ChallengeFailure.NOT_FOUND)
            if self._clock() > entry.expires_at:
                del self._entries[contact]
                logger.info("OTP expired for %s", contact)
                raise ChallengeError(ChallengeFailure.EXPIRED)
            if entry.code != code:
                raise ChallengeError(ChallengeFailure.INVALID)
            del self._entries[contact]

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        now = self._clock()
        with self._lock:
            stale = [c for c, e in self._entries.items() if now > e.expires_at]
            for contact in stale:
                del self._entries[contact]
        if stale:
            logger.debug("Purged %d expired OTP(s)", len(stale))
        return len(stale)

    def __contains__(self, contact: str) -> bool:
        with self._lock:
            return contact in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
