"""Candidate repository — data access layer for profile lookups and commits."""

from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from candidate_identity.errors import StoreConstraintError
from candidate_identity.models.candidate import Candidate

logger = logging.getLogger(__name__)

_CONSTRAINED_FIELDS = ("external_subject_id", "email")


class CandidateRepository:
    """Encapsulates all database queries related to candidates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, candidate_id: int) -> Candidate | None:
        return await self._session.get(Candidate, candidate_id)

    async def find_by_subject(self, subject_id: str) -> Candidate | None:
        """Look up the profile currently bound to *subject_id*."""
        stmt = select(Candidate).where(Candidate.external_subject_id == subject_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_email(self, email: str) -> Candidate | None:
        """Look up a profile by its normalized (lowercase, trimmed) email."""
        stmt = select(Candidate).where(Candidate.email == email)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_phone(self, digits: str) -> Candidate | None:
        """Look up a profile by phone digits.

        Older rows may hold the ``+``-prefixed form and phone is not
        constrained unique, so both forms are matched and the oldest row
        wins.
        """
        stmt = (
            select(Candidate)
            .where(or_(Candidate.phone == digits, Candidate.phone == f"+{digits}"))
            .order_by(Candidate.id)
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def add(self, candidate: Candidate) -> None:
        self._session.add(candidate)

    async def flush(self) -> None:
        """Flush pending changes so later statements see them in order."""
        await self._guard(self._session.flush())

    async def commit(self) -> None:
        """Commit pending changes, translating uniqueness violations.

        On a constraint violation the whole transaction is rolled back so no
        partial write survives.
        """
        await self._guard(self._session.commit())

    async def _guard(self, operation) -> None:
        try:
            await operation
        except IntegrityError as exc:
            await self._session.rollback()
            field = _constrained_field(exc)
            logger.warning("Uniqueness violation on candidates.%s", field)
            raise StoreConstraintError(field) from exc


def _constrained_field(exc: IntegrityError) -> str | None:
    text = str(exc.orig)
    for field in _CONSTRAINED_FIELDS:
        if field in text:
            return field
    return None
