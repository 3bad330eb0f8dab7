"""Seed script — populates the database with sample candidates for testing."""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from candidate_identity.database.engine import async_session_factory, init_db
from candidate_identity.models.candidate import Candidate

SAMPLE_CANDIDATES = [
    # Bound to an identity-provider account
    Candidate(
        first_name="Alice",
        last_name="Johnson",
        email="alice@example.com",
        phone="14155550100",
        external_subject_id="seed-uid-alice",
    ),
    # Pre-registered by a recruiter, not yet linked to a sign-in
    Candidate(
        first_name="Bob",
        last_name="Smith",
        email="bob@example.com",
        phone="14155550101",
    ),
    Candidate(
        first_name="Dan",
        last_name="Wilson",
        email="dan@example.com",
        phone="919876543210",
        city="Pune",
        state="Maharashtra",
        degree="B.Tech",
        degree_cgpa=8.1,
    ),
    # Legacy row with the "+"-prefixed phone form
    Candidate(
        first_name="Carol",
        last_name="Davis",
        email="carol@example.com",
        phone="+442071234567",
        external_subject_id="seed-uid-carol",
    ),
]


async def seed() -> None:
    """Insert sample candidates into the database."""
    await init_db()
    async with async_session_factory() as session:
        session: AsyncSession
        for candidate in SAMPLE_CANDIDATES:
            session.add(candidate)
        await session.commit()
    print(f"✅ Seeded {len(SAMPLE_CANDIDATES)} candidates into the database.")


if __name__ == "__main__":
    asyncio.run(seed())
