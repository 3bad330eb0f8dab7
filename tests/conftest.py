"""Shared fixtures: in-memory database, fake clock and fake OTP senders."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from candidate_identity.database.repository import CandidateRepository
from candidate_identity.errors import DeliveryError
from candidate_identity.models.candidate import Base, Candidate
from candidate_identity.services.otp_challenge import Channel, OtpChallengeService
from candidate_identity.services.otp_ledger import OtpLedger


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSender:
    """Records codes instead of delivering them."""

    def __init__(self, configured: bool = True, fail: bool = False, channel: str = "email") -> None:
        self.is_configured = configured
        self.fail = fail
        self.channel = channel
        self.sent: list[tuple[str, str]] = []

    async def send_code(self, contact: str, code: str) -> None:
        if self.fail:
            raise DeliveryError(self.channel)
        self.sent.append((contact, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


# ── In-memory test database ─────────────────────────────

@pytest_asyncio.fixture
async def db_session():
    """Create tables in a fresh in-memory DB and yield a session."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def repository(db_session):
    return CandidateRepository(db_session)


@pytest.fixture
def make_candidate(db_session):
    """Insert and commit a candidate; returns the stored row."""

    async def _make(
        email: str,
        phone: str,
        subject_id: str | None = None,
        first_name: str = "Test",
        last_name: str = "User",
    ) -> Candidate:
        candidate = Candidate(
            first_name=first_name,
            last_name=last_name,
            email=email,
            phone=phone,
            external_subject_id=subject_id,
        )
        db_session.add(candidate)
        await db_session.commit()
        return candidate

    return _make


# ── OTP ──────────────────────────────────────────────────

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(clock):
    return OtpLedger(ttl_seconds=600, clock=clock)


@pytest.fixture
def email_sender():
    return FakeSender(channel="email")


@pytest.fixture
def sms_sender():
    return FakeSender(channel="sms")


@pytest.fixture
def otp_service(ledger, email_sender, sms_sender):
    return OtpChallengeService(ledger, {Channel.EMAIL: email_sender, Channel.SMS: sms_sender})
