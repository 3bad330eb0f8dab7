"""SQLAlchemy Candidate model."""

from datetime import UTC, datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Candidate(Base):
    """The durable candidate profile.

    A candidate is keyed by email (unique) and phone (digits only, expected
    unique but not enforced, see ``CandidateRepository.find_by_phone``).
    ``external_subject_id`` binds the profile to an identity-provider
    account; SQL ``UNIQUE`` admits many NULLs, so only bound rows compete.
    """

    __tablename__ = "candidates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False)
    last_name: Mapped[str] = mapped_column(String(128), nullable=False)
    email: Mapped[str] = mapped_column(String(256), nullable=False, unique=True)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    external_subject_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        unique=True,
        doc="Identity-provider subject id this profile is currently bound to",
    )

    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    city: Mapped[str | None] = mapped_column(String(128), nullable=True)
    state: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tenth_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    twelfth_percentage: Mapped[float | None] = mapped_column(Float, nullable=True)
    degree: Mapped[str | None] = mapped_column(String(256), nullable=True)
    degree_cgpa: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("ix_candidates_phone", "phone"),
        Index("ix_candidates_created_at", "created_at"),
    )

    @property
    def is_bound(self) -> bool:
        return self.external_subject_id is not None

    def __repr__(self) -> str:
        return (
            f"<Candidate id={self.id} email={self.email!r} "
            f"subject={self.external_subject_id!r}>"
        )
