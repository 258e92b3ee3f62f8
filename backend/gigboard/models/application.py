"""Application ORM — one applicant's request to work a job's slot(s).

Invariants:
    - At most one non-withdrawn row per (applicant_id, job_id): partial unique index
    - Rows are never deleted by lifecycle transitions; terminal states keep history
    - slot_ids empty means "any slot" (employer picks on accept)
    - status changes only through ApplicationLifecycle (guarded UPDATE on status)

Design Decisions:
    - JSON list of slot id strings: portable across PostgreSQL and SQLite, read whole
    - One timestamp column per status change for audit
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, DateTime, ForeignKey, Index, JSON, String, Text, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gigboard.db.base import Base

_NOT_WITHDRAWN = text("status != 'withdrawn'")


class Application(Base):
    """Application record — lifecycle state plus targeted slots."""
    __tablename__ = "applications"
    __table_args__ = (
        Index(
            "uq_applications_live_pair", "applicant_id", "job_id",
            unique=True,
            postgresql_where=_NOT_WITHDRAWN,
            sqlite_where=_NOT_WITHDRAWN,
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    applicant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("job_postings.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    slot_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    cover_letter: Mapped[str | None] = mapped_column(Text, nullable=True)
    employer_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_instant_apply: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    withdrawn_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @property
    def targeted_slot_ids(self) -> list[uuid.UUID]:
        return [uuid.UUID(s) for s in self.slot_ids or []]
