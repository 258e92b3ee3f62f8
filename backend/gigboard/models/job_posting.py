"""JobPosting / TimeSlot ORM — the posting aggregate and its capacity ledger rows.

Invariants:
    - A TimeSlot always belongs to exactly one JobPosting (job_id FK, cascade delete)
    - 1 <= people_needed and 0 <= people_assigned <= people_needed (CHECK constraints)
    - people_assigned is only written by SlotLedger (guarded UPDATE), never by attribute assignment
    - version increments on every ledger mutation
    - total_positions = sum(people_needed) at creation; informational only

Design Decisions:
    - slots loaded with selectin and ordered by position: the aggregate is always read whole
    - status stored as plain String: values come from core.domain_types.JobStatus
"""

import uuid
import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from gigboard.db.base import Base


class JobPosting(Base):
    """Job posting aggregate root — owns its ordered time slots."""
    __tablename__ = "job_postings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    employer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active", index=True,
    )
    total_positions: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    application_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    slots: Mapped[list["TimeSlot"]] = relationship(
        "TimeSlot", back_populates="job",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="TimeSlot.position",
    )


class TimeSlot(Base):
    """Capacity-limited work shift within a job posting."""
    __tablename__ = "time_slots"
    __table_args__ = (
        CheckConstraint("people_needed >= 1", name="ck_time_slots_people_needed"),
        CheckConstraint(
            "people_assigned >= 0 AND people_assigned <= people_needed",
            name="ck_time_slots_people_assigned",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    job_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("job_postings.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    end_time: Mapped[dt.time] = mapped_column(Time, nullable=False)
    people_needed: Mapped[int] = mapped_column(Integer, nullable=False)
    people_assigned: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    job: Mapped["JobPosting"] = relationship(
        "JobPosting", back_populates="slots",
    )
