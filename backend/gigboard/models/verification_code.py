"""VerificationCode ORM — short-lived one-time codes for auth-adjacent flows.

Invariants:
    - At most one row per (email, purpose): issuing replaces, unique constraint backs it
    - email stored lower-cased and trimmed
    - 0 <= attempts <= 3
    - Rows past expires_at never verify; purge_expired removes them
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Integer, String, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from gigboard.db.base import Base


class VerificationCode(Base):
    """One-time code keyed by (email, purpose)."""
    __tablename__ = "verification_codes"
    __table_args__ = (
        UniqueConstraint("email", "purpose", name="uq_verification_codes_email_purpose"),
        CheckConstraint("attempts >= 0", name="ck_verification_codes_attempts"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    code: Mapped[str] = mapped_column(String(6), nullable=False, index=True)
    purpose: Mapped[str] = mapped_column(String(30), nullable=False)
    user_type: Mapped[str] = mapped_column(String(20), nullable=False)
    is_used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
