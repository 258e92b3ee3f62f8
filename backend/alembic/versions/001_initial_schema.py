"""Initial schema — job_postings, time_slots, applications, verification_codes.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "job_postings",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("employer_id", UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("total_positions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("application_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_job_postings_employer_id", "job_postings", ["employer_id"])
    op.create_index("ix_job_postings_status", "job_postings", ["status"])

    op.create_table(
        "time_slots",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "job_id", UUID(as_uuid=True),
            sa.ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("start_time", sa.Time, nullable=False),
        sa.Column("end_time", sa.Time, nullable=False),
        sa.Column("people_needed", sa.Integer, nullable=False),
        sa.Column("people_assigned", sa.Integer, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint("people_needed >= 1", name="ck_time_slots_people_needed"),
        sa.CheckConstraint(
            "people_assigned >= 0 AND people_assigned <= people_needed",
            name="ck_time_slots_people_assigned",
        ),
    )
    op.create_index("ix_time_slots_job_id", "time_slots", ["job_id"])

    op.create_table(
        "applications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("applicant_id", UUID(as_uuid=True), nullable=False),
        sa.Column(
            "job_id", UUID(as_uuid=True),
            sa.ForeignKey("job_postings.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("slot_ids", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("cover_letter", sa.Text, nullable=True),
        sa.Column("employer_feedback", sa.Text, nullable=True),
        sa.Column("is_instant_apply", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("withdrawn_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
    op.create_index("ix_applications_job_id", "applications", ["job_id"])
    op.create_index(
        "uq_applications_live_pair", "applications", ["applicant_id", "job_id"],
        unique=True, postgresql_where=sa.text("status != 'withdrawn'"),
    )

    op.create_table(
        "verification_codes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        sa.Column("purpose", sa.String(30), nullable=False),
        sa.Column("user_type", sa.String(20), nullable=False),
        sa.Column("is_used", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", "purpose", name="uq_verification_codes_email_purpose"),
        sa.CheckConstraint("attempts >= 0", name="ck_verification_codes_attempts"),
    )
    op.create_index("ix_verification_codes_code", "verification_codes", ["code"])
    op.create_index("ix_verification_codes_expires_at", "verification_codes", ["expires_at"])


def downgrade() -> None:
    op.drop_table("verification_codes")
    op.drop_index("uq_applications_live_pair", table_name="applications")
    op.drop_table("applications")
    op.drop_table("time_slots")
    op.drop_table("job_postings")
