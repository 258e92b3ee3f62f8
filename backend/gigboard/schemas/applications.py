"""Application Schemas — submit/accept/reject payloads and the public application shape.

Invariants:
    - cover_letter and employer feedback capped at 5000 chars, stripped
    - slot_ids empty means the applicant is available for any slot
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from gigboard.core.domain_types import ApplicationStatus


def _strip_or_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


class ApplicationCreate(BaseModel):
    job_id: UUID
    slot_ids: list[UUID] = Field(default_factory=list)
    cover_letter: str | None = Field(None, max_length=5000)

    @field_validator("cover_letter")
    @classmethod
    def strip_cover_letter(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class InstantApplyRequest(BaseModel):
    job_id: UUID


class AcceptRequest(BaseModel):
    """Employer decision. slot_ids picks (or narrows to) the slots to reserve."""
    slot_ids: list[UUID] | None = None
    feedback: str | None = Field(None, max_length=5000)

    @field_validator("feedback")
    @classmethod
    def strip_feedback(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class RejectRequest(BaseModel):
    feedback: str | None = Field(None, max_length=5000)

    @field_validator("feedback")
    @classmethod
    def strip_feedback(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class FeedbackUpdate(BaseModel):
    """Replace the employer feedback on an application. null clears it."""
    feedback: str | None = Field(None, max_length=5000)

    @field_validator("feedback")
    @classmethod
    def strip_feedback(cls, v: str | None) -> str | None:
        return _strip_or_none(v)


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    applicant_id: UUID
    job_id: UUID
    slot_ids: list[UUID]
    status: ApplicationStatus
    cover_letter: str | None
    employer_feedback: str | None
    is_instant_apply: bool
    submitted_at: datetime
    accepted_at: datetime | None
    rejected_at: datetime | None
    withdrawn_at: datetime | None
    updated_at: datetime


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    limit: int
    offset: int
