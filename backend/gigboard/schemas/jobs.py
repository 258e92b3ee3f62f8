"""Job Schemas — request/response models for job postings and their time slots.

Invariants:
    - Titles are stripped first, then held to 3-200 chars
    - Slot-level rules (people_needed >= 1, end after start, date not past) are NOT
      enforced here: the domain validator reports every violation with its field path

Design Decisions:
    - from_attributes responses: ORM rows validate directly into the public shape
"""

import datetime as dt
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from gigboard.core.domain_types import JobStatus

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]


class SlotCreate(BaseModel):
    """One requested time slot."""
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    people_needed: int


class JobCreate(BaseModel):
    """Job creation — slots are validated as a whole by the service."""
    title: Title
    description: str = Field("", max_length=10_000)
    category: str | None = Field(None, max_length=100)
    application_deadline: dt.datetime | None = None
    slots: list[SlotCreate]
    publish: bool = True


class JobUpdate(BaseModel):
    """Partial edit. Only fields present in the body are applied."""
    title: Title | None = None
    description: str | None = Field(None, max_length=10_000)
    category: str | None = Field(None, max_length=100)
    application_deadline: dt.datetime | None = None
    slots: list[SlotCreate] | None = None


class SlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    people_needed: int
    people_assigned: int


class JobResponse(BaseModel):
    """Job posting with its ordered slots."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employer_id: UUID
    title: str
    description: str
    category: str | None
    status: JobStatus
    total_positions: int
    application_deadline: dt.datetime | None
    created_at: dt.datetime
    updated_at: dt.datetime
    slots: list[SlotResponse]


class JobListResponse(BaseModel):
    jobs: list[JobResponse]
    limit: int
    offset: int
