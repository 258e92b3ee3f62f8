"""Job Posting Routes — create, browse and manage job postings.

Invariants:
    - Browsing (list/get) needs no principal; every mutation does
    - Handlers only translate HTTP <-> service calls; rules live in core/services
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.api.dependencies import Page, get_notifier, get_page, get_principal
from gigboard.core.domain_types import ApplicationStatus, JobStatus, Principal
from gigboard.core.repository_protocols import Notifier
from gigboard.infrastructure.database import get_db
from gigboard.schemas.applications import ApplicationListResponse, ApplicationResponse
from gigboard.schemas.jobs import JobCreate, JobListResponse, JobResponse, JobUpdate
from gigboard.services.application_lifecycle import ApplicationLifecycle
from gigboard.services.job_postings import JobPostingService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


@router.post(
    "", response_model=JobResponse, status_code=status.HTTP_201_CREATED,
)
async def create_job(
    body: JobCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Post a job with one or more time slots (published unless publish=false)."""
    job = await JobPostingService(db).create(
        principal,
        title=body.title,
        slots=body.slots,
        description=body.description,
        category=body.category,
        application_deadline=body.application_deadline,
        publish=body.publish,
    )
    return JobResponse.model_validate(job)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    status_filter: JobStatus | None = Query(None, alias="status"),
    employer_id: UUID | None = Query(None),
    page: Page = Depends(get_page),
    db: AsyncSession = Depends(get_db),
):
    jobs = await JobPostingService(db).list_jobs(
        status=status_filter, employer_id=employer_id,
        limit=page.limit, offset=page.offset,
    )
    return JobListResponse(
        jobs=[JobResponse.model_validate(j) for j in jobs],
        limit=page.limit, offset=page.offset,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: UUID, db: AsyncSession = Depends(get_db)):
    job = await JobPostingService(db).get(job_id)
    return JobResponse.model_validate(job)


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: UUID,
    body: JobUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Edit only the fields sent. Slots are replaced as a whole list."""
    changes = body.model_dump(exclude_unset=True)
    changes.pop("slots", None)
    job = await JobPostingService(db).update(
        principal, job_id, slots=body.slots, **changes,
    )
    return JobResponse.model_validate(job)


@router.post("/{job_id}/publish", response_model=JobResponse)
async def publish_job(
    job_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    job = await JobPostingService(db).publish(principal, job_id)
    return JobResponse.model_validate(job)


@router.post("/{job_id}/close", response_model=JobResponse)
async def close_job(
    job_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    job = await JobPostingService(db).close(principal, job_id)
    return JobResponse.model_validate(job)


@router.post("/{job_id}/reopen", response_model=JobResponse)
async def reopen_job(
    job_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    job = await JobPostingService(db).reopen(principal, job_id)
    return JobResponse.model_validate(job)


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    job = await JobPostingService(db).cancel(principal, job_id)
    return JobResponse.model_validate(job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: UUID,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete a job that has no pending or accepted applications."""
    await JobPostingService(db).delete(principal, job_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{job_id}/applications", response_model=ApplicationListResponse)
async def list_job_applications(
    job_id: UUID,
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    page: Page = Depends(get_page),
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Applications for a job — visible to the owning employer only."""
    applications = await ApplicationLifecycle(db, notifier).list_for_job(
        principal, job_id, status=status_filter,
        limit=page.limit, offset=page.offset,
    )
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        limit=page.limit, offset=page.offset,
    )
