"""Application Routes — submit, decide, annotate and withdraw job applications.

Invariants:
    - Every endpoint requires a principal; ownership is checked by the service
    - Notification intents are emitted by the service after commit, not here
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.api.dependencies import Page, get_notifier, get_page, get_principal
from gigboard.core.domain_types import ApplicationStatus, Principal
from gigboard.core.repository_protocols import Notifier
from gigboard.infrastructure.database import get_db
from gigboard.schemas.applications import (
    AcceptRequest,
    ApplicationCreate,
    ApplicationListResponse,
    ApplicationResponse,
    FeedbackUpdate,
    InstantApplyRequest,
    RejectRequest,
)
from gigboard.services.application_lifecycle import ApplicationLifecycle

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/applications", tags=["applications"])


@router.post(
    "", response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application(
    body: ApplicationCreate,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Apply to a job, optionally targeting specific slots."""
    application = await ApplicationLifecycle(db, notifier).submit(
        principal, body.job_id,
        slot_ids=body.slot_ids, cover_letter=body.cover_letter,
    )
    return ApplicationResponse.model_validate(application)


@router.post(
    "/instant", response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def instant_apply(
    body: InstantApplyRequest,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """One-click apply to every open slot with a generated cover letter."""
    application = await ApplicationLifecycle(db, notifier).instant_apply(
        principal, body.job_id,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/mine", response_model=ApplicationListResponse)
async def list_my_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    page: Page = Depends(get_page),
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    applications = await ApplicationLifecycle(db, notifier).list_for_applicant(
        principal, status=status_filter, limit=page.limit, offset=page.offset,
    )
    return ApplicationListResponse(
        applications=[ApplicationResponse.model_validate(a) for a in applications],
        limit=page.limit, offset=page.offset,
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: UUID,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    application = await ApplicationLifecycle(db, notifier).get(principal, application_id)
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/accept", response_model=ApplicationResponse)
async def accept_application(
    application_id: UUID,
    body: AcceptRequest | None = None,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Accept and reserve the application's slot(s); body.slot_ids picks them if needed."""
    body = body or AcceptRequest()
    application = await ApplicationLifecycle(db, notifier).accept(
        principal, application_id,
        slot_ids=body.slot_ids, feedback=body.feedback,
    )
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/reject", response_model=ApplicationResponse)
async def reject_application(
    application_id: UUID,
    body: RejectRequest | None = None,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    body = body or RejectRequest()
    application = await ApplicationLifecycle(db, notifier).reject(
        principal, application_id, feedback=body.feedback,
    )
    return ApplicationResponse.model_validate(application)


@router.patch("/{application_id}/feedback", response_model=ApplicationResponse)
async def update_feedback(
    application_id: UUID,
    body: FeedbackUpdate,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    application = await ApplicationLifecycle(db, notifier).update_feedback(
        principal, application_id, body.feedback,
    )
    return ApplicationResponse.model_validate(application)


@router.post("/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(
    application_id: UUID,
    principal: Principal = Depends(get_principal),
    notifier: Notifier = Depends(get_notifier),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw; an accepted application frees its slot(s)."""
    application = await ApplicationLifecycle(db, notifier).withdraw(
        principal, application_id,
    )
    return ApplicationResponse.model_validate(application)
