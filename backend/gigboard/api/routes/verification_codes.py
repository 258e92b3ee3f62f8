"""Verification Code Routes — issue and verify one-time codes.

Invariants:
    - The issued code is handed to the CodeSender, never returned in the response
    - A verify that finds no matching code counts one failed attempt against the
      live code for (email, purpose) before the error propagates
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.api.dependencies import get_code_sender
from gigboard.config import get_settings
from gigboard.core.domain_types import CodePurpose, Role
from gigboard.core.errors import InvalidOrExpiredCodeError
from gigboard.core.repository_protocols import CodeSender
from gigboard.infrastructure.database import get_db
from gigboard.schemas.verification_codes import (
    IssueCodeRequest,
    IssueCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from gigboard.services.otp_engine import OtpEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/verification-codes", tags=["verification-codes"])


def _engine(db: AsyncSession) -> OtpEngine:
    settings = get_settings()
    return OtpEngine(
        db,
        ttl=timedelta(minutes=settings.otp_ttl_minutes),
        max_attempts=settings.otp_max_attempts,
    )


@router.post(
    "", response_model=IssueCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def issue_code(
    body: IssueCodeRequest,
    sender: CodeSender = Depends(get_code_sender),
    db: AsyncSession = Depends(get_db),
):
    """Issue a fresh code for (email, purpose), replacing any earlier one."""
    record = await _engine(db).issue(body.email, body.purpose, body.user_type)
    try:
        sender.send_code(record.email, record.code, body.purpose, Role(record.user_type))
    except Exception:
        logger.error(
            "Code delivery failed", exc_info=True,
            extra={"purpose": body.purpose.value},
        )
    return IssueCodeResponse(purpose=CodePurpose(record.purpose), expires_at=record.expires_at)


@router.post("/verify", response_model=VerifyCodeResponse)
async def verify_code(
    body: VerifyCodeRequest, db: AsyncSession = Depends(get_db),
):
    engine = _engine(db)
    try:
        result = await engine.verify(body.email, body.code, body.purpose)
    except InvalidOrExpiredCodeError:
        await engine.record_failed_attempt(body.email, body.purpose)
        raise
    return VerifyCodeResponse(purpose=result.purpose, first_use=result.first_use)
