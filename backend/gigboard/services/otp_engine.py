"""OTP Engine — issue, verify and expire one-time verification codes.

Invariants:
    - One live code per (email, purpose): issue() deletes before inserting, in one commit
    - issue() also deletes every expired code in that commit, so expired rows never
      outlive the next issue
    - Expiry and the used flag are evaluated in SQL against the injected clock
    - attempts only grows through a guarded UPDATE (WHERE attempts < max_attempts)
    - A code at the attempt limit never verifies, even when it matches

Design Decisions:
    - verify() does not count failures itself: the caller records a failed attempt
      when the lookup finds no match, so a correct code is never penalised
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import CodePurpose, Role
from gigboard.core.errors import (
    ConcurrencyError,
    ErrorContext,
    GigboardError,
    InvalidOrExpiredCodeError,
)
from gigboard.core.otp import (
    DEFAULT_TTL,
    MAX_ATTEMPTS,
    check_attempts,
    compute_expiry,
    generate_code,
    normalize_email,
    remaining_attempts,
    reusable_after_use,
)
from gigboard.infrastructure.clock import Clock, utc_now
from gigboard.models.verification_code import VerificationCode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a successful verify()."""
    email: str
    purpose: CodePurpose
    user_type: Role
    first_use: bool


class OtpEngine:
    """Verification-code state machine over one AsyncSession."""

    def __init__(
        self, db: AsyncSession, clock: Clock = utc_now,
        randbelow: Callable[[int], int] = secrets.randbelow,
        ttl: timedelta = DEFAULT_TTL, max_attempts: int = MAX_ATTEMPTS,
    ):
        self.db = db
        self.clock = clock
        self.randbelow = randbelow
        self.ttl = ttl
        self.max_attempts = max_attempts

    async def issue(
        self, email: str, purpose: CodePurpose, user_type: Role,
    ) -> VerificationCode:
        """Replace any code for (email, purpose) with a fresh one."""
        email = normalize_email(email)
        now = self.clock()
        record = VerificationCode(
            email=email,
            code=generate_code(self.randbelow),
            purpose=purpose.value,
            user_type=user_type.value,
            is_used=False,
            attempts=0,
            expires_at=compute_expiry(now, self.ttl),
            created_at=now,
        )
        try:
            purged = await self._delete_expired(now)
            await self.db.execute(
                delete(VerificationCode)
                .where(VerificationCode.email == email)
                .where(VerificationCode.purpose == purpose.value),
            )
            self.db.add(record)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConcurrencyError(
                f"Another {purpose.value} code was issued concurrently",
                ErrorContext(field="email"),
            )
        if purged:
            logger.info("Purged %d expired verification code(s)", purged)
        logger.info("Verification code issued", extra={"purpose": purpose.value})
        return record

    async def verify(
        self, email: str, code: str, purpose: CodePurpose,
    ) -> VerificationResult:
        """Check a code. Raises InvalidOrExpiredCodeError or AttemptsExceededError."""
        email = normalize_email(email)
        now = self.clock()
        query = (
            select(VerificationCode)
            .where(VerificationCode.email == email)
            .where(VerificationCode.code == code)
            .where(VerificationCode.purpose == purpose.value)
            .where(VerificationCode.expires_at > now)
            .execution_options(populate_existing=True)
        )
        if not reusable_after_use(purpose):
            query = query.where(VerificationCode.is_used.is_(False))
        record = (await self.db.execute(query)).scalar_one_or_none()
        try:
            if record is None:
                raise InvalidOrExpiredCodeError(ErrorContext(field="code"))
            check_attempts(record.attempts, self.max_attempts)
            first_use = not record.is_used
            if first_use:
                result = await self.db.execute(
                    update(VerificationCode)
                    .where(VerificationCode.id == record.id)
                    .where(VerificationCode.is_used.is_(False))
                    .values(is_used=True)
                    .execution_options(synchronize_session=False),
                )
                if result.rowcount != 1 and not reusable_after_use(purpose):
                    raise InvalidOrExpiredCodeError(ErrorContext(field="code"))
                await self.db.commit()
        except GigboardError as e:
            await self.db.rollback()
            logger.warning(
                "Verification refused: %s", e.message,
                extra={"purpose": purpose.value, "error_code": e.code},
            )
            raise
        logger.info("Verification code accepted", extra={"purpose": purpose.value})
        return VerificationResult(
            email=email, purpose=purpose,
            user_type=Role(record.user_type), first_use=first_use,
        )

    async def record_failed_attempt(
        self, email: str, purpose: CodePurpose,
    ) -> int | None:
        """Count a failed guess. Returns attempts left, or None without a live code."""
        email = normalize_email(email)
        now = self.clock()
        live = (
            select(VerificationCode)
            .where(VerificationCode.email == email)
            .where(VerificationCode.purpose == purpose.value)
            .where(VerificationCode.expires_at > now)
            .execution_options(populate_existing=True)
        )
        if not reusable_after_use(purpose):
            live = live.where(VerificationCode.is_used.is_(False))
        record = (await self.db.execute(live)).scalar_one_or_none()
        if record is None:
            return None
        await self.db.execute(
            update(VerificationCode)
            .where(VerificationCode.id == record.id)
            .where(VerificationCode.attempts < self.max_attempts)
            .values(attempts=VerificationCode.attempts + 1)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        await self.db.refresh(record)
        left = remaining_attempts(record.attempts, self.max_attempts)
        logger.info(
            "Failed verification attempt (%d left)", left,
            extra={"purpose": purpose.value},
        )
        return left

    async def purge_expired(self) -> int:
        """Delete every code whose expiry has passed. Returns the number removed."""
        purged = await self._delete_expired(self.clock())
        await self.db.commit()
        if purged:
            logger.info("Purged %d expired verification code(s)", purged)
        return purged

    async def _delete_expired(self, now: datetime) -> int:
        result = await self.db.execute(
            delete(VerificationCode).where(VerificationCode.expires_at <= now),
        )
        return result.rowcount
