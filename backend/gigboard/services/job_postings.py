"""Job Posting Service — create, read and move job postings through their lifecycle.

Invariants:
    - Slot validation reports every violated field before anything is written
    - Only the owning employer mutates a job (update/publish/close/reopen/cancel/delete)
    - Every mutation runs under job_locks[job_id] with the job row read FOR UPDATE
    - refresh_status() is the only writer of active<->filled and runs inside the
      caller's unit of work, after ledger mutations and before commit

Design Decisions:
    - Reopen re-derives status: a reopened job whose slots are all full is filled
    - Delete is refused while any application is pending or accepted
    - Slot edits keep slot ids by position and are refused once any application is
      accepted; pending applications lose only the slots that were removed
"""

import logging
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.domain_types import ApplicationStatus, JobStatus, Principal
from gigboard.core.errors import (
    ErrorContext,
    GigboardError,
    InvalidTransitionError,
    ResourceNotFoundError,
)
from gigboard.core.job_posting import (
    apply_job_transition,
    check_can_post,
    check_owns_job,
    check_job_input,
    derive_job_status,
    total_positions,
)
from gigboard.core.repository_protocols import SlotSpecLike
from gigboard.infrastructure.clock import Clock, utc_now
from gigboard.infrastructure.locks import KeyedLocks, job_locks
from gigboard.models.application import Application
from gigboard.models.job_posting import JobPosting, TimeSlot

logger = logging.getLogger(__name__)

_LIVE_STATUSES = (ApplicationStatus.PENDING.value, ApplicationStatus.ACCEPTED.value)
EDITABLE_FIELDS = frozenset({"title", "description", "category", "application_deadline"})
_REQUIRED_FIELDS = frozenset({"title", "description"})


class JobPostingService:
    """Job Posting Aggregate operations over one AsyncSession."""

    def __init__(
        self, db: AsyncSession, locks: KeyedLocks = job_locks,
        clock: Clock = utc_now,
    ):
        self.db = db
        self.locks = locks
        self.clock = clock

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, job_id: UUID) -> JobPosting:
        result = await self.db.execute(
            select(JobPosting)
            .where(JobPosting.id == job_id)
            .execution_options(populate_existing=True),
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise ResourceNotFoundError(
                "JobPosting", str(job_id), ErrorContext(job_id=str(job_id)),
            )
        return job

    async def list_jobs(
        self, status: JobStatus | None = None, employer_id: UUID | None = None,
        limit: int = 10, offset: int = 0,
    ) -> list[JobPosting]:
        query = select(JobPosting).order_by(JobPosting.created_at.desc())
        if status is not None:
            query = query.where(JobPosting.status == status.value)
        if employer_id is not None:
            query = query.where(JobPosting.employer_id == employer_id)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    async def load_for_update(self, job_id: UUID) -> JobPosting:
        """Read the job row FOR UPDATE with freshly loaded slots. Caller holds the lock."""
        result = await self.db.execute(
            select(JobPosting)
            .where(JobPosting.id == job_id)
            .with_for_update()
            .execution_options(populate_existing=True),
        )
        job = result.scalar_one_or_none()
        if job is None:
            raise ResourceNotFoundError(
                "JobPosting", str(job_id), ErrorContext(job_id=str(job_id)),
            )
        await self._load_slots(job.id)
        return job

    async def _load_slots(self, job_id: UUID) -> list[TimeSlot]:
        result = await self.db.execute(
            select(TimeSlot)
            .where(TimeSlot.job_id == job_id)
            .order_by(TimeSlot.position)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    # ─── Status derivation ───────────────────────────────────────

    async def refresh_status(self, job: JobPosting, now: datetime) -> JobStatus:
        """Re-derive active/filled from committed slot counters. Does not commit."""
        slots = await self._load_slots(job.id)
        current = JobStatus(job.status)
        derived = derive_job_status(current, slots)
        if derived != current:
            job.status = derived.value
            job.updated_at = now
            logger.info(
                "Job status %s -> %s", current.value, derived.value,
                extra={"job_id": job.id, "new_status": derived.value},
            )
        return derived

    # ─── Mutations ───────────────────────────────────────────────

    async def create(
        self, principal: Principal, *, title: str,
        slots: Sequence[SlotSpecLike], description: str = "",
        category: str | None = None,
        application_deadline: datetime | None = None, publish: bool = True,
    ) -> JobPosting:
        check_can_post(principal)
        now = self.clock()
        check_job_input(slots, application_deadline, now)

        job = JobPosting(
            employer_id=principal.principal_id,
            title=title,
            description=description,
            category=category,
            status=(JobStatus.ACTIVE if publish else JobStatus.DRAFT).value,
            total_positions=total_positions(slots),
            application_deadline=application_deadline,
            created_at=now,
            updated_at=now,
            slots=[
                TimeSlot(
                    position=i,
                    date=spec.date,
                    start_time=spec.start_time,
                    end_time=spec.end_time,
                    people_needed=spec.people_needed,
                    people_assigned=0,
                    version=0,
                )
                for i, spec in enumerate(slots)
            ],
        )
        self.db.add(job)
        await self.db.commit()
        logger.info(
            "Job posted with %d slot(s)", len(job.slots),
            extra={"job_id": job.id, "principal_id": principal.principal_id},
        )
        return job

    async def update(
        self, principal: Principal, job_id: UUID, *,
        slots: Sequence[SlotSpecLike] | None = None, **changes: object,
    ) -> JobPosting:
        """Edit posting details and, while nothing is accepted, its slots.

        changes holds only the fields the caller sent; an explicit None clears
        category or application_deadline.
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise TypeError(f"Not editable: {', '.join(sorted(unknown))}")
        async with self.locks.hold(job_id):
            try:
                job = await self.load_for_update(job_id)
                check_owns_job(principal, job.employer_id, "edit it", str(job.id))
                if JobStatus(job.status) == JobStatus.CANCELLED:
                    raise InvalidTransitionError(
                        "job", job.status, "update", ErrorContext(job_id=str(job.id)),
                    )
                now = self.clock()
                check_job_input(slots, changes.get("application_deadline"), now)
                for name, value in changes.items():
                    if value is None and name in _REQUIRED_FIELDS:
                        continue
                    setattr(job, name, value)
                if slots is not None:
                    await self._replace_slots(job, slots, now)
                job.updated_at = now
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                logger.warning(
                    "Job update refused: %s", e.message,
                    extra={"job_id": job_id, "error_code": e.code},
                )
                raise
        edited = sorted(changes) + (["slots"] if slots is not None else [])
        logger.info(
            "Job updated (%s)", ", ".join(edited),
            extra={"job_id": job.id, "principal_id": principal.principal_id},
        )
        return job

    async def _replace_slots(
        self, job: JobPosting, specs: Sequence[SlotSpecLike], now: datetime,
    ) -> None:
        """Rewrite the slot collection in place. Slot i keeps its id."""
        accepted = await self.db.scalar(
            select(func.count())
            .select_from(Application)
            .where(Application.job_id == job.id)
            .where(Application.status == ApplicationStatus.ACCEPTED.value),
        )
        if accepted:
            raise InvalidTransitionError(
                "job", job.status, "edit slots",
                ErrorContext(
                    job_id=str(job.id),
                    user_message=f"Job has {accepted} accepted application(s)",
                ),
            )

        existing = list(job.slots)
        for i, spec in enumerate(specs):
            if i < len(existing):
                slot = existing[i]
                slot.date = spec.date
                slot.start_time = spec.start_time
                slot.end_time = spec.end_time
                slot.people_needed = spec.people_needed
                slot.version += 1
            else:
                job.slots.append(TimeSlot(
                    position=i,
                    date=spec.date,
                    start_time=spec.start_time,
                    end_time=spec.end_time,
                    people_needed=spec.people_needed,
                    people_assigned=0,
                    version=0,
                ))
        removed = existing[len(specs):]
        for slot in removed:
            job.slots.remove(slot)
        job.total_positions = total_positions(specs)

        if removed:
            gone = {str(slot.id) for slot in removed}
            pending = await self.db.execute(
                select(Application)
                .where(Application.job_id == job.id)
                .where(Application.status == ApplicationStatus.PENDING.value),
            )
            for application in pending.scalars():
                kept = [s for s in application.slot_ids if s not in gone]
                if len(kept) != len(application.slot_ids):
                    application.slot_ids = kept
                    application.updated_at = now

    async def publish(self, principal: Principal, job_id: UUID) -> JobPosting:
        return await self._transition(principal, job_id, "publish")

    async def close(self, principal: Principal, job_id: UUID) -> JobPosting:
        return await self._transition(principal, job_id, "close")

    async def reopen(self, principal: Principal, job_id: UUID) -> JobPosting:
        return await self._transition(principal, job_id, "reopen")

    async def cancel(self, principal: Principal, job_id: UUID) -> JobPosting:
        return await self._transition(principal, job_id, "cancel")

    async def _transition(
        self, principal: Principal, job_id: UUID, action: str,
    ) -> JobPosting:
        async with self.locks.hold(job_id):
            try:
                job = await self.load_for_update(job_id)
                check_owns_job(principal, job.employer_id, f"{action} it", str(job.id))
                target = apply_job_transition(
                    JobStatus(job.status), action, str(job.id),
                )
                now = self.clock()
                job.status = target.value
                job.updated_at = now
                if action == "reopen":
                    await self.db.flush()
                    await self.refresh_status(job, now)
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                logger.warning(
                    "Job %s refused: %s", action, e.message,
                    extra={"job_id": job_id, "error_code": e.code},
                )
                raise
        logger.info(
            "Job %s -> %s", action, job.status,
            extra={"job_id": job.id, "new_status": job.status},
        )
        return job

    async def delete(self, principal: Principal, job_id: UUID) -> None:
        async with self.locks.hold(job_id):
            try:
                job = await self.load_for_update(job_id)
                check_owns_job(principal, job.employer_id, "delete it", str(job.id))
                live = await self.db.scalar(
                    select(func.count())
                    .select_from(Application)
                    .where(Application.job_id == job.id)
                    .where(Application.status.in_(_LIVE_STATUSES)),
                )
                if live:
                    raise InvalidTransitionError(
                        "job", job.status, "delete",
                        ErrorContext(
                            job_id=str(job.id),
                            user_message=(
                                f"Job has {live} pending or accepted application(s)"
                            ),
                        ),
                    )
                await self.db.execute(
                    delete(Application).where(Application.job_id == job.id),
                )
                await self.db.delete(job)
                await self.db.commit()
            except GigboardError:
                await self.db.rollback()
                raise
        logger.info("Job deleted", extra={"job_id": job_id})
