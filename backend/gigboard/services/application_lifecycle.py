"""Application Lifecycle Engine — submit, accept, reject and withdraw applications,
and edit employer feedback.

Invariants:
    - Each command is one unit of work under job_locks[job_id]: read job FOR UPDATE,
      check guards, mutate ledger + application, refresh job status, commit
    - Any typed failure rolls the whole unit back (no partial capacity commitment)
    - Application status moves only through a guarded UPDATE (WHERE status = expected)
    - Notification intents are emitted after commit; delivery failure is logged and
      never undoes the transition

Design Decisions:
    - Duplicate check runs inside the lock and is backed by the partial unique index;
      an IntegrityError on insert is still reported as DuplicateApplicationError
    - Capacity is re-checked at accept time by the ledger itself, never assumed from submit
"""

import logging
from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.application_lifecycle import (
    apply_transition,
    build_intent,
    check_can_apply,
    check_can_view,
    check_is_applicant,
    check_targeted_slots,
    instant_apply_cover_letter,
    open_slot_ids,
    releases_capacity,
    resolve_accept_slots,
)
from gigboard.core.domain_types import (
    ApplicationEvent,
    ApplicationStatus,
    JobStatus,
    Principal,
)
from gigboard.core.errors import (
    ConcurrencyError,
    DuplicateApplicationError,
    ErrorContext,
    GigboardError,
    InvalidTransitionError,
    JobNotAcceptingApplicationsError,
    ResourceNotFoundError,
)
from gigboard.core.job_posting import check_accepting_applications, check_owns_job
from gigboard.core.repository_protocols import Notifier
from gigboard.infrastructure.clock import Clock, utc_now
from gigboard.infrastructure.locks import KeyedLocks, job_locks
from gigboard.models.application import Application
from gigboard.models.job_posting import JobPosting
from gigboard.services.job_postings import JobPostingService
from gigboard.services.slot_ledger import SlotLedger

logger = logging.getLogger(__name__)

_STATUS_TIMESTAMP = {
    ApplicationStatus.ACCEPTED: "accepted_at",
    ApplicationStatus.REJECTED: "rejected_at",
    ApplicationStatus.WITHDRAWN: "withdrawn_at",
}


class ApplicationLifecycle:
    """Orchestrates the application state machine against jobs and the slot ledger."""

    def __init__(
        self, db: AsyncSession, notifier: Notifier,
        locks: KeyedLocks = job_locks, clock: Clock = utc_now,
    ):
        self.db = db
        self.notifier = notifier
        self.locks = locks
        self.clock = clock
        self.jobs = JobPostingService(db, locks=locks, clock=clock)
        self.ledger = SlotLedger(db)

    # ─── Commands ────────────────────────────────────────────────

    async def submit(
        self, principal: Principal, job_id: UUID,
        slot_ids: Sequence[UUID] = (), cover_letter: str | None = None,
    ) -> Application:
        """Apply to a job. Empty slot_ids applies to the job as a whole."""
        return await self._submit(principal, job_id, slot_ids, cover_letter, instant=False)

    async def instant_apply(self, principal: Principal, job_id: UUID) -> Application:
        """One-click apply to every slot that still has room."""
        return await self._submit(principal, job_id, (), None, instant=True)

    async def _submit(
        self, principal: Principal, job_id: UUID, slot_ids: Sequence[UUID],
        cover_letter: str | None, instant: bool,
    ) -> Application:
        check_can_apply(principal)
        async with self.locks.hold(job_id):
            try:
                job = await self.jobs.load_for_update(job_id)
                now = self.clock()
                check_accepting_applications(
                    JobStatus(job.status), job.application_deadline, now, str(job.id),
                )
                await self._check_no_live_application(principal.principal_id, job.id)
                if instant:
                    targeted = open_slot_ids(job.slots)
                    cover_letter = cover_letter or instant_apply_cover_letter(job.title)
                else:
                    targeted = check_targeted_slots(slot_ids, job.slots, str(job.id))
                application = Application(
                    applicant_id=principal.principal_id,
                    job_id=job.id,
                    slot_ids=[str(s) for s in targeted],
                    status=ApplicationStatus.PENDING.value,
                    cover_letter=cover_letter,
                    is_instant_apply=instant,
                    submitted_at=now,
                    updated_at=now,
                )
                self.db.add(application)
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning(
                    "Duplicate application rejected by unique index",
                    extra={"job_id": job_id, "principal_id": principal.principal_id},
                )
                raise DuplicateApplicationError(context=ErrorContext(job_id=str(job_id)))
            except GigboardError as e:
                await self.db.rollback()
                self._log_refusal("submit", e, job_id=job_id)
                raise
        logger.info(
            "Application submitted", extra={
                "job_id": job.id, "application_id": application.id,
                "principal_id": principal.principal_id,
            },
        )
        self._emit(application, job.employer_id)
        return application

    async def accept(
        self, principal: Principal, application_id: UUID,
        slot_ids: Sequence[UUID] | None = None, feedback: str | None = None,
    ) -> Application:
        """Employer accepts a pending application, reserving its slot(s)."""
        application = await self._get(application_id)
        async with self.locks.hold(application.job_id):
            try:
                job = await self.jobs.load_for_update(application.job_id)
                application = await self._get(application_id)
                check_owns_job(
                    principal, job.employer_id, "accept its applications", str(job.id),
                )
                if JobStatus(job.status) == JobStatus.CANCELLED:
                    raise JobNotAcceptingApplicationsError(
                        job.status, "This job has been cancelled",
                        ErrorContext(job_id=str(job.id)),
                    )
                current = ApplicationStatus(application.status)
                target = apply_transition(
                    current, ApplicationEvent.ACCEPT, str(application.id),
                )
                selection = resolve_accept_slots(
                    application.targeted_slot_ids, slot_ids,
                    {slot.id for slot in job.slots}, str(application.id),
                )
                for slot_id in selection:
                    await self.ledger.reserve(slot_id)
                now = self.clock()
                await self._move(
                    application, current, target, now,
                    slot_ids=[str(s) for s in selection],
                    employer_feedback=feedback,
                )
                await self.jobs.refresh_status(job, now)
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                self._log_refusal("accept", e, application_id=application_id)
                raise
        self._log_transition(application)
        self._emit(application, job.employer_id)
        return application

    async def reject(
        self, principal: Principal, application_id: UUID,
        feedback: str | None = None,
    ) -> Application:
        """Employer rejects a pending application. No capacity was committed."""
        application = await self._get(application_id)
        async with self.locks.hold(application.job_id):
            try:
                job = await self.jobs.load_for_update(application.job_id)
                application = await self._get(application_id)
                check_owns_job(
                    principal, job.employer_id, "reject its applications", str(job.id),
                )
                current = ApplicationStatus(application.status)
                target = apply_transition(
                    current, ApplicationEvent.REJECT, str(application.id),
                )
                await self._move(
                    application, current, target, self.clock(),
                    employer_feedback=feedback,
                )
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                self._log_refusal("reject", e, application_id=application_id)
                raise
        self._log_transition(application)
        self._emit(application, job.employer_id)
        return application

    async def withdraw(self, principal: Principal, application_id: UUID) -> Application:
        """Applicant withdraws; an accepted application gives its slots back."""
        application = await self._get(application_id)
        async with self.locks.hold(application.job_id):
            try:
                job = await self.jobs.load_for_update(application.job_id)
                application = await self._get(application_id)
                check_is_applicant(principal, application.applicant_id, str(application.id))
                current = ApplicationStatus(application.status)
                target = apply_transition(
                    current, ApplicationEvent.WITHDRAW, str(application.id),
                )
                now = self.clock()
                if releases_capacity(current, ApplicationEvent.WITHDRAW):
                    for slot_id in application.targeted_slot_ids:
                        await self.ledger.release(slot_id)
                await self._move(application, current, target, now)
                await self.jobs.refresh_status(job, now)
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                self._log_refusal("withdraw", e, application_id=application_id)
                raise
        self._log_transition(application)
        self._emit(application, job.employer_id)
        return application

    async def update_feedback(
        self, principal: Principal, application_id: UUID, feedback: str | None,
    ) -> Application:
        """Owning employer replaces (or clears) feedback. Status is untouched."""
        application = await self._get(application_id)
        async with self.locks.hold(application.job_id):
            try:
                job = await self.jobs.load_for_update(application.job_id)
                application = await self._get(application_id)
                check_owns_job(
                    principal, job.employer_id, "give feedback on its applications",
                    str(job.id),
                )
                current = ApplicationStatus(application.status)
                if current == ApplicationStatus.WITHDRAWN:
                    raise InvalidTransitionError(
                        "application", current.value, "update feedback",
                        ErrorContext(application_id=str(application.id)),
                    )
                result = await self.db.execute(
                    update(Application)
                    .where(Application.id == application.id)
                    .where(Application.status == current.value)
                    .values(employer_feedback=feedback, updated_at=self.clock())
                    .execution_options(synchronize_session=False),
                )
                if result.rowcount != 1:
                    raise ConcurrencyError(
                        f"Application {application.id} changed state concurrently",
                        ErrorContext(application_id=str(application.id)),
                    )
                await self.db.refresh(application)
                await self.db.commit()
            except GigboardError as e:
                await self.db.rollback()
                self._log_refusal("feedback update", e, application_id=application_id)
                raise
        logger.info(
            "Application feedback updated",
            extra={"job_id": application.job_id, "application_id": application.id},
        )
        return application

    # ─── Reads ───────────────────────────────────────────────────

    async def get(self, principal: Principal, application_id: UUID) -> Application:
        application = await self._get(application_id)
        job = await self.jobs.get(application.job_id)
        check_can_view(principal, application.applicant_id, job.employer_id)
        return application

    async def list_for_job(
        self, principal: Principal, job_id: UUID,
        status: ApplicationStatus | None = None, limit: int = 10, offset: int = 0,
    ) -> list[Application]:
        job = await self.jobs.get(job_id)
        check_owns_job(principal, job.employer_id, "view its applications", str(job.id))
        query = select(Application).where(Application.job_id == job_id)
        return await self._page(query, status, limit, offset)

    async def list_for_applicant(
        self, principal: Principal,
        status: ApplicationStatus | None = None, limit: int = 10, offset: int = 0,
    ) -> list[Application]:
        query = select(Application).where(
            Application.applicant_id == principal.principal_id,
        )
        return await self._page(query, status, limit, offset)

    async def _page(self, query, status, limit: int, offset: int) -> list[Application]:
        if status is not None:
            query = query.where(Application.status == status.value)
        query = query.order_by(Application.submitted_at.desc()).limit(limit).offset(offset)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ─── Internals ───────────────────────────────────────────────

    async def _get(self, application_id: UUID) -> Application:
        result = await self.db.execute(
            select(Application)
            .where(Application.id == application_id)
            .execution_options(populate_existing=True),
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise ResourceNotFoundError(
                "Application", str(application_id),
                ErrorContext(application_id=str(application_id)),
            )
        return application

    async def _check_no_live_application(self, applicant_id: UUID, job_id: UUID) -> None:
        result = await self.db.execute(
            select(Application)
            .where(Application.applicant_id == applicant_id)
            .where(Application.job_id == job_id)
            .where(Application.status != ApplicationStatus.WITHDRAWN.value),
        )
        existing = result.scalars().first()
        if existing is not None:
            raise DuplicateApplicationError(
                existing.status,
                ErrorContext(job_id=str(job_id), application_id=str(existing.id)),
            )

    async def _move(
        self, application: Application, current: ApplicationStatus,
        target: ApplicationStatus, now: datetime, **fields: object,
    ) -> None:
        """Compare-and-swap the status column; losing the race is a conflict."""
        values = {
            "status": target.value,
            "updated_at": now,
            _STATUS_TIMESTAMP[target]: now,
        }
        values.update({k: v for k, v in fields.items() if v is not None})
        result = await self.db.execute(
            update(Application)
            .where(Application.id == application.id)
            .where(Application.status == current.value)
            .values(**values)
            .execution_options(synchronize_session=False),
        )
        if result.rowcount != 1:
            raise ConcurrencyError(
                f"Application {application.id} changed state concurrently",
                ErrorContext(
                    application_id=str(application.id),
                    current_state=current.value, attempted=target.value,
                ),
            )
        await self.db.refresh(application)

    def _emit(self, application: Application, employer_id: UUID) -> None:
        intent = build_intent(
            ApplicationStatus(application.status),
            job_id=application.job_id,
            application_id=application.id,
            applicant_id=application.applicant_id,
            employer_id=employer_id,
        )
        try:
            self.notifier.emit(intent)
        except Exception:
            logger.error(
                "Notification delivery failed for %s", intent.event.value,
                exc_info=True,
                extra={"application_id": application.id, "event": intent.event.value},
            )

    def _log_transition(self, application: Application) -> None:
        logger.info(
            "Application -> %s", application.status,
            extra={
                "job_id": application.job_id,
                "application_id": application.id,
                "new_status": application.status,
            },
        )

    def _log_refusal(self, command: str, error: GigboardError, **ids: UUID) -> None:
        logger.warning(
            "Application %s refused: %s", command, error.message,
            extra={"error_code": error.code, **ids},
        )
