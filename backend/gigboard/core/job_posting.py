"""Job Posting Rules — slot validation, status transitions, status derivation.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - validate_slot_specs reports EVERY violation (field path + message), never first-wins
    - An application_deadline, when set, lies strictly after the time of the write
    - Transitions are one-directional except active <-> closed
    - derive_job_status is the single place where active/filled is decided from slots

Design Decisions:
    - Status derivation as a function of the slot collection, called after every
      ledger mutation, instead of ad hoc field assignments at each call site
    - Transition table as a dict: every permitted move visible in one place
"""

from datetime import date, datetime, timezone
from typing import Iterable, Sequence
from uuid import UUID

from gigboard.core.domain_types import JobStatus, Principal, Role
from gigboard.core.errors import (
    ErrorContext,
    InputValidationError,
    InvalidTransitionError,
    JobNotAcceptingApplicationsError,
    PermissionDeniedError,
)
from gigboard.core.repository_protocols import SlotLike, SlotSpecLike
from gigboard.core.slot_ledger import is_full


JOB_TRANSITIONS: dict[str, dict[JobStatus, JobStatus]] = {
    "publish": {JobStatus.DRAFT: JobStatus.ACTIVE},
    "close": {JobStatus.ACTIVE: JobStatus.CLOSED},
    "reopen": {JobStatus.CLOSED: JobStatus.ACTIVE},
    "cancel": {
        JobStatus.DRAFT: JobStatus.CANCELLED,
        JobStatus.ACTIVE: JobStatus.CANCELLED,
        JobStatus.CLOSED: JobStatus.CANCELLED,
        JobStatus.FILLED: JobStatus.CANCELLED,
    },
}


def as_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from SQLite are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_slot_specs(
    slots: Sequence[SlotSpecLike], today: date,
) -> list[dict[str, str]]:
    """Collect every violation across all slots. Empty list means valid."""
    violations: list[dict[str, str]] = []
    if not slots:
        violations.append({
            "field": "slots", "message": "at least one time slot is required",
        })
    for i, slot in enumerate(slots):
        prefix = f"slots[{i}]"
        if slot.people_needed < 1:
            violations.append({
                "field": f"{prefix}.people_needed",
                "message": "people_needed must be at least 1",
            })
        if slot.end_time <= slot.start_time:
            violations.append({
                "field": f"{prefix}.end_time",
                "message": "end_time must be after start_time",
            })
        if slot.date < today:
            violations.append({
                "field": f"{prefix}.date",
                "message": f"date {slot.date.isoformat()} is in the past",
            })
    return violations


def check_can_post(principal: Principal) -> None:
    if principal.role != Role.EMPLOYER:
        raise PermissionDeniedError("Only employers can post jobs")


def check_owns_job(
    principal: Principal, employer_id: UUID, action: str,
    job_id: str | None = None,
) -> None:
    """Only the employer who posted the job may act on it or its applications."""
    if principal.role != Role.EMPLOYER or principal.principal_id != employer_id:
        raise PermissionDeniedError(
            f"Only the employer who owns this job can {action}",
            ErrorContext(job_id=job_id, attempted=action),
        )


def validate_deadline(deadline: datetime | None, now: datetime) -> list[dict[str, str]]:
    """A deadline, when given, must lie strictly in the future."""
    if deadline is None or as_utc(deadline) > as_utc(now):
        return []
    return [{
        "field": "application_deadline",
        "message": f"application_deadline {as_utc(deadline).isoformat()} is not in the future",
    }]


def check_job_input(
    slots: Sequence[SlotSpecLike] | None, deadline: datetime | None, now: datetime,
) -> None:
    """Raise one InputValidationError listing every slot and deadline violation.

    slots=None skips slot checks (an update that leaves the slots alone).
    """
    violations = [] if slots is None else validate_slot_specs(slots, as_utc(now).date())
    violations += validate_deadline(deadline, now)
    if violations:
        raise InputValidationError(violations)


def total_positions(slots: Iterable[SlotLike | SlotSpecLike]) -> int:
    return sum(slot.people_needed for slot in slots)


def apply_job_transition(
    current: JobStatus, action: str, job_id: str | None = None,
) -> JobStatus:
    """Return the target status for an employer action, or raise InvalidTransitionError."""
    target = JOB_TRANSITIONS.get(action, {}).get(current)
    if target is None:
        raise InvalidTransitionError(
            "job", current.value, action, ErrorContext(job_id=job_id),
        )
    return target


def derive_job_status(current: JobStatus, slots: Sequence[SlotLike]) -> JobStatus:
    """Recompute active/filled from the slot collection. Other states are sticky."""
    all_full = bool(slots) and all(is_full(s) for s in slots)
    if current == JobStatus.ACTIVE and all_full:
        return JobStatus.FILLED
    if current == JobStatus.FILLED and not all_full:
        return JobStatus.ACTIVE
    return current


def check_accepting_applications(
    status: JobStatus, deadline: datetime | None, now: datetime,
    job_id: str | None = None,
) -> None:
    """Submissions only reach active jobs whose deadline (if any) has not passed."""
    if status != JobStatus.ACTIVE:
        raise JobNotAcceptingApplicationsError(
            status.value, context=ErrorContext(job_id=job_id),
        )
    if deadline is not None and as_utc(now) >= as_utc(deadline):
        raise JobNotAcceptingApplicationsError(
            status.value,
            f"The application deadline ({as_utc(deadline).isoformat()}) has passed",
            ErrorContext(job_id=job_id),
        )
