"""Application State Machine — transition table, ownership guards, slot selection.

Invariants:
    - All functions are PURE: they validate and decide, the shell mutates and persists
    - Only four transitions exist: pending->accepted, pending->rejected,
      pending->withdrawn, accepted->withdrawn; everything else is InvalidTransitionError
    - Re-invoking a terminal transition is an error, never a silent success
    - Only accepted->withdrawn releases capacity

Design Decisions:
    - (status, event) dict over if/elif chains: the whole machine is one literal
    - Slot ids are de-duplicated preserving order so reserve/release counts stay 1:1
"""

from typing import Iterable, Sequence
from uuid import UUID

from gigboard.core.domain_types import (
    ApplicationEvent,
    ApplicationId,
    ApplicationStatus,
    JobId,
    NotificationEvent,
    NotificationIntent,
    Principal,
    PrincipalId,
    Role,
)
from gigboard.core.errors import (
    ErrorContext,
    InputValidationError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotSelectionRequiredError,
)
from gigboard.core.repository_protocols import SlotLike
from gigboard.core.slot_ledger import is_full, plan_reserve


TRANSITIONS: dict[tuple[ApplicationStatus, ApplicationEvent], ApplicationStatus] = {
    (ApplicationStatus.PENDING, ApplicationEvent.ACCEPT): ApplicationStatus.ACCEPTED,
    (ApplicationStatus.PENDING, ApplicationEvent.REJECT): ApplicationStatus.REJECTED,
    (ApplicationStatus.PENDING, ApplicationEvent.WITHDRAW): ApplicationStatus.WITHDRAWN,
    (ApplicationStatus.ACCEPTED, ApplicationEvent.WITHDRAW): ApplicationStatus.WITHDRAWN,
}

# Statuses that still hold the (applicant, job) pair
BLOCKING_STATUSES = frozenset({
    ApplicationStatus.PENDING,
    ApplicationStatus.ACCEPTED,
    ApplicationStatus.REJECTED,
})

_NOTIFICATION_EVENTS = {
    ApplicationStatus.PENDING: NotificationEvent.SUBMITTED,
    ApplicationStatus.ACCEPTED: NotificationEvent.ACCEPTED,
    ApplicationStatus.REJECTED: NotificationEvent.REJECTED,
    ApplicationStatus.WITHDRAWN: NotificationEvent.WITHDRAWN,
}


def apply_transition(
    current: ApplicationStatus, event: ApplicationEvent,
    application_id: str | None = None,
) -> ApplicationStatus:
    """Return the target status, or raise InvalidTransitionError."""
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError(
            "application", current.value, event.value,
            ErrorContext(application_id=application_id),
        )
    return target


def releases_capacity(current: ApplicationStatus, event: ApplicationEvent) -> bool:
    return current == ApplicationStatus.ACCEPTED and event == ApplicationEvent.WITHDRAW


def dedupe_slot_ids(slot_ids: Iterable[UUID]) -> list[UUID]:
    seen: set[UUID] = set()
    ordered: list[UUID] = []
    for slot_id in slot_ids:
        if slot_id not in seen:
            seen.add(slot_id)
            ordered.append(slot_id)
    return ordered


def _unknown_slot_violations(
    slot_ids: Sequence[UUID], allowed: set[UUID], message: str,
) -> list[dict[str, str]]:
    return [
        {"field": f"slot_ids[{i}]", "message": f"{slot_id} {message}"}
        for i, slot_id in enumerate(slot_ids)
        if slot_id not in allowed
    ]


# ─── Guards ──────────────────────────────────────────────────────

def check_can_apply(principal: Principal) -> None:
    if principal.role != Role.USER:
        raise PermissionDeniedError("Only registered users can apply for jobs")


def check_is_applicant(
    principal: Principal, applicant_id: UUID, application_id: str | None = None,
) -> None:
    if principal.principal_id != applicant_id:
        raise PermissionDeniedError(
            "Only the applicant can withdraw this application",
            ErrorContext(application_id=application_id, attempted="withdraw"),
        )


def check_can_view(
    principal: Principal, applicant_id: UUID, employer_id: UUID,
) -> None:
    if principal.principal_id not in (applicant_id, employer_id):
        raise PermissionDeniedError("You do not have access to this application")


# ─── Slot selection ──────────────────────────────────────────────

def check_targeted_slots(
    requested: Sequence[UUID], job_slots: Sequence[SlotLike],
    job_id: str | None = None,
) -> list[UUID]:
    """Submit guard: every targeted slot belongs to the job and still has room."""
    slot_ids = dedupe_slot_ids(requested)
    by_id = {slot.id: slot for slot in job_slots}
    violations = _unknown_slot_violations(
        slot_ids, set(by_id), "does not belong to this job",
    )
    if violations:
        raise InputValidationError(violations, ErrorContext(job_id=job_id))
    for slot_id in slot_ids:
        slot = by_id[slot_id]
        if is_full(slot):
            plan_reserve(slot)  # raises CapacityExceededError with detail
    return slot_ids


def open_slot_ids(job_slots: Sequence[SlotLike]) -> list[UUID]:
    return [slot.id for slot in job_slots if not is_full(slot)]


def resolve_accept_slots(
    targeted: Sequence[UUID], supplied: Sequence[UUID] | None,
    job_slot_ids: set[UUID], application_id: str | None = None,
) -> list[UUID]:
    """Pick the slots an accept will reserve.

    Whole-job applications need an employer-supplied selection. Slot-targeted
    applications use their own slots unless the employer narrows them.
    """
    ctx = ErrorContext(application_id=application_id)
    if not supplied:
        if not targeted:
            raise SlotSelectionRequiredError(ctx)
        return dedupe_slot_ids(targeted)

    selection = dedupe_slot_ids(supplied)
    requested = set(targeted)
    violations: list[dict[str, str]] = []
    for i, slot_id in enumerate(selection):
        if slot_id not in job_slot_ids:
            reason = "does not belong to this job"
        elif requested and slot_id not in requested:
            reason = "was not requested by the applicant"
        else:
            continue
        violations.append({"field": f"slot_ids[{i}]", "message": f"{slot_id} {reason}"})
    if violations:
        raise InputValidationError(violations, ctx)
    return selection


# ─── Effects ─────────────────────────────────────────────────────

def build_intent(
    new_status: ApplicationStatus, *, job_id: UUID, application_id: UUID,
    applicant_id: UUID, employer_id: UUID,
) -> NotificationIntent:
    return NotificationIntent(
        event=_NOTIFICATION_EVENTS[new_status],
        job_id=JobId(job_id),
        application_id=ApplicationId(application_id),
        applicant_id=PrincipalId(applicant_id),
        employer_id=PrincipalId(employer_id),
        new_status=new_status,
    )


def instant_apply_cover_letter(job_title: str) -> str:
    return (
        f"I would like to work on \"{job_title}\" and am available for "
        f"any of the listed time slots."
    )
