"""Application State Machine — tests for the transition table and slot selection.

Tests cover:
    - the four permitted transitions and refusal of everything else
    - only accepted -> withdrawn releases capacity
    - guards: applicant role, applicant identity, view access
    - check_targeted_slots: unknown and full slots
    - resolve_accept_slots: whole-job, targeted, narrowed selections
    - build_intent maps status to notification event
"""

from dataclasses import dataclass, field
from uuid import UUID, uuid4

import pytest

from gigboard.core.application_lifecycle import (
    BLOCKING_STATUSES,
    apply_transition,
    build_intent,
    check_can_apply,
    check_can_view,
    check_is_applicant,
    check_targeted_slots,
    dedupe_slot_ids,
    instant_apply_cover_letter,
    open_slot_ids,
    releases_capacity,
    resolve_accept_slots,
)
from gigboard.core.domain_types import (
    ApplicationEvent,
    ApplicationStatus,
    NotificationEvent,
    Principal,
    Role,
)
from gigboard.core.errors import (
    CapacityExceededError,
    InputValidationError,
    InvalidTransitionError,
    PermissionDeniedError,
    SlotSelectionRequiredError,
)

P = ApplicationStatus
E = ApplicationEvent


@dataclass
class _Slot:
    people_needed: int
    people_assigned: int = 0
    id: UUID = field(default_factory=uuid4)


# ─── transitions ─────────────────────────────────────────────────

@pytest.mark.parametrize("current,event,target", [
    (P.PENDING, E.ACCEPT, P.ACCEPTED),
    (P.PENDING, E.REJECT, P.REJECTED),
    (P.PENDING, E.WITHDRAW, P.WITHDRAWN),
    (P.ACCEPTED, E.WITHDRAW, P.WITHDRAWN),
])
def test_permitted_transitions(current, event, target):
    assert apply_transition(current, event) == target


@pytest.mark.parametrize("current,event", [
    (P.ACCEPTED, E.ACCEPT),
    (P.ACCEPTED, E.REJECT),
    (P.REJECTED, E.ACCEPT),
    (P.REJECTED, E.WITHDRAW),
    (P.WITHDRAWN, E.WITHDRAW),
    (P.WITHDRAWN, E.ACCEPT),
])
def test_refused_transitions(current, event):
    with pytest.raises(InvalidTransitionError) as exc:
        apply_transition(current, event, "app-1")
    assert exc.value.context.current_state == current.value
    assert exc.value.context.attempted == event.value
    assert exc.value.context.application_id == "app-1"


def test_only_accepted_withdraw_releases_capacity():
    assert releases_capacity(P.ACCEPTED, E.WITHDRAW)
    assert not releases_capacity(P.PENDING, E.WITHDRAW)
    assert not releases_capacity(P.PENDING, E.ACCEPT)


def test_withdrawn_does_not_block_reapplication():
    assert P.WITHDRAWN not in BLOCKING_STATUSES
    assert P.REJECTED in BLOCKING_STATUSES


# ─── guards ──────────────────────────────────────────────────────

def test_only_users_apply():
    check_can_apply(Principal(uuid4(), Role.USER))
    with pytest.raises(PermissionDeniedError):
        check_can_apply(Principal(uuid4(), Role.EMPLOYER))


def test_only_applicant_withdraws():
    applicant = uuid4()
    check_is_applicant(Principal(applicant, Role.USER), applicant)
    with pytest.raises(PermissionDeniedError):
        check_is_applicant(Principal(uuid4(), Role.USER), applicant)


def test_view_allowed_for_applicant_and_employer_only():
    applicant, employer = uuid4(), uuid4()
    check_can_view(Principal(applicant, Role.USER), applicant, employer)
    check_can_view(Principal(employer, Role.EMPLOYER), applicant, employer)
    with pytest.raises(PermissionDeniedError):
        check_can_view(Principal(uuid4(), Role.USER), applicant, employer)


# ─── slot targeting ──────────────────────────────────────────────

def test_dedupe_preserves_order():
    a, b = uuid4(), uuid4()
    assert dedupe_slot_ids([a, b, a]) == [a, b]


def test_targeted_slots_must_belong_to_job():
    slot = _Slot(2)
    stranger = uuid4()
    with pytest.raises(InputValidationError) as exc:
        check_targeted_slots([slot.id, stranger], [slot])
    assert exc.value.violations[0]["field"] == "slot_ids[1]"


def test_targeting_full_slot_is_capacity_exceeded():
    full = _Slot(1, 1)
    with pytest.raises(CapacityExceededError):
        check_targeted_slots([full.id], [full, _Slot(2)])


def test_empty_target_means_whole_job():
    assert check_targeted_slots([], [_Slot(2)]) == []


def test_open_slot_ids_skips_full_slots():
    open_slot, full = _Slot(2, 1), _Slot(1, 1)
    assert open_slot_ids([open_slot, full]) == [open_slot.id]


# ─── resolve_accept_slots ────────────────────────────────────────

def test_whole_job_application_requires_selection():
    with pytest.raises(SlotSelectionRequiredError) as exc:
        resolve_accept_slots([], None, {uuid4()})
    assert exc.value.code == "SLOT_SELECTION_REQUIRED"


def test_whole_job_application_with_employer_selection():
    slot_id = uuid4()
    assert resolve_accept_slots([], [slot_id], {slot_id}) == [slot_id]


def test_targeted_application_uses_its_slots():
    a, b = uuid4(), uuid4()
    assert resolve_accept_slots([a, b], None, {a, b}) == [a, b]


def test_employer_may_narrow_targeted_slots():
    a, b = uuid4(), uuid4()
    assert resolve_accept_slots([a, b], [b], {a, b}) == [b]


def test_employer_cannot_pick_untargeted_slot():
    a, b = uuid4(), uuid4()
    with pytest.raises(InputValidationError) as exc:
        resolve_accept_slots([a], [b], {a, b})
    assert "not requested" in exc.value.violations[0]["message"]


def test_foreign_slot_reported_once():
    a, b = uuid4(), uuid4()
    stranger = uuid4()
    with pytest.raises(InputValidationError) as exc:
        resolve_accept_slots([a], [stranger, b], {a, b})
    assert exc.value.violations == [
        {"field": "slot_ids[0]", "message": f"{stranger} does not belong to this job"},
        {"field": "slot_ids[1]", "message": f"{b} was not requested by the applicant"},
    ]


def test_employer_cannot_pick_slot_of_another_job():
    with pytest.raises(InputValidationError):
        resolve_accept_slots([], [uuid4()], {uuid4()})


# ─── effects ─────────────────────────────────────────────────────

@pytest.mark.parametrize("status,event", [
    (P.PENDING, NotificationEvent.SUBMITTED),
    (P.ACCEPTED, NotificationEvent.ACCEPTED),
    (P.REJECTED, NotificationEvent.REJECTED),
    (P.WITHDRAWN, NotificationEvent.WITHDRAWN),
])
def test_build_intent_event_per_status(status, event):
    intent = build_intent(
        status, job_id=uuid4(), application_id=uuid4(),
        applicant_id=uuid4(), employer_id=uuid4(),
    )
    assert intent.event == event
    assert intent.new_status == status


def test_instant_apply_cover_letter_mentions_title():
    assert "Barista" in instant_apply_cover_letter("Barista")
