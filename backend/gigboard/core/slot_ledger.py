"""Slot Capacity Rules — pure arithmetic behind reserve/release.

Invariants:
    - 0 <= people_assigned <= people_needed for every slot, always
    - plan_reserve / plan_release are PURE: they return the new assigned count or raise,
      the shell applies it with a guarded UPDATE
    - release never clamps: going negative is a bookkeeping bug (InvalidStateError)
"""

from gigboard.core.errors import (
    CapacityExceededError,
    ErrorContext,
    InputValidationError,
    InvalidStateError,
)
from gigboard.core.repository_protocols import SlotLike


def remaining_capacity(slot: SlotLike) -> int:
    return max(slot.people_needed - slot.people_assigned, 0)


def is_full(slot: SlotLike) -> bool:
    return slot.people_assigned >= slot.people_needed


def check_count(count: int) -> None:
    """Ledger counts are positive integers."""
    if count < 1:
        raise InputValidationError(
            [{"field": "count", "message": "count must be at least 1"}],
        )


def plan_reserve(slot: SlotLike, count: int = 1) -> int:
    """Return people_assigned after reserving `count`, or raise CapacityExceededError."""
    check_count(count)
    new_assigned = slot.people_assigned + count
    if new_assigned > slot.people_needed:
        raise CapacityExceededError(
            str(slot.id), slot.people_needed, slot.people_assigned, count,
        )
    return new_assigned


def plan_release(slot: SlotLike, count: int = 1) -> int:
    """Return people_assigned after releasing `count`, or raise InvalidStateError."""
    check_count(count)
    new_assigned = slot.people_assigned - count
    if new_assigned < 0:
        raise InvalidStateError(
            f"Release of {count} on slot {slot.id} would leave "
            f"{new_assigned} assigned",
            ErrorContext(
                slot_id=str(slot.id),
                debug_info={
                    "people_assigned": slot.people_assigned,
                    "requested": count,
                },
            ),
        )
    return new_assigned
