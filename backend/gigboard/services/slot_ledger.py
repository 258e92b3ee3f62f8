"""Slot Capacity Ledger — atomic reserve/release of positions on a time slot.

Invariants:
    - people_assigned changes only through a guarded compare-and-swap UPDATE
      (WHERE people_assigned + count <= people_needed / people_assigned >= count)
    - A failed guard re-reads the slot: genuinely exhausted -> CapacityExceededError,
      would-go-negative -> InvalidStateError; otherwise the swap is retried (bounded)
    - The ledger never commits: the caller's unit of work owns the transaction

Design Decisions:
    - Guarded UPDATE over read-modify-write: the database evaluates the guard, so two
      transactions racing for the last position cannot both match
    - synchronize_session=False + populate_existing re-read: identity-map rows never
      shadow the committed counter
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gigboard.core.errors import ConcurrencyError, ErrorContext, ResourceNotFoundError
from gigboard.core.slot_ledger import check_count, plan_release, plan_reserve
from gigboard.models.job_posting import TimeSlot

logger = logging.getLogger(__name__)

MAX_SWAP_ATTEMPTS: int = 3


class SlotLedger:
    """Capacity bookkeeping for time slots, bound to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_slot(self, slot_id: UUID) -> TimeSlot:
        result = await self.db.execute(
            select(TimeSlot)
            .where(TimeSlot.id == slot_id)
            .execution_options(populate_existing=True),
        )
        slot = result.scalar_one_or_none()
        if slot is None:
            raise ResourceNotFoundError(
                "TimeSlot", str(slot_id), ErrorContext(slot_id=str(slot_id)),
            )
        return slot

    async def reserve(self, slot_id: UUID, count: int = 1) -> int:
        """Add `count` assigned people. Returns the new people_assigned."""
        check_count(count)
        for _ in range(MAX_SWAP_ATTEMPTS):
            result = await self.db.execute(
                update(TimeSlot)
                .where(TimeSlot.id == slot_id)
                .where(TimeSlot.people_assigned + count <= TimeSlot.people_needed)
                .values(
                    people_assigned=TimeSlot.people_assigned + count,
                    version=TimeSlot.version + 1,
                )
                .execution_options(synchronize_session=False),
            )
            slot = await self.get_slot(slot_id)
            if result.rowcount == 1:
                logger.debug(
                    "Reserved %d on slot (%d/%d)", count,
                    slot.people_assigned, slot.people_needed,
                    extra={"slot_id": slot_id},
                )
                return slot.people_assigned
            plan_reserve(slot, count)
        raise ConcurrencyError(
            f"Slot {slot_id} kept changing during reservation",
            ErrorContext(slot_id=str(slot_id)),
        )

    async def release(self, slot_id: UUID, count: int = 1) -> int:
        """Remove `count` assigned people. Returns the new people_assigned."""
        check_count(count)
        for _ in range(MAX_SWAP_ATTEMPTS):
            result = await self.db.execute(
                update(TimeSlot)
                .where(TimeSlot.id == slot_id)
                .where(TimeSlot.people_assigned >= count)
                .values(
                    people_assigned=TimeSlot.people_assigned - count,
                    version=TimeSlot.version + 1,
                )
                .execution_options(synchronize_session=False),
            )
            slot = await self.get_slot(slot_id)
            if result.rowcount == 1:
                logger.debug(
                    "Released %d on slot (%d/%d)", count,
                    slot.people_assigned, slot.people_needed,
                    extra={"slot_id": slot_id},
                )
                return slot.people_assigned
            plan_release(slot, count)
        raise ConcurrencyError(
            f"Slot {slot_id} kept changing during release",
            ErrorContext(slot_id=str(slot_id)),
        )
