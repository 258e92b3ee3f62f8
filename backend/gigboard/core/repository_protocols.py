"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Outbound effects (notifications, code delivery) accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, ORM rows and test doubles both qualify
    - Notifier.emit is synchronous and fire-and-forget: the core emits an intent,
      delivery belongs to the collaborator
"""

from datetime import date, time
from typing import Protocol
from uuid import UUID

from gigboard.core.domain_types import CodePurpose, NotificationIntent, Role


class SlotLike(Protocol):
    """Structural contract for time slots passed to the pure ledger/job rules."""
    id: UUID
    people_needed: int
    people_assigned: int


class SlotSpecLike(Protocol):
    """Structural contract for a slot as requested by an employer (pre-validation)."""
    date: date
    start_time: time
    end_time: time
    people_needed: int


class Notifier(Protocol):
    """Receives notification intents after a transition commits."""
    def emit(self, intent: NotificationIntent) -> None: ...


class CodeSender(Protocol):
    """Delivers an issued one-time code to its owner (email/SMS — external)."""
    def send_code(
        self, email: str, code: str, purpose: CodePurpose, user_type: Role,
    ) -> None: ...
