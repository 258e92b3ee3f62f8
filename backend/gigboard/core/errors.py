"""Error Hierarchy — typed, categorized exceptions for all Gigboard failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are terminal for the current call and never retried
    - to_response() produces the REST envelope, including structured context
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with GigboardError base: FastAPI global handler catches all (ADR: uniform error shape)
    - ErrorContext as dataclass: carries offending field, current state and attempted
      transition so callers can render a precise message without parsing text
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    PERMISSION = "permission"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and client rendering."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    job_id: str | None = None
    application_id: str | None = None
    slot_id: str | None = None
    field: str | None = None
    current_state: str | None = None
    attempted: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class GigboardError(Exception):
    """Base exception for all Gigboard errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def details(self) -> dict:
        """Error-specific payload merged into the response envelope."""
        return {}

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body = {
            "code": self.code,
            "message": self.context.user_message or self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
            "context": {
                "job_id": self.context.job_id,
                "application_id": self.context.application_id,
                "slot_id": self.context.slot_id,
                "field": self.context.field,
                "current_state": self.context.current_state,
                "attempted": self.context.attempted,
            },
        }
        body.update(self.details())
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class InputValidationError(GigboardError):
    """Malformed input — lists every violated field, not just the first."""
    def __init__(
        self, violations: list[dict[str, str]], context: ErrorContext | None = None,
    ):
        fields = ", ".join(v["field"] for v in violations)
        ctx = context or ErrorContext()
        if violations and ctx.field is None:
            ctx.field = violations[0]["field"]
        super().__init__(
            f"Invalid input: {fields}",
            "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )
        self.violations = violations

    def details(self) -> dict:
        return {"violations": self.violations}


class InvalidTransitionError(GigboardError):
    """State-machine guard violation — a client logic error, never retried."""
    def __init__(
        self, entity: str, current_state: str, attempted: str,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.current_state = current_state
        ctx.attempted = attempted
        super().__init__(
            f"Cannot {attempted} {entity} in state '{current_state}'",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.entity = entity
        self.current_state = current_state
        self.attempted = attempted


class DuplicateApplicationError(GigboardError):
    """Applicant already holds a non-withdrawn application for the job."""
    def __init__(self, existing_status: str | None = None, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.current_state = existing_status
        super().__init__(
            "You have already applied for this job",
            "DUPLICATE_APPLICATION", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )


class CapacityExceededError(GigboardError):
    """Slot has no remaining positions — may legitimately happen under race."""
    def __init__(
        self, slot_id: str, people_needed: int, people_assigned: int,
        requested: int = 1, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.slot_id = slot_id
        super().__init__(
            f"Slot {slot_id} has no capacity for {requested} more "
            f"({people_assigned}/{people_needed} assigned)",
            "CAPACITY_EXCEEDED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, ctx, 409,
        )
        self.slot_id = slot_id
        self.people_needed = people_needed
        self.people_assigned = people_assigned
        self.requested = requested

    def details(self) -> dict:
        return {
            "people_needed": self.people_needed,
            "people_assigned": self.people_assigned,
            "requested": self.requested,
        }


class JobNotAcceptingApplicationsError(GigboardError):
    """Job is closed, filled, cancelled, unpublished or past its deadline."""
    def __init__(self, job_status: str, reason: str | None = None, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.current_state = job_status
        super().__init__(
            reason or f"This job is no longer accepting applications (status '{job_status}')",
            "JOB_NOT_ACCEPTING_APPLICATIONS", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx, 409,
        )


class SlotSelectionRequiredError(GigboardError):
    """Application targets the whole job — the employer must pick slot(s) on accept."""
    def __init__(self, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.field = ctx.field or "slot_ids"
        super().__init__(
            "Application does not target any slot; supply slot_ids to accept it",
            "SLOT_SELECTION_REQUIRED", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx, 400,
        )


class InvalidOrExpiredCodeError(GigboardError):
    """No live verification code matches the lookup."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid or expired code",
            "INVALID_OR_EXPIRED_CODE", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class AttemptsExceededError(GigboardError):
    """Verification code reached its attempt limit."""
    def __init__(self, max_attempts: int, context: ErrorContext | None = None):
        super().__init__(
            f"Maximum attempts exceeded ({max_attempts})",
            "ATTEMPTS_EXCEEDED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 429,
        )
        self.max_attempts = max_attempts


class PermissionDeniedError(GigboardError):
    """Caller does not own the resource or lacks the required role."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(GigboardError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# ─── Infrastructure / Invariant Errors (500-level) ──────────────

class InvalidStateError(GigboardError):
    """Ledger bookkeeping would go negative — signals an upstream bug."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_STATE", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(GigboardError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ConcurrencyError(GigboardError):
    """Concurrent modification detected."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
