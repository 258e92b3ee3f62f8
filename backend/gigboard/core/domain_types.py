"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - JobId, ApplicationId, PrincipalId tag the ids held by the value objects below
      (Principal, NotificationIntent); ORM rows and service signatures carry plain UUID
    - All valid states encoded as Enums — no raw string matching
    - Principal is immutable: the core trusts it and never re-authenticates

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to String DB columns without custom encoders
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

JobId = NewType("JobId", UUID)
ApplicationId = NewType("ApplicationId", UUID)
PrincipalId = NewType("PrincipalId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """Principal roles delivered by the upstream auth layer."""
    USER = "user"
    EMPLOYER = "employer"
    ADMIN = "admin"


class JobStatus(str, Enum):
    """Job posting lifecycle — maps to DB `status` column."""
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"
    FILLED = "filled"
    CANCELLED = "cancelled"


class ApplicationStatus(str, Enum):
    """Application lifecycle — withdrawn/rejected/accepted are retained for history."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class ApplicationEvent(str, Enum):
    """Events that move an existing application. Submission creates one in pending."""
    ACCEPT = "accept"
    REJECT = "reject"
    WITHDRAW = "withdraw"


class CodePurpose(str, Enum):
    """What a one-time code unlocks."""
    PASSWORD_RESET = "password_reset"
    ACCOUNT_VERIFICATION = "account_verification"
    LOGIN_VERIFICATION = "login_verification"


class NotificationEvent(str, Enum):
    """Notification intents emitted to the external notifier."""
    SUBMITTED = "ApplicationSubmitted"
    ACCEPTED = "ApplicationAccepted"
    REJECTED = "ApplicationRejected"
    WITHDRAWN = "ApplicationWithdrawn"


# ─── Value Objects ───────────────────────────────────────────────

@dataclass(frozen=True)
class Principal:
    """Pre-authenticated caller identity."""
    principal_id: PrincipalId
    role: Role


@dataclass(frozen=True)
class NotificationIntent:
    """Fire-and-forget message describing an application status change."""
    event: NotificationEvent
    job_id: JobId
    application_id: ApplicationId
    applicant_id: PrincipalId
    employer_id: PrincipalId
    new_status: ApplicationStatus

    def to_dict(self) -> dict:
        return {
            "event": self.event.value,
            "job_id": str(self.job_id),
            "application_id": str(self.application_id),
            "applicant_id": str(self.applicant_id),
            "employer_id": str(self.employer_id),
            "new_status": self.new_status.value,
        }
