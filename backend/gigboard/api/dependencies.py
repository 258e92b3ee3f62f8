"""Request Dependencies — principal resolution and outbound adapters for routes.

Invariants:
    - The principal is pre-authenticated upstream; headers are trusted, only parsed
    - Missing or malformed identity headers are a PermissionDeniedError, never a default user
    - Page size defaults to settings.default_page_size and never exceeds max_page_size
"""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Header, Query

from gigboard.config import get_settings
from gigboard.core.domain_types import Principal, PrincipalId, Role
from gigboard.core.errors import ErrorContext, PermissionDeniedError
from gigboard.core.repository_protocols import CodeSender, Notifier
from gigboard.infrastructure.notifier import code_sender, notifier


async def get_principal(
    x_principal_id: str | None = Header(None),
    x_principal_role: str | None = Header(None),
) -> Principal:
    if not x_principal_id or not x_principal_role:
        raise PermissionDeniedError(
            "Authentication required",
            ErrorContext(field="X-Principal-Id"),
        )
    try:
        principal_id = UUID(x_principal_id)
        role = Role(x_principal_role.strip().lower())
    except ValueError:
        raise PermissionDeniedError(
            "Malformed principal headers",
            ErrorContext(field="X-Principal-Role"),
        )
    return Principal(principal_id=PrincipalId(principal_id), role=role)


def get_notifier() -> Notifier:
    return notifier


def get_code_sender() -> CodeSender:
    return code_sender


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int


async def get_page(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
) -> Page:
    """Pagination window, defaulted and capped from settings."""
    settings = get_settings()
    if limit is None:
        limit = settings.default_page_size
    return Page(limit=min(limit, settings.max_page_size), offset=offset)
