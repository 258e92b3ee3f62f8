"""Error Handlers — global exception handlers for the Gigboard API.

Invariants:
    - GigboardError → its own to_response() envelope and http_status
    - RequestValidationError → 400 InputValidationError envelope; violation fields use
      the same path syntax as the domain validators (slots[1].people_needed)
    - Exception (catch-all) → opaque 500, never leaks internal details

Design Decisions:
    - Client-side failures (4xx) log at WARNING, server-side at ERROR
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gigboard.core.errors import ErrorSeverity, GigboardError, InputValidationError

logger = logging.getLogger(__name__)

_LOCATION_ROOTS = {"body", "query", "path", "header"}


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(GigboardError, handle_gigboard_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_gigboard_error(request: Request, exc: GigboardError) -> JSONResponse:
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(
        level, "%s on %s: %s", exc.code, request.url.path, exc.message,
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    violations = [
        {"field": field_path(e["loc"]), "message": e["msg"]}
        for e in exc.errors()
    ]
    error = InputValidationError(violations)
    logger.warning(
        "Request rejected on %s: %s", request.url.path, error.message,
        extra={"error_code": error.code, "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST, content=error.to_response(),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s: %s", request.url.path, exc,
        exc_info=True, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )


def field_path(loc: tuple | list) -> str:
    """("body", "slots", 1, "date") → "slots[1].date"."""
    parts = list(loc)
    if len(parts) > 1 and parts[0] in _LOCATION_ROOTS:
        parts = parts[1:]
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "request"
