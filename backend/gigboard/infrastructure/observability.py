"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - Every record carries timestamp (record creation time, UTC), level, logger, message
    - Domain identifiers passed via extra= (job, application, slot, principal) are
      surfaced as strings so UUIDs and enums serialise
    - setup_logging is idempotent: re-running it replaces its own handler

Design Decisions:
    - SQLAlchemy engine chatter capped at WARNING unless LOG_LEVEL=DEBUG
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "job_id", "application_id", "slot_id", "principal_id", "error_code",
    "event", "new_status", "purpose", "path",
)

_HANDLER_NAME = "gigboard"


class JSONFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log.update({
            key: str(record.__dict__[key])
            for key in EXTRA_FIELDS
            if record.__dict__.get(key) is not None
        })
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Install the gigboard handler on the root logger."""
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    root.addHandler(handler)

    resolved = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(resolved)
    if resolved > logging.DEBUG:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
