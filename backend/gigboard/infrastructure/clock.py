"""Clock — the single source of "now" for the shell.

Invariants:
    - Always timezone-aware UTC
    - Services take a Clock callable so tests can freeze or advance time
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
