"""One-Time Code Rules — generation, expiry, reuse window, attempt limit.

Invariants:
    - Codes are 6 digits, uniformly drawn from 000000-999999, left-zero-padded
    - A code verifies only while expires_at > now (20 minutes after issue by default)
    - password_reset codes stay verifiable after first use until expiry
      (verify-then-reset is two calls against the same code); other purposes are single-use
    - attempts never grows past MAX_ATTEMPTS; at the limit verification fails without incrementing

Design Decisions:
    - Randomness injected as a randbelow-style callable: deterministic tests,
      `secrets.randbelow` in production
"""

import secrets
from datetime import datetime, timedelta
from typing import Callable

from gigboard.core.domain_types import CodePurpose
from gigboard.core.errors import AttemptsExceededError


CODE_LENGTH: int = 6
CODE_SPACE: int = 10 ** CODE_LENGTH
DEFAULT_TTL: timedelta = timedelta(minutes=20)
MAX_ATTEMPTS: int = 3


def generate_code(randbelow: Callable[[int], int] = secrets.randbelow) -> str:
    return str(randbelow(CODE_SPACE)).zfill(CODE_LENGTH)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def compute_expiry(issued_at: datetime, ttl: timedelta = DEFAULT_TTL) -> datetime:
    return issued_at + ttl


def reusable_after_use(purpose: CodePurpose) -> bool:
    """Only password_reset codes match when already used."""
    return purpose == CodePurpose.PASSWORD_RESET


def check_attempts(attempts: int, max_attempts: int = MAX_ATTEMPTS) -> None:
    if attempts >= max_attempts:
        raise AttemptsExceededError(max_attempts)


def remaining_attempts(attempts: int, max_attempts: int = MAX_ATTEMPTS) -> int:
    return max(max_attempts - attempts, 0)
