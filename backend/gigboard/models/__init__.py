"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - JobPosting is the aggregate root for TimeSlot; Application references it by job_id

Design Decisions:
    - One file per aggregate for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from gigboard.models.job_posting import JobPosting, TimeSlot  # noqa: F401
from gigboard.models.application import Application  # noqa: F401
from gigboard.models.verification_code import VerificationCode  # noqa: F401
