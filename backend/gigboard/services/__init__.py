"""Services Layer — async orchestrators around the pure core.

Invariants:
    - One class per concern (ledger, job postings, application lifecycle, OTP)
    - Every service commits or rolls back its own unit of work

Design Decisions:
    - Services receive the AsyncSession, never create it (ADR: request-scoped sessions)
"""
