"""Infrastructure Layer — database, logging, locks and outbound adapters.

Invariants:
    - Infrastructure never holds business rules (those live in core/)
    - Outbound adapters (notifier, code sender) never raise into the caller's transaction

Design Decisions:
    - Module-level singletons initialized from the FastAPI lifespan (ADR: no import side effects)
"""
