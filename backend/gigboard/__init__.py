"""Gigboard Application Package — gig postings, slot allocation, verification codes.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "1.0.0"
