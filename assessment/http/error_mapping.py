"""Central error mapping for the problem+json surface.

Single source of truth for mapping core error classes to HTTP statuses and
titles. Handlers must import from here instead of hardcoding numbers. The
most specific class wins: ``InvalidRange`` resolves through its own entry
before falling back to ``ValidationError``.
"""

from __future__ import annotations

from typing import Dict, Tuple, Type

from assessment.logic.errors import (
    AssessmentError,
    ConflictError,
    InvalidRange,
    NotFoundError,
    RangeOverlap,
    DuplicateOrder,
    ValidationError,
)

ERROR_STATUS_MAP: Dict[Type[AssessmentError], Tuple[int, str]] = {
    InvalidRange: (422, "Invalid range"),
    ValidationError: (422, "Validation failed"),
    RangeOverlap: (409, "Scoring band range overlap"),
    DuplicateOrder: (409, "Duplicate order number"),
    ConflictError: (409, "Conflict"),
    NotFoundError: (404, "Not found"),
}

DEFAULT_STATUS: Tuple[int, str] = (400, "Request rejected")


def status_for(exc: AssessmentError) -> Tuple[int, str]:
    """Return ``(status, title)`` for the nearest mapped class in the MRO."""
    for klass in type(exc).__mro__:
        if klass in ERROR_STATUS_MAP:
            return ERROR_STATUS_MAP[klass]
    return DEFAULT_STATUS


__all__ = ["ERROR_STATUS_MAP", "DEFAULT_STATUS", "status_for"]
