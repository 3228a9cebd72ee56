"""Error taxonomy for the assessment core.

Every error carries a stable ``code`` and a ``context`` dict with enough
detail (conflicting record id, bounds, order number) for the caller to
resolve it. The HTTP layer maps classes to statuses via
``assessment.http.error_mapping``; logic modules never build responses.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class AssessmentError(Exception):
    """Base class for errors raised by the invariant core."""

    code = "ASSESSMENT_ERROR"

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "context": dict(self.context)}


class ValidationError(AssessmentError, ValueError):
    """Malformed input, rejected before any store access."""

    code = "VALIDATION_ERROR"


class InvalidRange(ValidationError):
    """Band bounds outside [0, 100] or min >= max."""

    code = "INVALID_RANGE"


class ConflictError(AssessmentError):
    code = "CONFLICT"


class RangeOverlap(ConflictError):
    """Candidate band intersects an existing band in the same scope."""

    code = "RANGE_OVERLAP"


class DuplicateOrder(ConflictError):
    """Order number already taken within the questionnaire."""

    code = "DUPLICATE_ORDER"


class NotFoundError(AssessmentError):
    code = "NOT_FOUND"


__all__ = [
    "AssessmentError",
    "ValidationError",
    "InvalidRange",
    "ConflictError",
    "RangeOverlap",
    "DuplicateOrder",
    "NotFoundError",
]
