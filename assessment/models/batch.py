"""Result envelope for partial-failure batch operations.

Reorder and bulk band insertion never abort early: every item is attempted
and lands either in ``applied`` or in ``failed`` together with the error that
rejected it. Whether a partial result is acceptable is the caller's call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from assessment.logic.errors import AssessmentError


@dataclass
class BatchFailure:
    item: Any
    error: AssessmentError

    def to_dict(self) -> Dict[str, Any]:
        return {"item": _plain(self.item), "error": self.error.to_dict()}


@dataclass
class BatchResult:
    applied: List[Any] = field(default_factory=list)
    failed: List[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "applied": [_plain(a) for a in self.applied],
            "failed": [f.to_dict() for f in self.failed],
        }


def _plain(value: Any) -> Any:
    dump = getattr(value, "model_dump", None)
    return dump() if callable(dump) else value


__all__ = ["BatchFailure", "BatchResult"]
