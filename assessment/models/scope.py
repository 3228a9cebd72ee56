"""Band scope as an explicit tagged variant.

A scoring band either scores a questionnaire's total (``OverallScope``) or a
single category (``CategoryScope``). The two are never compared with each
other, which removes NULL-comparison edge cases from the overlap rule. The
persisted ``scope_key`` column is ``""`` for the overall scope and the
category id otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

OVERALL_SCOPE_KEY = ""


@dataclass(frozen=True)
class OverallScope:
    @property
    def category_id(self) -> None:
        return None

    @property
    def key(self) -> str:
        return OVERALL_SCOPE_KEY

    def __str__(self) -> str:
        return "overall"


@dataclass(frozen=True)
class CategoryScope:
    category_id: str

    def __post_init__(self) -> None:
        if not isinstance(self.category_id, str) or not self.category_id.strip():
            raise ValueError("CategoryScope requires a non-empty category_id")

    @property
    def key(self) -> str:
        return self.category_id

    def __str__(self) -> str:
        return f"category:{self.category_id}"


BandScope = Union[OverallScope, CategoryScope]

OVERALL = OverallScope()


def scope_for(category_id: Optional[str]) -> BandScope:
    """Map an optional category id (None or blank means overall) to a scope."""
    if category_id is None:
        return OVERALL
    token = str(category_id).strip()
    if not token:
        return OVERALL
    return CategoryScope(token)


def coerce_scope(value: "BandScope | str | None") -> BandScope:
    """Accept a scope instance or a raw category id."""
    if isinstance(value, (OverallScope, CategoryScope)):
        return value
    return scope_for(value)


__all__ = [
    "OVERALL",
    "OVERALL_SCOPE_KEY",
    "OverallScope",
    "CategoryScope",
    "BandScope",
    "scope_for",
    "coerce_scope",
]
