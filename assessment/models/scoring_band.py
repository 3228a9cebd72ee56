"""Pydantic models for scoring bands.

``ScoringBandCreate`` / ``ScoringBandUpdate`` describe write payloads and
enforce field shape only (level name length, colour format, finite bounds).
Range rules (bounds within [0, 100], min < max, no overlap) belong to
``assessment.logic.range_registry`` so they surface as core errors.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from assessment.models.scope import BandScope, scope_for

DEFAULT_BAND_COLOR = "#3B82F6"
_HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = str(v).strip()
    return v or None


class ScoringBandCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    questionnaire_id: str = Field(min_length=1)
    category_id: Optional[str] = None
    min_percent: float = Field(allow_inf_nan=False)
    max_percent: float = Field(allow_inf_nan=False)
    level_name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: str = Field(default=DEFAULT_BAND_COLOR, pattern=_HEX_COLOR)

    @field_validator("category_id")
    @classmethod
    def category_blank_means_overall(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @property
    def scope(self) -> BandScope:
        return scope_for(self.category_id)


class ScoringBandUpdate(BaseModel):
    """Partial update; only fields explicitly set are merged."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    category_id: Optional[str] = None
    min_percent: Optional[float] = Field(default=None, allow_inf_nan=False)
    max_percent: Optional[float] = Field(default=None, allow_inf_nan=False)
    level_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, pattern=_HEX_COLOR)

    @field_validator("category_id")
    @classmethod
    def category_blank_means_overall(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class ScoringBand(BaseModel):
    band_id: str
    questionnaire_id: str
    category_id: Optional[str] = None
    min_percent: float
    max_percent: float
    level_name: str
    description: Optional[str] = None
    color: str = DEFAULT_BAND_COLOR
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def scope(self) -> BandScope:
        return scope_for(self.category_id)

    def contains(self, percentage: float) -> bool:
        """Closed-interval membership."""
        return self.min_percent <= percentage <= self.max_percent

    def describe(self) -> str:
        return f"'{self.level_name}' [{self.min_percent:g}-{self.max_percent:g}]"


__all__ = ["DEFAULT_BAND_COLOR", "ScoringBandCreate", "ScoringBandUpdate", "ScoringBand"]
