"""Pydantic models for questionnaires."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _capitalize_first(v: str) -> str:
    return v[:1].upper() + v[1:] if v else v


class QuestionnaireCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    is_active: bool = False

    @field_validator("title")
    @classmethod
    def title_first_letter_upper(cls, v: str) -> str:
        return _capitalize_first(v)


class QuestionnaireUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=1000)
    is_active: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def title_first_letter_upper(cls, v: Optional[str]) -> str:
        # Omit the field to keep the title; the column is NOT NULL
        if v is None:
            raise ValueError("title cannot be null")
        return _capitalize_first(v)


class Questionnaire(BaseModel):
    questionnaire_id: str
    title: str
    description: Optional[str] = None
    is_active: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


__all__ = ["QuestionnaireCreate", "QuestionnaireUpdate", "Questionnaire"]
