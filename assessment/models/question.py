"""Pydantic models for questions and reorder payloads."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Staged reorder parks items at offset + target, so twice this must fit a
# signed 32-bit INTEGER column
MAX_ORDER_NUMBER = 2**30 - 1


class QuestionCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    questionnaire_id: str = Field(min_length=1)
    category_id: Optional[str] = None
    text: str = Field(min_length=1, max_length=500)
    # None means "append": the next free number is assigned at insert time
    order_number: Optional[int] = Field(default=None, ge=1, le=MAX_ORDER_NUMBER)

    @field_validator("category_id")
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v or None


class Question(BaseModel):
    question_id: str
    questionnaire_id: str
    category_id: Optional[str] = None
    text: str
    order_number: int
    created_at: Optional[str] = None


class ReorderItem(BaseModel):
    # Range checked per item by the sequencer
    question_id: str
    order_number: int


__all__ = ["MAX_ORDER_NUMBER", "QuestionCreate", "Question", "ReorderItem"]
