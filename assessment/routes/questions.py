"""Question endpoints: create with order assignment, delete, list and reorder."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query
from fastapi.responses import JSONResponse

from assessment.logic.order_sequences import (
    assign_on_create,
    delete_question,
    list_questions,
    next_order_number,
    reorder,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/questions",
    status_code=201,
    summary="Create a question; order_number is assigned when omitted",
    operation_id="createQuestion",
    tags=["Questions"],
)
def create_question(payload: Dict[str, Any] = Body(...)):
    return assign_on_create(payload).model_dump()


@router.delete(
    "/questions/{question_id}",
    summary="Delete a question (remaining numbers are not compacted)",
    operation_id="deleteQuestion",
    tags=["Questions"],
)
def remove_question(question_id: str):
    removed = delete_question(question_id)
    return {"deleted": True, "question_id": removed.question_id}


@router.get(
    "/questionnaires/{questionnaire_id}/questions",
    summary="List questions ordered by order_number",
    operation_id="listQuestions",
    tags=["Questions"],
)
def read_questions(questionnaire_id: str):
    questions = list_questions(questionnaire_id)
    return {"items": [q.model_dump() for q in questions], "count": len(questions)}


@router.get(
    "/questionnaires/{questionnaire_id}/next-order",
    summary="Next order number that would be auto-assigned",
    operation_id="getNextOrderNumber",
    tags=["Questions"],
)
def read_next_order(questionnaire_id: str):
    return {"questionnaire_id": questionnaire_id, "next_order_number": next_order_number(questionnaire_id)}


@router.post(
    "/questionnaires/{questionnaire_id}/questions/reorder",
    summary="Reassign order numbers; each item succeeds or fails on its own",
    operation_id="reorderQuestions",
    tags=["Questions"],
)
def reorder_questions(
    questionnaire_id: str,
    payload: Dict[str, Any] = Body(...),
    strategy: Optional[str] = Query(None),
):
    result = reorder(questionnaire_id, payload.get("items") or [], strategy=strategy)
    # 207 signals a partial outcome; the body always carries both lists
    status = 200 if result.ok else 207
    return JSONResponse(result.to_dict(), status_code=status)
