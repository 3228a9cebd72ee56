"""Questionnaire endpoints and the activation switch."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse

from assessment.logic.activation import (
    activate,
    create_questionnaire,
    deactivate,
    delete_questionnaire,
    get_active_questionnaire,
    get_questionnaire,
    update_questionnaire,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/questionnaires",
    status_code=201,
    summary="Create a questionnaire",
    operation_id="createQuestionnaire",
    tags=["Questionnaires"],
)
def create(payload: Dict[str, Any] = Body(...)):
    return create_questionnaire(payload).model_dump()


@router.get(
    "/questionnaires/active",
    summary="Get the active questionnaire",
    operation_id="getActiveQuestionnaire",
    tags=["Questionnaires"],
)
def read_active():
    active = get_active_questionnaire()
    if active is None:
        problem = {"title": "No active questionnaire", "status": 404, "code": "NOT_FOUND", "context": {}}
        return JSONResponse(problem, status_code=404, media_type="application/problem+json")
    return active.model_dump()


@router.get(
    "/questionnaires/{questionnaire_id}",
    summary="Get a questionnaire",
    operation_id="getQuestionnaire",
    tags=["Questionnaires"],
)
def read(questionnaire_id: str):
    return get_questionnaire(questionnaire_id).model_dump()


@router.put(
    "/questionnaires/{questionnaire_id}",
    summary="Update a questionnaire",
    operation_id="updateQuestionnaire",
    tags=["Questionnaires"],
)
def update(questionnaire_id: str, payload: Dict[str, Any] = Body(...)):
    return update_questionnaire(questionnaire_id, payload).model_dump()


@router.delete(
    "/questionnaires/{questionnaire_id}",
    summary="Delete a questionnaire record",
    operation_id="deleteQuestionnaire",
    tags=["Questionnaires"],
)
def remove(questionnaire_id: str):
    removed = delete_questionnaire(questionnaire_id)
    return {"deleted": True, "questionnaire_id": removed.questionnaire_id}


@router.patch(
    "/questionnaires/{questionnaire_id}/activate",
    summary="Make this the only active questionnaire",
    operation_id="activateQuestionnaire",
    tags=["Questionnaires"],
)
def activate_route(questionnaire_id: str):
    activate(questionnaire_id)
    return get_questionnaire(questionnaire_id).model_dump()


@router.patch(
    "/questionnaires/{questionnaire_id}/deactivate",
    summary="Deactivate this questionnaire",
    operation_id="deactivateQuestionnaire",
    tags=["Questionnaires"],
)
def deactivate_route(questionnaire_id: str):
    deactivate(questionnaire_id)
    return get_questionnaire(questionnaire_id).model_dump()
