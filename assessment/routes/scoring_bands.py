"""Scoring-band endpoints: CRUD, bulk insert and level lookup."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Query

from assessment.logic.level_resolver import classify_results, get_level
from assessment.logic.range_registry import (
    delete_band,
    get_band,
    insert_band,
    insert_bands_bulk,
    list_bands,
    update_band,
)
from assessment.models.scope import OVERALL

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/scoring-bands",
    status_code=201,
    summary="Create a scoring band",
    operation_id="createScoringBand",
    tags=["ScoringBands"],
)
def create_scoring_band(payload: Dict[str, Any] = Body(...)):
    return insert_band(payload).model_dump()


@router.get(
    "/scoring-bands",
    summary="List scoring bands of a questionnaire",
    operation_id="listScoringBands",
    tags=["ScoringBands"],
)
def list_scoring_bands(
    questionnaire_id: str = Query(...),
    category_id: Optional[str] = Query(None),
    overall: bool = Query(False),
):
    # category_id selects one category; overall=true selects overall bands; neither lists all
    scope = category_id if category_id else (OVERALL if overall else None)
    bands = list_bands(questionnaire_id, scope)
    return {"items": [b.model_dump() for b in bands], "count": len(bands)}


@router.post(
    "/scoring-bands/bulk",
    summary="Insert many scoring bands, reporting each failure",
    operation_id="bulkCreateScoringBands",
    tags=["ScoringBands"],
)
def bulk_create_scoring_bands(payload: Dict[str, Any] = Body(...)):
    result = insert_bands_bulk(payload.get("questionnaire_id"), payload.get("bands") or [])
    return result.to_dict()


@router.post(
    "/scoring-bands/level",
    summary="Resolve the level name for a percentage",
    operation_id="getLevel",
    tags=["ScoringBands"],
)
def resolve_level(payload: Dict[str, Any] = Body(...)):
    level = get_level(payload.get("questionnaire_id"), payload.get("category_id"), payload.get("percentage"))
    return {"level_name": level}


@router.post(
    "/scoring-bands/classify",
    summary="Resolve overall and per-category levels",
    operation_id="classifyResults",
    tags=["ScoringBands"],
)
def classify(payload: Dict[str, Any] = Body(...)):
    return classify_results(
        payload.get("questionnaire_id"),
        payload.get("overall_percentage"),
        payload.get("category_percentages") or {},
    )


@router.get(
    "/scoring-bands/{band_id}",
    summary="Get a scoring band",
    operation_id="getScoringBand",
    tags=["ScoringBands"],
)
def read_scoring_band(band_id: str):
    return get_band(band_id).model_dump()


@router.put(
    "/scoring-bands/{band_id}",
    summary="Update a scoring band",
    operation_id="updateScoringBand",
    tags=["ScoringBands"],
)
def replace_scoring_band(band_id: str, payload: Dict[str, Any] = Body(...)):
    return update_band(band_id, payload).model_dump()


@router.delete(
    "/scoring-bands/{band_id}",
    summary="Delete a scoring band",
    operation_id="deleteScoringBand",
    tags=["ScoringBands"],
)
def remove_scoring_band(band_id: str):
    removed = delete_band(band_id)
    return {"deleted": True, "band_id": removed.band_id}
