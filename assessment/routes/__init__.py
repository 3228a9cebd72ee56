"""APIRouter registration for the assessment core."""

from __future__ import annotations

from fastapi import APIRouter

from assessment.routes.questionnaires import router as questionnaires_router
from assessment.routes.questions import router as questions_router
from assessment.routes.scoring_bands import router as scoring_bands_router

api_router = APIRouter()
api_router.include_router(questionnaires_router, tags=["Questionnaires"])
api_router.include_router(questions_router, tags=["Questions"])
api_router.include_router(scoring_bands_router, tags=["ScoringBands"])

__all__ = ["api_router"]
