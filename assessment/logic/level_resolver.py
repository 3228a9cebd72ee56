"""Map a percentage score to a level name using persisted scoring bands."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from assessment.logic.errors import ValidationError
from assessment.logic.repository_scoring_bands import list_bands_for_questionnaire, list_bands_in_scope
from assessment.logic.validation import validate_percentage
from assessment.models.scope import OVERALL, BandScope, coerce_scope
from assessment.models.scoring_band import ScoringBand

logger = logging.getLogger(__name__)

UNKNOWN_LEVEL = "Unknown"


def _first_match(bands: Iterable[ScoringBand], percentage: float) -> Optional[ScoringBand]:
    # Bands arrive sorted by min_percent then band_id; first containing band wins
    for band in bands:
        if band.contains(percentage):
            return band
    return None


def _require_questionnaire_id(questionnaire_id: Any) -> str:
    if not isinstance(questionnaire_id, str) or not questionnaire_id.strip():
        raise ValidationError("questionnaire_id is required", context={"questionnaire_id": questionnaire_id})
    return questionnaire_id


def get_level(questionnaire_id: str, scope: "BandScope | str | None", percentage: Any) -> str:
    """Return the level name of the band containing ``percentage``.

    ``scope`` is a ``BandScope``, a category id, or None for the overall
    scope. Returns ``UNKNOWN_LEVEL`` when the scope has no bands or the
    percentage falls in a gap between them.
    """
    _require_questionnaire_id(questionnaire_id)
    pct = validate_percentage(percentage)
    resolved = coerce_scope(scope)
    band = _first_match(list_bands_in_scope(questionnaire_id, resolved.key), pct)
    if band is None:
        logger.info("level_unresolved questionnaire_id=%s scope=%s pct=%s", questionnaire_id, resolved, pct)
        return UNKNOWN_LEVEL
    return band.level_name


def classify_results(
    questionnaire_id: str,
    overall_percentage: Any,
    category_percentages: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Resolve the overall level and each category's level in one pass.

    Bands are read once for the whole questionnaire. Every percentage is
    validated before any store access.
    """
    _require_questionnaire_id(questionnaire_id)
    overall_pct = validate_percentage(overall_percentage, field="overall_percentage")
    categories: Dict[str, float] = {}
    for category_id, value in (category_percentages or {}).items():
        categories[str(category_id)] = validate_percentage(value, field=f"categories.{category_id}")

    by_scope: Dict[str, List[ScoringBand]] = {}
    for band in list_bands_for_questionnaire(questionnaire_id):
        by_scope.setdefault(band.scope.key, []).append(band)
    for bands in by_scope.values():
        bands.sort(key=lambda b: (b.min_percent, b.band_id))

    def _level(scope: BandScope, pct: float) -> str:
        band = _first_match(by_scope.get(scope.key, []), pct)
        return band.level_name if band else UNKNOWN_LEVEL

    result = {
        "overall": {"percentage": overall_pct, "level_name": _level(OVERALL, overall_pct)},
        "categories": [
            {"category_id": cid, "percentage": pct, "level_name": _level(coerce_scope(cid), pct)}
            for cid, pct in categories.items()
        ],
    }
    logger.info(
        "results_classified questionnaire_id=%s overall=%s categories=%s",
        questionnaire_id,
        result["overall"]["level_name"],
        len(result["categories"]),
    )
    return result


__all__ = ["UNKNOWN_LEVEL", "get_level", "classify_results"]
