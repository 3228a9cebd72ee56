"""Scoring-band registry: keeps band ranges non-overlapping per scope.

A band belongs to one questionnaire and one scope (overall, or a single
category). Within a (questionnaire, scope) pair no two bands may share any
point of their closed intervals, so touching bounds (0-33 and 33-66) count
as an overlap. Overall bands are never compared with category bands.

Every write re-reads the scope from the store and scans it linearly; band
counts per scope are small. The scan and the insert are not atomic: two
concurrent writers can each pass the scan. The unique index on
(questionnaire_id, scope_key, min_percent, max_percent) turns the exact
duplicate case into a ``RangeOverlap`` for the losing writer; partial
overlaps written concurrently are not caught.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from assessment.logic.errors import AssessmentError, NotFoundError, RangeOverlap, ValidationError
from assessment.logic.repository_scoring_bands import (
    delete_band_row,
    find_band_by_bounds,
    get_band_row,
    insert_band_row,
    list_bands_for_questionnaire,
    list_bands_in_scope,
    update_band_row,
)
from assessment.logic.validation import parse_payload, validate_band_bounds
from assessment.models.batch import BatchFailure, BatchResult
from assessment.models.scope import BandScope, coerce_scope
from assessment.models.scoring_band import ScoringBand, ScoringBandCreate, ScoringBandUpdate

logger = logging.getLogger(__name__)


def intervals_overlap(c_min: float, c_max: float, e_min: float, e_max: float) -> bool:
    """Closed-interval intersection test of candidate C against existing E."""
    return (
        (e_min <= c_min <= e_max)
        or (e_min <= c_max <= e_max)
        or (c_min <= e_min and e_max <= c_max)
    )


def find_conflict(
    min_percent: float,
    max_percent: float,
    existing: Iterable[ScoringBand],
    *,
    exclude_band_id: Optional[str] = None,
) -> ScoringBand | None:
    """Return the first band in ``existing`` that intersects [min, max]."""
    for band in existing:
        if exclude_band_id is not None and band.band_id == exclude_band_id:
            continue
        if intervals_overlap(min_percent, max_percent, band.min_percent, band.max_percent):
            return band
    return None


def _overlap_error(candidate: ScoringBandCreate, conflict: ScoringBand | None, *, detected_by: str) -> RangeOverlap:
    context = {
        "questionnaire_id": candidate.questionnaire_id,
        "scope": str(candidate.scope),
        "candidate": {"min_percent": candidate.min_percent, "max_percent": candidate.max_percent},
        "detected_by": detected_by,
    }
    if conflict is None:
        return RangeOverlap(
            "Scoring band ranges cannot overlap: an identical range already exists",
            context=context,
        )
    context["conflicting_band"] = {
        "band_id": conflict.band_id,
        "level_name": conflict.level_name,
        "min_percent": conflict.min_percent,
        "max_percent": conflict.max_percent,
    }
    return RangeOverlap(
        f"Scoring band ranges cannot overlap: [{candidate.min_percent:g}-{candidate.max_percent:g}] "
        f"intersects {conflict.describe()}",
        context=context,
    )


def _check_scope(candidate: ScoringBandCreate, *, exclude_band_id: Optional[str] = None) -> None:
    existing = list_bands_in_scope(candidate.questionnaire_id, candidate.scope.key)
    conflict = find_conflict(
        candidate.min_percent, candidate.max_percent, existing, exclude_band_id=exclude_band_id
    )
    if conflict is not None:
        logger.info(
            "band_overlap_rejected questionnaire_id=%s scope=%s min=%s max=%s conflict_band_id=%s",
            candidate.questionnaire_id,
            candidate.scope,
            candidate.min_percent,
            candidate.max_percent,
            conflict.band_id,
        )
        raise _overlap_error(candidate, conflict, detected_by="scan")


def _unique_index_error(candidate: ScoringBandCreate) -> RangeOverlap:
    logger.warning(
        "band_unique_index_rejected questionnaire_id=%s scope=%s min=%s max=%s",
        candidate.questionnaire_id,
        candidate.scope,
        candidate.min_percent,
        candidate.max_percent,
    )
    holder = find_band_by_bounds(
        candidate.questionnaire_id, candidate.scope.key, candidate.min_percent, candidate.max_percent
    )
    return _overlap_error(candidate, holder, detected_by="unique_index")


def insert_band(candidate: "ScoringBandCreate | Mapping[str, Any]") -> ScoringBand:
    """Validate and persist a new band.

    Raises ``InvalidRange`` (before any store access) for bounds outside
    [0, 100] or min >= max, and ``RangeOverlap`` naming the conflicting band
    when the interval intersects a band of the same scope.
    """
    cand = parse_payload(ScoringBandCreate, candidate)
    validate_band_bounds(cand.min_percent, cand.max_percent)
    _check_scope(cand)

    band_id = str(uuid.uuid4())
    try:
        insert_band_row(band_id, cand)
    except IntegrityError as exc:
        raise _unique_index_error(cand) from exc

    band = get_band_row(band_id)
    if band is None:
        raise NotFoundError("scoring band vanished after insert", context={"band_id": band_id})
    logger.info(
        "band_inserted band_id=%s questionnaire_id=%s scope=%s min=%s max=%s level=%s",
        band.band_id,
        band.questionnaire_id,
        band.scope,
        band.min_percent,
        band.max_percent,
        band.level_name,
    )
    return band


def update_band(band_id: str, changes: "ScoringBandUpdate | Mapping[str, Any]") -> ScoringBand:
    """Merge ``changes`` into the stored band and re-run every range check.

    The band being updated is excluded from the overlap scan, so narrowing or
    shifting a band within its own former range is allowed.
    """
    upd = parse_payload(ScoringBandUpdate, changes)
    current = get_band_row(band_id)
    if current is None:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})

    merged_fields = current.model_dump(include={
        "questionnaire_id", "category_id", "min_percent", "max_percent", "level_name", "description", "color",
    })
    merged_fields.update(upd.model_dump(exclude_unset=True))
    merged = parse_payload(ScoringBandCreate, merged_fields)
    validate_band_bounds(merged.min_percent, merged.max_percent)
    _check_scope(merged, exclude_band_id=band_id)

    try:
        affected = update_band_row(band_id, merged)
    except IntegrityError as exc:
        raise _unique_index_error(merged) from exc
    if affected == 0:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})

    band = get_band_row(band_id)
    if band is None:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})
    logger.info(
        "band_updated band_id=%s scope=%s min=%s max=%s level=%s",
        band.band_id,
        band.scope,
        band.min_percent,
        band.max_percent,
        band.level_name,
    )
    return band


def delete_band(band_id: str) -> ScoringBand:
    """Delete a band unconditionally and return the removed record."""
    current = get_band_row(band_id)
    if current is None:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})
    if delete_band_row(band_id) == 0:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})
    logger.info("band_deleted band_id=%s questionnaire_id=%s", band_id, current.questionnaire_id)
    return current


def get_band(band_id: str) -> ScoringBand:
    band = get_band_row(band_id)
    if band is None:
        raise NotFoundError("Scoring band not found", context={"band_id": band_id})
    return band


def list_bands(questionnaire_id: str, scope: "BandScope | str | None" = None) -> List[ScoringBand]:
    """List a questionnaire's bands sorted by min_percent.

    ``scope=None`` returns every scope; pass ``OVERALL`` for overall bands
    only, or a ``CategoryScope``/category id for one category.
    """
    if not isinstance(questionnaire_id, str) or not questionnaire_id.strip():
        raise ValidationError("questionnaire_id is required")
    if scope is None:
        return list_bands_for_questionnaire(questionnaire_id)
    return list_bands_in_scope(questionnaire_id, coerce_scope(scope).key)


def insert_bands_bulk(questionnaire_id: str, candidates: Iterable[Mapping[str, Any]]) -> BatchResult:
    """Insert each candidate independently; never aborts early.

    Candidates are checked in order, so a later candidate overlapping an
    earlier one from the same batch is reported as failed.
    """
    result = BatchResult()
    for index, raw in enumerate(candidates):
        item = raw.model_dump() if isinstance(raw, BaseModel) else raw
        if isinstance(item, Mapping):
            item = {**item, "questionnaire_id": questionnaire_id}
        try:
            result.applied.append(insert_band(item))
        except AssessmentError as exc:
            result.failed.append(BatchFailure(item={"index": index, "band": item}, error=exc))
    logger.info(
        "bands_bulk_insert questionnaire_id=%s applied=%s failed=%s",
        questionnaire_id,
        len(result.applied),
        len(result.failed),
    )
    return result


__all__ = [
    "intervals_overlap",
    "find_conflict",
    "insert_band",
    "update_band",
    "delete_band",
    "get_band",
    "list_bands",
    "insert_bands_bulk",
]
