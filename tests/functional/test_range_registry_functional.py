"""Functional tests for the scoring-band registry.

Covers band insertion, update and deletion against a real SQLite store:
bounds validation, closed-interval overlap per scope, scope isolation
between overall and category bands, the unique-index backstop and the
partial-failure bulk insert.
"""

from __future__ import annotations

import pytest

from assessment.logic.errors import InvalidRange, NotFoundError, RangeOverlap, ValidationError
from assessment.logic.range_registry import (
    delete_band,
    find_conflict,
    get_band,
    insert_band,
    insert_bands_bulk,
    intervals_overlap,
    list_bands,
    update_band,
)
from assessment.logic.repository_scoring_bands import insert_band_row
from assessment.models.scope import OVERALL, CategoryScope
from assessment.models.scoring_band import DEFAULT_BAND_COLOR, ScoringBandCreate

QID = "q-wellbeing"


def _band(min_percent, max_percent, level="Level", **extra):
    return {
        "questionnaire_id": QID,
        "min_percent": min_percent,
        "max_percent": max_percent,
        "level_name": level,
        **extra,
    }


# -----------------------------
# Pure overlap rule
# -----------------------------


@pytest.mark.parametrize(
    "candidate, existing, expected",
    [
        ((0, 33), (33, 66), True),
        ((34, 66), (0, 33), False),
        ((10, 20), (0, 100), True),
        ((0, 100), (10, 20), True),
        ((50, 60), (40, 55), True),
        ((70, 80), (40, 60), False),
    ],
)
def test_intervals_overlap_treats_bounds_as_closed(candidate, existing, expected):
    assert intervals_overlap(candidate[0], candidate[1], existing[0], existing[1]) is expected


def test_find_conflict_skips_excluded_band():
    first = insert_band(_band(0, 40, "Low"))
    assert find_conflict(10, 30, [first]) == first
    assert find_conflict(10, 30, [first], exclude_band_id=first.band_id) is None


# -----------------------------
# insert_band
# -----------------------------


def test_insert_band_persists_defaults_and_overall_scope():
    band = insert_band(_band(0, 33, "Low", description="Needs support"))

    assert band.band_id
    assert band.scope == OVERALL
    assert band.category_id is None
    assert band.color == DEFAULT_BAND_COLOR
    assert get_band(band.band_id) == band


def test_touching_bounds_are_rejected_and_gap_is_accepted():
    low = insert_band(_band(0, 33, "Low"))

    with pytest.raises(RangeOverlap) as excinfo:
        insert_band(_band(33, 66, "Mid"))
    conflict = excinfo.value.context["conflicting_band"]
    assert conflict["band_id"] == low.band_id
    assert conflict["level_name"] == "Low"
    assert (conflict["min_percent"], conflict["max_percent"]) == (0.0, 33.0)
    assert excinfo.value.context["detected_by"] == "scan"

    mid = insert_band(_band(34, 66, "Mid"))
    assert mid.level_name == "Mid"


def test_candidate_enclosing_existing_band_is_rejected():
    insert_band(_band(40, 50, "Narrow"))
    with pytest.raises(RangeOverlap):
        insert_band(_band(10, 90, "Wide"))


@pytest.mark.parametrize(
    "min_percent, max_percent",
    [(50, 50), (60, 40), (-1, 10), (90, 100.5)],
)
def test_invalid_bounds_raise_invalid_range(min_percent, max_percent):
    with pytest.raises(InvalidRange):
        insert_band(_band(min_percent, max_percent))
    assert list_bands(QID) == []


def test_min_not_less_than_max_message():
    with pytest.raises(InvalidRange, match="Minimum percentage must be less than maximum percentage"):
        insert_band(_band(70, 20))


def test_malformed_payload_raises_validation_error_with_paths():
    with pytest.raises(ValidationError) as excinfo:
        insert_band(_band(0, 10, "", color="blue"))
    paths = {e["path"] for e in excinfo.value.context["errors"]}
    assert "$.level_name" in paths
    assert "$.color" in paths


def test_category_and_overall_scopes_never_conflict():
    insert_band(_band(0, 50, "Overall low"))
    cat = insert_band(_band(0, 50, "Sleep low", category_id="sleep"))
    other = insert_band(_band(0, 50, "Diet low", category_id="diet"))

    assert cat.scope == CategoryScope("sleep")
    assert other.scope == CategoryScope("diet")
    with pytest.raises(RangeOverlap):
        insert_band(_band(25, 75, "Sleep mid", category_id="sleep"))


def test_blank_category_is_overall_scope():
    insert_band(_band(0, 50, "Low", category_id="   "))
    with pytest.raises(RangeOverlap):
        insert_band(_band(10, 20, "Clash"))


def test_same_range_in_other_questionnaire_is_independent():
    insert_band(_band(0, 50, "Low"))
    other = insert_band({**_band(0, 50, "Low"), "questionnaire_id": "q-other"})
    assert other.questionnaire_id == "q-other"


def test_unique_index_rejection_reports_range_overlap(monkeypatch):
    existing = insert_band(_band(10, 20, "Racer"))
    # Simulate a writer whose scan ran before the competing insert committed
    monkeypatch.setattr("assessment.logic.range_registry.list_bands_in_scope", lambda qid, key: [])

    with pytest.raises(RangeOverlap) as excinfo:
        insert_band(_band(10, 20, "Loser"))
    assert excinfo.value.context["detected_by"] == "unique_index"
    assert excinfo.value.context["conflicting_band"]["band_id"] == existing.band_id


def test_store_rejects_exact_duplicate_directly():
    from sqlalchemy.exc import IntegrityError

    insert_band(_band(0, 10, "A"))
    with pytest.raises(IntegrityError):
        insert_band_row("manual-id", ScoringBandCreate(**_band(0, 10, "B")))


# -----------------------------
# update_band / delete_band
# -----------------------------


def test_update_band_excludes_itself_from_overlap_scan():
    band = insert_band(_band(0, 40, "Low"))
    updated = update_band(band.band_id, {"max_percent": 45, "level_name": "Lower"})

    assert updated.max_percent == 45.0
    assert updated.level_name == "Lower"
    assert updated.min_percent == 0.0


def test_update_band_into_neighbour_is_rejected():
    insert_band(_band(0, 40, "Low"))
    high = insert_band(_band(60, 100, "High"))

    with pytest.raises(RangeOverlap):
        update_band(high.band_id, {"min_percent": 40})
    assert get_band(high.band_id).min_percent == 60.0


def test_update_band_rechecks_bounds_on_merged_record():
    band = insert_band(_band(20, 40, "Mid"))
    with pytest.raises(InvalidRange):
        update_band(band.band_id, {"max_percent": 10})


def test_update_band_moving_scope_checks_target_scope():
    insert_band(_band(0, 50, "Sleep low", category_id="sleep"))
    overall = insert_band(_band(0, 50, "Overall low"))

    with pytest.raises(RangeOverlap):
        update_band(overall.band_id, {"category_id": "sleep"})


def test_update_missing_band_raises_not_found():
    with pytest.raises(NotFoundError):
        update_band("missing", {"level_name": "X"})


def test_delete_band_returns_removed_record_and_frees_range():
    band = insert_band(_band(0, 50, "Low"))
    removed = delete_band(band.band_id)

    assert removed.band_id == band.band_id
    with pytest.raises(NotFoundError):
        get_band(band.band_id)
    assert insert_band(_band(0, 50, "Low again")).level_name == "Low again"


def test_delete_missing_band_raises_not_found():
    with pytest.raises(NotFoundError):
        delete_band("missing")


# -----------------------------
# list_bands / bulk
# -----------------------------


def test_list_bands_filters_by_scope_and_sorts_by_min():
    insert_band(_band(60, 100, "High"))
    insert_band(_band(0, 30, "Low"))
    insert_band(_band(0, 30, "Sleep low", category_id="sleep"))

    overall = list_bands(QID, OVERALL)
    assert [b.level_name for b in overall] == ["Low", "High"]
    assert [b.level_name for b in list_bands(QID, "sleep")] == ["Sleep low"]
    assert len(list_bands(QID)) == 3


def test_list_bands_requires_questionnaire_id():
    with pytest.raises(ValidationError):
        list_bands("  ")


def test_bulk_insert_reports_each_failure_without_aborting():
    result = insert_bands_bulk(
        QID,
        [
            _band(0, 33, "Low"),
            _band(30, 60, "Clash"),
            _band(70, 50, "Backwards"),
            _band(67, 100, "High"),
        ],
    )

    assert [b.level_name for b in result.applied] == ["Low", "High"]
    assert [f.item["index"] for f in result.failed] == [1, 2]
    assert isinstance(result.failed[0].error, RangeOverlap)
    assert isinstance(result.failed[1].error, InvalidRange)
    assert result.ok is False
    body = result.to_dict()
    assert body["failed"][0]["error"]["code"] == "RANGE_OVERLAP"


def test_bulk_insert_forces_questionnaire_id():
    result = insert_bands_bulk(QID, [{**_band(0, 10, "Low"), "questionnaire_id": "elsewhere"}])
    assert result.applied[0].questionnaire_id == QID
