"""Scoring-band data access helpers.

Encapsulates the SQL used by the range registry and the level resolver so
logic modules never embed statements. Every write runs in its own
transaction touching a single row; store failures are logged at ERROR with
``exc_info`` and re-raised for the caller to classify.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from sqlalchemy import text as sql_text

from assessment.db.base import get_engine, utc_now_iso
from assessment.models.scoring_band import ScoringBand, ScoringBandCreate

logger = logging.getLogger(__name__)

_BAND_COLUMNS = (
    "band_id, questionnaire_id, category_id, min_percent, max_percent, "
    "level_name, description, color, created_at, updated_at"
)


def _row_to_band(r: Mapping[str, Any]) -> ScoringBand:
    return ScoringBand(
        band_id=str(r["band_id"]),
        questionnaire_id=str(r["questionnaire_id"]),
        category_id=str(r["category_id"]) if r["category_id"] is not None else None,
        min_percent=float(r["min_percent"]),
        max_percent=float(r["max_percent"]),
        level_name=str(r["level_name"]),
        description=r["description"],
        color=str(r["color"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def insert_band_row(band_id: str, candidate: ScoringBandCreate) -> None:
    """Insert one band row. IntegrityError propagates to the caller."""
    now = utc_now_iso()
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO scoring_band (
                        band_id, questionnaire_id, category_id, scope_key, min_percent, max_percent,
                        level_name, description, color, created_at, updated_at
                    )
                    VALUES (:bid, :qid, :cid, :skey, :mn, :mx, :lvl, :descr, :color, :now, :now)
                    """
                ),
                {
                    "bid": band_id,
                    "qid": candidate.questionnaire_id,
                    "cid": candidate.category_id,
                    "skey": candidate.scope.key,
                    "mn": float(candidate.min_percent),
                    "mx": float(candidate.max_percent),
                    "lvl": candidate.level_name,
                    "descr": candidate.description,
                    "color": candidate.color,
                    "now": now,
                },
            )
    except Exception:
        logger.error("insert_band_row failed band_id=%s", band_id, exc_info=True)
        raise


def update_band_row(band_id: str, merged: ScoringBandCreate) -> int:
    """Overwrite a band row with ``merged``; returns the affected row count."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(
                    """
                    UPDATE scoring_band
                    SET questionnaire_id = :qid, category_id = :cid, scope_key = :skey,
                        min_percent = :mn, max_percent = :mx, level_name = :lvl,
                        description = :descr, color = :color, updated_at = :now
                    WHERE band_id = :bid
                    """
                ),
                {
                    "bid": band_id,
                    "qid": merged.questionnaire_id,
                    "cid": merged.category_id,
                    "skey": merged.scope.key,
                    "mn": float(merged.min_percent),
                    "mx": float(merged.max_percent),
                    "lvl": merged.level_name,
                    "descr": merged.description,
                    "color": merged.color,
                    "now": utc_now_iso(),
                },
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("update_band_row failed band_id=%s", band_id, exc_info=True)
        raise


def delete_band_row(band_id: str) -> int:
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM scoring_band WHERE band_id = :bid"),
                {"bid": band_id},
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("delete_band_row failed band_id=%s", band_id, exc_info=True)
        raise


def get_band_row(band_id: str) -> ScoringBand | None:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_BAND_COLUMNS} FROM scoring_band WHERE band_id = :bid"),
            {"bid": band_id},
        ).mappings().fetchone()
    return _row_to_band(row) if row else None


def list_bands_in_scope(questionnaire_id: str, scope_key: str) -> List[ScoringBand]:
    """Return one scope's bands ordered by min_percent (tie-breaker band_id)."""
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                f"""
                SELECT {_BAND_COLUMNS} FROM scoring_band
                WHERE questionnaire_id = :qid AND scope_key = :skey
                ORDER BY min_percent ASC, band_id ASC
                """
            ),
            {"qid": questionnaire_id, "skey": scope_key},
        ).mappings().all()
    return [_row_to_band(r) for r in rows]


def list_bands_for_questionnaire(questionnaire_id: str) -> List[ScoringBand]:
    """Return every band of a questionnaire, overall scope first."""
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                f"""
                SELECT {_BAND_COLUMNS} FROM scoring_band
                WHERE questionnaire_id = :qid
                ORDER BY scope_key ASC, min_percent ASC, band_id ASC
                """
            ),
            {"qid": questionnaire_id},
        ).mappings().all()
    return [_row_to_band(r) for r in rows]


def find_band_by_bounds(questionnaire_id: str, scope_key: str, min_percent: float, max_percent: float) -> ScoringBand | None:
    """Return the band occupying exactly these bounds (unique-index lookup)."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                f"""
                SELECT {_BAND_COLUMNS} FROM scoring_band
                WHERE questionnaire_id = :qid AND scope_key = :skey
                  AND min_percent = :mn AND max_percent = :mx
                """
            ),
            {"qid": questionnaire_id, "skey": scope_key, "mn": float(min_percent), "mx": float(max_percent)},
        ).mappings().fetchone()
    return _row_to_band(row) if row else None


__all__ = [
    "insert_band_row",
    "update_band_row",
    "delete_band_row",
    "get_band_row",
    "list_bands_in_scope",
    "list_bands_for_questionnaire",
    "find_band_by_bounds",
]
