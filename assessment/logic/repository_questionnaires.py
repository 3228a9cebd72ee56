"""Questionnaire-related data access helpers."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy import text as sql_text

from assessment.db.base import get_engine, utc_now_iso
from assessment.models.questionnaire import Questionnaire

logger = logging.getLogger(__name__)

_COLUMNS = "questionnaire_id, title, description, is_active, created_at, updated_at"


def _row_to_questionnaire(r: Mapping[str, Any]) -> Questionnaire:
    return Questionnaire(
        questionnaire_id=str(r["questionnaire_id"]),
        title=str(r["title"]),
        description=r["description"],
        is_active=bool(r["is_active"]),
        created_at=r["created_at"],
        updated_at=r["updated_at"],
    )


def insert_questionnaire_row(questionnaire_id: str, title: str, description: Optional[str]) -> None:
    """Insert a questionnaire row; new rows are always written inactive."""
    now = utc_now_iso()
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO questionnaire (questionnaire_id, title, description, is_active, created_at, updated_at)
                    VALUES (:id, :title, :descr, :off, :now, :now)
                    """
                ),
                {"id": questionnaire_id, "title": title, "descr": description, "off": False, "now": now},
            )
    except Exception:
        logger.error("insert_questionnaire_row failed questionnaire_id=%s", questionnaire_id, exc_info=True)
        raise


def update_questionnaire_fields(questionnaire_id: str, fields: Mapping[str, Any]) -> int:
    """Update title/description of one questionnaire; returns the affected row count."""
    allowed = {k: v for k, v in fields.items() if k in ("title", "description")}
    assignments = ", ".join(f"{k} = :{k}" for k in allowed)
    sets = f"{assignments}, updated_at = :now" if assignments else "updated_at = :now"
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(f"UPDATE questionnaire SET {sets} WHERE questionnaire_id = :id"),
                {**allowed, "now": utc_now_iso(), "id": questionnaire_id},
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("update_questionnaire_fields failed questionnaire_id=%s", questionnaire_id, exc_info=True)
        raise


def activate_exclusive(questionnaire_id: str) -> Optional[int]:
    """Make one questionnaire the only active one, in a single transaction.

    One UPDATE rewrites the flag of every row, so concurrent activations
    serialise on row locks and the later one overrides the earlier one
    instead of leaving two active. Rows whose flag does not change keep
    their ``updated_at``. Returns how many other questionnaires were switched
    off, or None when the target does not exist (nothing is written then).
    """
    eng = get_engine()
    try:
        with eng.begin() as conn:
            found = conn.execute(
                sql_text("SELECT 1 FROM questionnaire WHERE questionnaire_id = :id"),
                {"id": questionnaire_id},
            ).fetchone()
            if found is None:
                return None
            switched_off = conn.execute(
                sql_text("SELECT COUNT(*) FROM questionnaire WHERE questionnaire_id != :id AND is_active = :on"),
                {"id": questionnaire_id, "on": True},
            ).scalar_one()
            conn.execute(
                sql_text(
                    """
                    UPDATE questionnaire
                    SET updated_at = CASE WHEN is_active = (questionnaire_id = :id) THEN updated_at ELSE :now END,
                        is_active = (questionnaire_id = :id)
                    """
                ),
                {"id": questionnaire_id, "now": utc_now_iso()},
            )
            return int(switched_off)
    except Exception:
        logger.error("activate_exclusive failed questionnaire_id=%s", questionnaire_id, exc_info=True)
        raise


def set_active_flag(questionnaire_id: str, active: bool) -> int:
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text(
                    "UPDATE questionnaire SET is_active = :flag, updated_at = :now WHERE questionnaire_id = :id"
                ),
                {"flag": bool(active), "now": utc_now_iso(), "id": questionnaire_id},
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("set_active_flag failed questionnaire_id=%s active=%s", questionnaire_id, active, exc_info=True)
        raise


def delete_questionnaire_row(questionnaire_id: str) -> int:
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM questionnaire WHERE questionnaire_id = :id"),
                {"id": questionnaire_id},
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("delete_questionnaire_row failed questionnaire_id=%s", questionnaire_id, exc_info=True)
        raise


def get_questionnaire_row(questionnaire_id: str) -> Questionnaire | None:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_COLUMNS} FROM questionnaire WHERE questionnaire_id = :id"),
            {"id": questionnaire_id},
        ).mappings().fetchone()
    return _row_to_questionnaire(row) if row else None


def list_active_questionnaires() -> List[Questionnaire]:
    """Return every active questionnaire, most recently updated first.

    More than one row only appears when flags were written around
    ``activate_exclusive``; callers decide how to treat that.
    """
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                f"SELECT {_COLUMNS} FROM questionnaire WHERE is_active = :on ORDER BY updated_at DESC, questionnaire_id ASC"
            ),
            {"on": True},
        ).mappings().all()
    return [_row_to_questionnaire(r) for r in rows]


__all__ = [
    "insert_questionnaire_row",
    "update_questionnaire_fields",
    "activate_exclusive",
    "set_active_flag",
    "delete_questionnaire_row",
    "get_questionnaire_row",
    "list_active_questionnaires",
]
