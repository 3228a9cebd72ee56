"""Question-related repository helpers.

Encapsulates DB reads/writes used by the order sequencer, keeping logic
modules free of direct SQL. Each write is its own transaction over a single
row. Uniqueness of (questionnaire_id, order_number) is enforced by the
``uq_question_questionnaire_order`` index; IntegrityError is re-raised
unchanged so callers can report the collision.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.exc import IntegrityError

from assessment.db.base import get_engine, utc_now_iso
from assessment.models.question import Question

logger = logging.getLogger(__name__)

_QUESTION_COLUMNS = "question_id, questionnaire_id, category_id, question_text, order_number, created_at"


def _row_to_question(r: Mapping[str, Any]) -> Question:
    return Question(
        question_id=str(r["question_id"]),
        questionnaire_id=str(r["questionnaire_id"]),
        category_id=str(r["category_id"]) if r["category_id"] is not None else None,
        text=str(r["question_text"]),
        order_number=int(r["order_number"]),
        created_at=r["created_at"],
    )


def get_max_order_number(questionnaire_id: str) -> int:
    """Return MAX(order_number) for a questionnaire, 0 when it has no questions."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT COALESCE(MAX(order_number), 0) FROM question WHERE questionnaire_id = :qid"),
            {"qid": str(questionnaire_id)},
        ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def get_order_high_water(questionnaire_id: str) -> int:
    """Return the highest order number ever assigned, 0 when none recorded."""
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT high_water FROM question_order_mark WHERE questionnaire_id = :qid"),
            {"qid": str(questionnaire_id)},
        ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def raise_order_high_water(questionnaire_id: str, order_number: int) -> None:
    """Raise the stored high-water mark to ``order_number``; never lowers it.

    Single-statement upsert, supported by PostgreSQL and SQLite >= 3.24.
    """
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO question_order_mark (questionnaire_id, high_water)
                    VALUES (:qid, :n)
                    ON CONFLICT (questionnaire_id) DO UPDATE SET high_water =
                        CASE WHEN question_order_mark.high_water < excluded.high_water
                             THEN excluded.high_water
                             ELSE question_order_mark.high_water END
                    """
                ),
                {"qid": str(questionnaire_id), "n": int(order_number)},
            )
    except Exception:
        logger.error(
            "raise_order_high_water failed questionnaire_id=%s n=%s", questionnaire_id, order_number, exc_info=True
        )
        raise


def insert_question_row(
    *,
    question_id: str,
    questionnaire_id: str,
    category_id: str | None,
    text: str,
    order_number: int,
) -> None:
    """Insert a question row. IntegrityError on a taken order number propagates."""
    eng = get_engine()
    try:
        with eng.begin() as conn:
            conn.execute(
                sql_text(
                    """
                    INSERT INTO question (question_id, questionnaire_id, category_id, question_text, order_number, created_at)
                    VALUES (:id, :qid, :cid, :qtext, :ord, :now)
                    """
                ),
                {
                    "id": question_id,
                    "qid": questionnaire_id,
                    "cid": category_id,
                    "qtext": text,
                    "ord": int(order_number),
                    "now": utc_now_iso(),
                },
            )
    except IntegrityError:
        logger.info(
            "insert_question_row rejected question_id=%s questionnaire_id=%s order=%s",
            question_id,
            questionnaire_id,
            order_number,
        )
        raise
    except Exception:
        logger.error("insert_question_row failed question_id=%s", question_id, exc_info=True)
        raise


def update_question_order(question_id: str, questionnaire_id: str, order_number: int) -> int:
    """Set one question's order number; returns the affected row count.

    The questionnaire id is part of the filter so a question can only be
    renumbered within its own questionnaire.
    """
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text(
                "UPDATE question SET order_number = :ord WHERE question_id = :id AND questionnaire_id = :qid"
            ),
            {"ord": int(order_number), "id": str(question_id), "qid": str(questionnaire_id)},
        )
        return int(result.rowcount or 0)


def delete_question_row(question_id: str) -> int:
    eng = get_engine()
    try:
        with eng.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM question WHERE question_id = :id"),
                {"id": str(question_id)},
            )
            return int(result.rowcount or 0)
    except Exception:
        logger.error("delete_question_row failed question_id=%s", question_id, exc_info=True)
        raise


def get_question_row(question_id: str) -> Question | None:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(f"SELECT {_QUESTION_COLUMNS} FROM question WHERE question_id = :id"),
            {"id": str(question_id)},
        ).mappings().fetchone()
    return _row_to_question(row) if row else None


def find_question_by_order(questionnaire_id: str, order_number: int) -> Question | None:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text(
                f"SELECT {_QUESTION_COLUMNS} FROM question WHERE questionnaire_id = :qid AND order_number = :ord"
            ),
            {"qid": str(questionnaire_id), "ord": int(order_number)},
        ).mappings().fetchone()
    return _row_to_question(row) if row else None


def list_questions_for_questionnaire(questionnaire_id: str) -> List[Question]:
    """Return a questionnaire's questions ordered by order_number."""
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text(
                f"""
                SELECT {_QUESTION_COLUMNS} FROM question
                WHERE questionnaire_id = :qid
                ORDER BY order_number ASC, question_id ASC
                """
            ),
            {"qid": str(questionnaire_id)},
        ).mappings().all()
    return [_row_to_question(r) for r in rows]


__all__ = [
    "get_max_order_number",
    "get_order_high_water",
    "raise_order_high_water",
    "insert_question_row",
    "update_question_order",
    "delete_question_row",
    "get_question_row",
    "find_question_by_order",
    "list_questions_for_questionnaire",
]
