"""Question order numbering within a questionnaire.

Order numbers are positive integers, unique per questionnaire and shared by
nothing else: two questionnaires may each have a question numbered 1. Gaps
are allowed and deletes never compact the sequence.

Uniqueness is detected at write time by the store's
``uq_question_questionnaire_order`` index rather than by a pre-read, so
the read/write race on auto-assigned numbers ends in a ``DuplicateOrder``
for the losing writer instead of a duplicate row. Nothing here retries.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError

from assessment.config import REORDER_SEQUENTIAL, REORDER_STAGED, load_config
from assessment.logic.errors import DuplicateOrder, NotFoundError, ValidationError
from assessment.logic.repository_questions import (
    delete_question_row,
    find_question_by_order,
    get_max_order_number,
    get_order_high_water,
    get_question_row,
    insert_question_row,
    list_questions_for_questionnaire,
    raise_order_high_water,
    update_question_order,
)
from assessment.logic.validation import parse_payload, validate_order_number
from assessment.models.batch import BatchFailure, BatchResult
from assessment.models.question import Question, QuestionCreate, ReorderItem

logger = logging.getLogger(__name__)

# Largest value the INTEGER order_number column holds on every supported store
STORE_ORDER_LIMIT = 2**31 - 1


def _require_questionnaire_id(questionnaire_id: Any) -> str:
    if not isinstance(questionnaire_id, str) or not questionnaire_id.strip():
        raise ValidationError("questionnaire_id is required", context={"questionnaire_id": questionnaire_id})
    return questionnaire_id


def _duplicate_order(questionnaire_id: str, order_number: int, *, question_id: Optional[str] = None) -> DuplicateOrder:
    holder = find_question_by_order(questionnaire_id, order_number)
    context = {
        "questionnaire_id": questionnaire_id,
        "order_number": order_number,
        "conflicting_question_id": holder.question_id if holder else None,
    }
    if question_id is not None:
        context["question_id"] = question_id
    return DuplicateOrder("Order number already exists in this questionnaire", context=context)


def next_order_number(questionnaire_id: str) -> int:
    """Return the next free order number for a questionnaire.

    max(order_number) + 1, or 1 for an empty questionnaire. The persisted
    high-water mark is consulted as well, so a number freed by deleting the
    last question is not handed out again.
    """
    _require_questionnaire_id(questionnaire_id)
    current_max = get_max_order_number(questionnaire_id)
    high_water = get_order_high_water(questionnaire_id)
    return max(current_max, high_water) + 1


def assign_on_create(question: "QuestionCreate | Mapping[str, Any]") -> Question:
    """Insert a question, auto-assigning its order number when omitted.

    Raises ``DuplicateOrder`` when the store rejects the number as taken in
    the same questionnaire.
    """
    payload = parse_payload(QuestionCreate, question)
    order_number = payload.order_number
    auto = order_number is None
    if order_number is None:
        order_number = validate_order_number(next_order_number(payload.questionnaire_id))

    question_id = str(uuid.uuid4())
    try:
        insert_question_row(
            question_id=question_id,
            questionnaire_id=payload.questionnaire_id,
            category_id=payload.category_id,
            text=payload.text,
            order_number=order_number,
        )
    except IntegrityError as exc:
        raise _duplicate_order(payload.questionnaire_id, order_number) from exc

    raise_order_high_water(payload.questionnaire_id, order_number)
    created = get_question_row(question_id)
    if created is None:
        raise NotFoundError("question vanished after insert", context={"question_id": question_id})
    logger.info(
        "question_created question_id=%s questionnaire_id=%s order=%s auto_assigned=%s",
        question_id,
        payload.questionnaire_id,
        order_number,
        auto,
    )
    return created


def get_question(question_id: str) -> Question:
    found = get_question_row(question_id)
    if found is None:
        raise NotFoundError("Question not found", context={"question_id": question_id})
    return found


def list_questions(questionnaire_id: str) -> List[Question]:
    _require_questionnaire_id(questionnaire_id)
    return list_questions_for_questionnaire(questionnaire_id)


def delete_question(question_id: str) -> Question:
    """Delete a question; remaining numbers are left untouched."""
    current = get_question(question_id)
    if delete_question_row(question_id) == 0:
        raise NotFoundError("Question not found", context={"question_id": question_id})
    logger.info(
        "question_deleted question_id=%s questionnaire_id=%s order=%s",
        question_id,
        current.questionnaire_id,
        current.order_number,
    )
    return current


# ---------------------------------------------------------------------------
# Batch reorder
# ---------------------------------------------------------------------------


def _coerce_item(raw: Any) -> ReorderItem:
    if isinstance(raw, ReorderItem):
        item = raw
    elif isinstance(raw, Mapping):
        item = parse_payload(ReorderItem, raw)
    elif isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)) and len(raw) == 2:
        question_id, order_number = raw
        if not isinstance(question_id, str) or not question_id:
            raise ValidationError("question_id must be a non-empty string", context={"item": list(raw)})
        validate_order_number(order_number)
        item = ReorderItem(question_id=question_id, order_number=order_number)
    else:
        raise ValidationError("reorder item must be (question_id, order_number)", context={"item": repr(raw)})
    validate_order_number(item.order_number)
    return item


def _prepare(raw_items: Iterable[Any], result: BatchResult) -> List[ReorderItem]:
    """Validate items; invalid or repeated entries go straight to ``failed``."""
    valid: List[ReorderItem] = []
    seen: set[str] = set()
    for raw in raw_items:
        try:
            item = _coerce_item(raw)
        except ValidationError as exc:
            result.failed.append(BatchFailure(item=raw, error=exc))
            continue
        if item.question_id in seen:
            result.failed.append(BatchFailure(
                item=item,
                error=ValidationError(
                    "question listed more than once in reorder batch",
                    context={"question_id": item.question_id},
                ),
            ))
            continue
        seen.add(item.question_id)
        valid.append(item)
    return valid


def _not_found(questionnaire_id: str, item: ReorderItem) -> NotFoundError:
    return NotFoundError(
        "Question not found in this questionnaire",
        context={"questionnaire_id": questionnaire_id, "question_id": item.question_id},
    )


def _apply_sequential(questionnaire_id: str, items: List[ReorderItem], result: BatchResult) -> None:
    # One write per item straight to the final value; a pure swap collides
    for item in items:
        try:
            affected = update_question_order(item.question_id, questionnaire_id, item.order_number)
        except IntegrityError:
            result.failed.append(BatchFailure(
                item=item,
                error=_duplicate_order(questionnaire_id, item.order_number, question_id=item.question_id),
            ))
            continue
        if affected == 0:
            result.failed.append(BatchFailure(item=item, error=_not_found(questionnaire_id, item)))
            continue
        result.applied.append(item)


def _order_taken(questionnaire_id: str, item: ReorderItem, holder_id: str, message: str) -> DuplicateOrder:
    return DuplicateOrder(
        message,
        context={
            "questionnaire_id": questionnaire_id,
            "question_id": item.question_id,
            "order_number": item.order_number,
            "conflicting_question_id": holder_id,
        },
    )


def _claim_targets(
    questionnaire_id: str,
    items: List[ReorderItem],
    current: Mapping[str, Question],
    result: BatchResult,
) -> List[ReorderItem]:
    """Decide from one snapshot which items can move; the rest fail unwritten.

    An item fails when its question is missing, when an earlier item already
    claimed its target, or when its target is held by a question that is not
    moving. A failed item pins its question to its current number, which may
    in turn block another target, so the held set is re-evaluated until stable.
    """
    moving: Dict[str, ReorderItem] = {}
    claimed: Dict[int, str] = {}
    for item in items:
        if item.question_id not in current:
            result.failed.append(BatchFailure(item=item, error=_not_found(questionnaire_id, item)))
            continue
        twin = claimed.get(item.order_number)
        if twin is not None:
            result.failed.append(BatchFailure(
                item=item,
                error=_order_taken(
                    questionnaire_id, item, twin, "Order number requested more than once in reorder batch"
                ),
            ))
            continue
        claimed[item.order_number] = item.question_id
        moving[item.question_id] = item

    blocked = True
    while blocked:
        blocked = False
        held = {q.order_number: q.question_id for q in current.values() if q.question_id not in moving}
        for question_id, item in moving.items():
            holder = held.get(item.order_number)
            if holder is None:
                continue
            del moving[question_id]
            result.failed.append(BatchFailure(
                item=item,
                error=_order_taken(
                    questionnaire_id, item, holder, "Order number already exists in this questionnaire"
                ),
            ))
            blocked = True
            break
    return list(moving.values())


def _apply_staged(questionnaire_id: str, items: List[ReorderItem], result: BatchResult) -> None:
    """Park every movable item above all live numbers, then write finals.

    Parking frees every number the batch is vacating, so permutations such as
    a pure swap succeed. Items that cannot move are rejected before any write.
    A final write can still collide with a concurrent writer; such items are
    moved back to their original number after every final value is written,
    or left parked when that number is gone too.
    """
    current = {q.question_id: q for q in list_questions_for_questionnaire(questionnaire_id)}
    movable = _claim_targets(questionnaire_id, items, current, result)
    offset = max(
        [q.order_number for q in current.values()] + [i.order_number for i in movable] + [0]
    )

    parked: List[Tuple[ReorderItem, int, int]] = []
    for item in movable:
        parked_at = offset + item.order_number
        if parked_at > STORE_ORDER_LIMIT:
            result.failed.append(BatchFailure(
                item=item,
                error=ValidationError(
                    "order_number cannot be staged within the stored integer range",
                    context={"question_id": item.question_id, "order_number": item.order_number, "offset": offset},
                ),
            ))
            continue
        try:
            affected = update_question_order(item.question_id, questionnaire_id, parked_at)
        except IntegrityError:
            result.failed.append(BatchFailure(
                item=item,
                error=_duplicate_order(questionnaire_id, parked_at, question_id=item.question_id),
            ))
            continue
        if affected == 0:
            result.failed.append(BatchFailure(item=item, error=_not_found(questionnaire_id, item)))
            continue
        parked.append((item, current[item.question_id].order_number, parked_at))

    stranded: List[Tuple[ReorderItem, int, int]] = []
    for item, original, parked_at in parked:
        try:
            affected = update_question_order(item.question_id, questionnaire_id, item.order_number)
        except IntegrityError:
            stranded.append((item, original, parked_at))
            continue
        if affected == 0:
            result.failed.append(BatchFailure(item=item, error=_not_found(questionnaire_id, item)))
            continue
        result.applied.append(item)

    for item, original, parked_at in stranded:
        err = _duplicate_order(questionnaire_id, item.order_number, question_id=item.question_id)
        err.context["restored_order"] = _restore(questionnaire_id, item, original, parked_at)
        result.failed.append(BatchFailure(item=item, error=err))


def _restore(questionnaire_id: str, item: ReorderItem, original: int, parked_at: int) -> int:
    try:
        update_question_order(item.question_id, questionnaire_id, original)
        return original
    except IntegrityError:
        logger.error(
            "reorder_restore_failed questionnaire_id=%s question_id=%s original=%s parked_at=%s",
            questionnaire_id,
            item.question_id,
            original,
            parked_at,
        )
        return parked_at


def reorder(
    questionnaire_id: str,
    items: Iterable[Any],
    *,
    strategy: Optional[str] = None,
) -> BatchResult:
    """Reassign order numbers for many questions of one questionnaire.

    Each reassignment is an independent single-row write; the batch is not
    atomic. The result lists every applied item and every failed item with
    its error (``ValidationError``, ``NotFoundError`` or ``DuplicateOrder``).

    ``strategy`` defaults to the configured ``reorder.strategy``:
    ``staged`` checks every target against one snapshot, rejects items that
    cannot move without writing them, and parks the rest on temporary numbers
    so a pure swap succeeds; ``sequential`` writes final values directly and
    reports the transient collision of a swap as ``DuplicateOrder``.
    """
    _require_questionnaire_id(questionnaire_id)
    chosen = strategy or load_config().reorder.strategy
    if chosen not in (REORDER_STAGED, REORDER_SEQUENTIAL):
        raise ValidationError("unknown reorder strategy", context={"strategy": chosen})

    result = BatchResult()
    valid = _prepare(items, result)
    if chosen == REORDER_SEQUENTIAL:
        _apply_sequential(questionnaire_id, valid, result)
    else:
        _apply_staged(questionnaire_id, valid, result)

    if result.applied:
        raise_order_high_water(questionnaire_id, max(i.order_number for i in result.applied))
    logger.info(
        "questions_reordered questionnaire_id=%s strategy=%s applied=%s failed=%s",
        questionnaire_id,
        chosen,
        len(result.applied),
        len(result.failed),
    )
    return result


__all__ = [
    "next_order_number",
    "assign_on_create",
    "get_question",
    "list_questions",
    "delete_question",
    "reorder",
]
