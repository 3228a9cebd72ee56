"""Functional tests for question order numbering and batch reorder."""

from __future__ import annotations

import pytest

from assessment.config import REORDER_SEQUENTIAL, REORDER_STAGED
from assessment.logic.errors import DuplicateOrder, NotFoundError, ValidationError
from assessment.logic.order_sequences import (
    assign_on_create,
    delete_question,
    get_question,
    list_questions,
    next_order_number,
    reorder,
)
from assessment.models.question import MAX_ORDER_NUMBER

QID = "q-ordering"


def _question(text="How did you sleep?", questionnaire_id=QID, **extra):
    return {"questionnaire_id": questionnaire_id, "text": text, **extra}


def _orders(questionnaire_id=QID):
    return {q.question_id: q.order_number for q in list_questions(questionnaire_id)}


# -----------------------------
# next_order_number / assign_on_create
# -----------------------------


def test_next_order_number_starts_at_one_and_never_reuses_deleted_numbers():
    assert next_order_number(QID) == 1

    first = assign_on_create(_question())
    assert first.order_number == 1
    assert next_order_number(QID) == 2

    delete_question(first.question_id)
    assert next_order_number(QID) == 2


def test_auto_assignment_appends_after_explicit_numbers():
    assign_on_create(_question(order_number=5))
    appended = assign_on_create(_question("Appetite?"))
    assert appended.order_number == 6


def test_gaps_are_allowed():
    assign_on_create(_question(order_number=1))
    assign_on_create(_question(order_number=4))
    assert sorted(_orders().values()) == [1, 4]


def test_duplicate_order_in_same_questionnaire_is_rejected():
    holder = assign_on_create(_question(order_number=3))

    with pytest.raises(DuplicateOrder) as excinfo:
        assign_on_create(_question("Energy?", order_number=3))
    assert excinfo.value.context["questionnaire_id"] == QID
    assert excinfo.value.context["order_number"] == 3
    assert excinfo.value.context["conflicting_question_id"] == holder.question_id
    assert len(list_questions(QID)) == 1


def test_same_order_in_other_questionnaire_succeeds():
    assign_on_create(_question(order_number=1))
    other = assign_on_create(_question(questionnaire_id="q-elsewhere", order_number=1))
    assert other.order_number == 1


def test_concurrent_auto_assignment_loser_gets_duplicate_order(monkeypatch):
    winner = assign_on_create(_question())
    # Both writers computed the same next number before either inserted
    monkeypatch.setattr("assessment.logic.order_sequences.next_order_number", lambda qid: 1)

    with pytest.raises(DuplicateOrder) as excinfo:
        assign_on_create(_question("Second writer"))
    assert excinfo.value.context["conflicting_question_id"] == winner.question_id


@pytest.mark.parametrize("bad", [0, -3])
def test_order_number_below_one_is_validation_error(bad):
    with pytest.raises(ValidationError):
        assign_on_create(_question(order_number=bad))


def test_question_text_is_required():
    with pytest.raises(ValidationError):
        assign_on_create(_question(text="   "))


def test_delete_keeps_remaining_numbers():
    a = assign_on_create(_question("A"))
    b = assign_on_create(_question("B"))
    c = assign_on_create(_question("C"))

    delete_question(b.question_id)

    assert _orders() == {a.question_id: 1, c.question_id: 3}
    with pytest.raises(NotFoundError):
        get_question(b.question_id)
    with pytest.raises(NotFoundError):
        delete_question(b.question_id)


# -----------------------------
# reorder
# -----------------------------


def test_staged_reorder_swaps_two_questions():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))

    result = reorder(QID, [(q1.question_id, 2), (q2.question_id, 1)], strategy=REORDER_STAGED)

    assert result.ok
    assert len(result.applied) == 2
    assert _orders() == {q1.question_id: 2, q2.question_id: 1}


def test_staged_is_the_configured_default(monkeypatch):
    monkeypatch.delenv("REORDER_STRATEGY", raising=False)
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))

    assert reorder(QID, [(q1.question_id, 2), (q2.question_id, 1)]).ok


def test_sequential_reorder_reports_swap_collision():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))

    result = reorder(QID, [(q1.question_id, 2), (q2.question_id, 1)], strategy=REORDER_SEQUENTIAL)

    assert result.applied == []
    assert [f.item.question_id for f in result.failed] == [q1.question_id, q2.question_id]
    assert all(isinstance(f.error, DuplicateOrder) for f in result.failed)
    assert result.failed[0].error.context["conflicting_question_id"] == q2.question_id
    assert result.failed[1].error.context["conflicting_question_id"] == q1.question_id
    assert _orders() == {q1.question_id: 1, q2.question_id: 2}


def test_sequential_strategy_from_environment(monkeypatch):
    monkeypatch.setenv("REORDER_STRATEGY", "sequential")
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))

    result = reorder(QID, [(q1.question_id, 2), (q2.question_id, 1)])
    assert not result.ok


def test_reorder_collision_with_question_outside_batch_is_rejected_unwritten():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))

    result = reorder(QID, [{"question_id": q1.question_id, "order_number": 2}])

    assert len(result.failed) == 1
    error = result.failed[0].error
    assert isinstance(error, DuplicateOrder)
    assert error.context["conflicting_question_id"] == q2.question_id
    assert "restored_order" not in error.context
    assert _orders() == {q1.question_id: 1, q2.question_id: 2}


@pytest.mark.parametrize("first_item", ["blocked", "dependent"])
def test_blocked_item_pins_its_number_regardless_of_item_order(first_item):
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    q3 = assign_on_create(_question("Third"))
    blocked = (q1.question_id, 3)
    dependent = (q2.question_id, 1)
    items = [blocked, dependent] if first_item == "blocked" else [dependent, blocked]

    result = reorder(QID, items)

    assert result.applied == []
    conflicts = {f.item.question_id: f.error.context["conflicting_question_id"] for f in result.failed}
    assert conflicts == {q1.question_id: q3.question_id, q2.question_id: q1.question_id}
    assert all(isinstance(f.error, DuplicateOrder) for f in result.failed)
    assert _orders() == {q1.question_id: 1, q2.question_id: 2, q3.question_id: 3}


def test_rotation_inside_batch_applies_every_item():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    q3 = assign_on_create(_question("Third"))

    result = reorder(QID, [(q1.question_id, 2), (q2.question_id, 3), (q3.question_id, 1)])

    assert result.ok
    assert _orders() == {q1.question_id: 2, q2.question_id: 3, q3.question_id: 1}


def test_final_write_losing_to_concurrent_writer_is_restored(monkeypatch):
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    # Snapshot taken before q2 was committed by another writer
    monkeypatch.setattr(
        "assessment.logic.order_sequences.list_questions_for_questionnaire",
        lambda qid: [q1],
    )

    result = reorder(QID, [(q1.question_id, 2)])

    assert result.applied == []
    error = result.failed[0].error
    assert isinstance(error, DuplicateOrder)
    assert error.context["conflicting_question_id"] == q2.question_id
    assert error.context["restored_order"] == 1
    assert get_question(q1.question_id).order_number == 1
    assert get_question(q2.question_id).order_number == 2


def test_reorder_reports_each_item_independently():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    foreign = assign_on_create(_question("Foreign", questionnaire_id="q-elsewhere"))

    result = reorder(
        QID,
        [
            (q1.question_id, 10),
            (q2.question_id, 0),
            ("missing", 4),
            (foreign.question_id, 5),
            (q1.question_id, 11),
        ],
    )

    assert [i.question_id for i in result.applied] == [q1.question_id]
    errors = [type(f.error) for f in result.failed]
    assert errors == [ValidationError, ValidationError, NotFoundError, NotFoundError]
    assert _orders() == {q1.question_id: 10, q2.question_id: 2}
    assert get_question(foreign.question_id).order_number == 1


def test_reorder_duplicate_targets_within_batch():
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    q3 = assign_on_create(_question("Third"))

    result = reorder(QID, [(q1.question_id, 7), (q2.question_id, 7)])

    assert [i.question_id for i in result.applied] == [q1.question_id]
    assert isinstance(result.failed[0].error, DuplicateOrder)
    assert result.failed[0].error.context["conflicting_question_id"] == q1.question_id
    assert _orders() == {q1.question_id: 7, q2.question_id: 2, q3.question_id: 3}


def test_reorder_raises_high_water_mark():
    q1 = assign_on_create(_question("First"))
    reorder(QID, [(q1.question_id, 9)])
    delete_question(q1.question_id)
    assert next_order_number(QID) == 10


def test_reorder_rejects_unknown_strategy():
    with pytest.raises(ValidationError):
        reorder(QID, [], strategy="shuffle")


def test_reorder_empty_batch_is_ok():
    result = reorder(QID, [])
    assert result.ok
    assert result.to_dict() == {"applied": [], "failed": []}


# -----------------------------
# order number bounds
# -----------------------------


def test_largest_order_number_is_accepted_and_can_be_reordered_to():
    top = assign_on_create(_question(order_number=MAX_ORDER_NUMBER))
    q1 = assign_on_create(_question("First", order_number=1))

    assert top.order_number == MAX_ORDER_NUMBER
    result = reorder(QID, [(top.question_id, 2), (q1.question_id, MAX_ORDER_NUMBER)])
    assert result.ok
    assert _orders() == {top.question_id: 2, q1.question_id: MAX_ORDER_NUMBER}


def test_order_number_above_limit_is_validation_error():
    with pytest.raises(ValidationError):
        assign_on_create(_question(order_number=MAX_ORDER_NUMBER + 1))

    q1 = assign_on_create(_question("First"))
    result = reorder(QID, [(q1.question_id, MAX_ORDER_NUMBER + 1)])
    assert isinstance(result.failed[0].error, ValidationError)
    assert _orders() == {q1.question_id: 1}


def test_auto_assignment_past_limit_is_validation_error():
    assign_on_create(_question(order_number=MAX_ORDER_NUMBER))
    with pytest.raises(ValidationError):
        assign_on_create(_question("Overflow"))
    assert len(list_questions(QID)) == 1


def test_item_that_cannot_be_staged_fails_without_writing(monkeypatch):
    q1 = assign_on_create(_question("First"))
    q2 = assign_on_create(_question("Second"))
    monkeypatch.setattr("assessment.logic.order_sequences.STORE_ORDER_LIMIT", 5)

    result = reorder(QID, [(q1.question_id, 4)])

    assert result.applied == []
    assert isinstance(result.failed[0].error, ValidationError)
    assert _orders() == {q1.question_id: 1, q2.question_id: 2}
