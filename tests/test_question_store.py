from datetime import timedelta
from itertools import permutations

import pytest

from pulse_app.core.errors import SessionExpiredError, StaleReferenceError
from pulse_app.core.notices import NoticeBoard, NoticeLevel
from pulse_app.core.services.question_store import ORDER_FIELD, OrderedQuestionStore, questions_path
from pulse_app.store.base import QuerySnapshot, join_path

CODE = "4821"


def _seed(store, orders: dict[str, int | None], clock=None):
    for question_id, order in orders.items():
        document = {"text": f"Question {question_id}", "type": "choice", "options": ["A", "B"]}
        if order is not None:
            document[ORDER_FIELD] = order
        if clock is not None:
            document["createdAt"] = clock.now()
        store.set_document(join_path(questions_path(CODE), question_id), document)


def _follow(store, questions: OrderedQuestionStore, observed: list[list[str]] | None = None):
    def on_snapshot(snapshot: QuerySnapshot) -> None:
        if questions.apply_snapshot(snapshot) and observed is not None:
            observed.append(questions.ids())

    return store.subscribe_collection(questions.path, on_snapshot, order_by=ORDER_FIELD)


def _stored_order(store, question_id):
    return store.get_document(join_path(questions_path(CODE), question_id)).data.get(ORDER_FIELD)


def test_ensure_order_numbers_legacy_questions_after_existing_ones(store, clock):
    _seed(store, {"b": 0})
    clock.advance(5)
    _seed(store, {"late": None}, clock)
    clock.advance(-10)
    _seed(store, {"early": None}, clock)
    questions = OrderedQuestionStore(store, CODE)

    assert questions.ensure_order() == 2
    assert questions.ensure_order() == 0

    assert _stored_order(store, "b") == 0
    assert _stored_order(store, "early") == 1
    assert _stored_order(store, "late") == 2


def test_snapshot_orders_by_order_field(store):
    _seed(store, {"x": 2, "y": 0, "z": 1})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    assert questions.is_loaded
    assert questions.ids() == ["y", "z", "x"]


def test_reorder_writes_only_changed_positions(store):
    _seed(store, {"a": 0, "b": 1, "c": 2})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    assert questions.reorder(["a", "c", "b"]) == 2

    assert [_stored_order(store, qid) for qid in ("a", "b", "c")] == [0, 2, 1]


def test_every_permutation_is_stored_in_order(store):
    ids = ["a", "b", "c", "d"]
    _seed(store, {qid: index for index, qid in enumerate(ids)})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    for permutation in permutations(ids):
        questions.reorder(list(permutation))

        orders = {qid: _stored_order(store, qid) for qid in ids}
        assert sorted(ids, key=orders.__getitem__) == list(permutation)
        assert len(set(orders.values())) == len(ids)
        assert questions.ids() == list(permutation)


def test_intermediate_snapshots_never_shuffle_a_reorder(store):
    _seed(store, {"a": 0, "b": 1, "c": 2})
    questions = OrderedQuestionStore(store, CODE)
    observed: list[list[str]] = []
    _follow(store, questions, observed)

    questions.reorder(["c", "a", "b"])

    # One snapshot arrives per written question; each must show the new order.
    assert observed[1:] and all(ids == ["c", "a", "b"] for ids in observed[1:])
    assert questions.ids() == ["c", "a", "b"]


def test_reorder_with_unknown_ids_is_stale(store):
    _seed(store, {"a": 0, "b": 1})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    with pytest.raises(StaleReferenceError):
        questions.reorder(["a", "ghost"])


def test_failed_reorder_write_posts_notice(store):
    _seed(store, {"a": 0, "b": 1})
    notices = NoticeBoard()
    questions = OrderedQuestionStore(store, CODE, notices)
    _follow(store, questions)
    store.set_offline(True)

    questions.reorder(["b", "a"])

    drained = notices.drain()
    assert drained and all(notice.level is NoticeLevel.ERROR for notice in drained)


def test_add_question_appends_after_highest_order(store, clock):
    _seed(store, {"a": 0, "b": 4})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    added = questions.add_question()

    stored = store.get_document(join_path(questions_path(CODE), added.id)).data
    assert stored[ORDER_FIELD] == 5
    assert stored["createdAt"] == clock.now()
    assert stored["type"] == "choice" and stored["options"] == ["", ""]
    assert questions.ids()[-1] == added.id


def test_update_never_touches_order_or_creation_time(store):
    _seed(store, {"a": 3})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    questions.update_question("a", {"text": "Edited", ORDER_FIELD: 0, "createdAt": None})

    stored = store.get_document(join_path(questions_path(CODE), "a")).data
    assert stored["text"] == "Edited"
    assert stored[ORDER_FIELD] == 3


def test_deleting_selected_question_selects_first_remaining(store):
    _seed(store, {"a": 0, "b": 1, "c": 2})
    questions = OrderedQuestionStore(store, CODE)
    _follow(store, questions)

    assert questions.delete_question("b", "b") == "a"
    assert questions.delete_question("c", "a") == "a"
    assert questions.ids() == ["a"]


def test_deleting_last_question_creates_replacement_first(store):
    _seed(store, {"only": 0})
    questions = OrderedQuestionStore(store, CODE)
    observed: list[list[str]] = []
    _follow(store, questions, observed)

    replacement = questions.delete_question("only", "only")

    assert replacement is not None and replacement != "only"
    assert questions.ids() == [replacement]
    assert all(observed), "the question list was observed empty"


def test_ensure_not_empty_creates_exactly_one_question(store):
    questions = OrderedQuestionStore(store, CODE)
    questions.apply_snapshot(QuerySnapshot(path=questions.path, documents=(), generation=1))

    created = questions.ensure_not_empty()
    assert created is not None
    assert questions.is_creating

    # A snapshot taken before the creation was observed must not trigger another.
    questions.apply_snapshot(QuerySnapshot(path=questions.path, documents=(), generation=2))
    assert questions.ensure_not_empty() is None

    assert len(store.list_documents(questions.path)) == 1


def test_ensure_not_empty_waits_for_first_snapshot(store):
    questions = OrderedQuestionStore(store, CODE)

    assert questions.ensure_not_empty() is None
    assert store.list_documents(questions.path) == []


def test_failed_default_creation_releases_the_latch(store):
    questions = OrderedQuestionStore(store, CODE)
    questions.apply_snapshot(QuerySnapshot(path=questions.path, documents=(), generation=1))
    store.set_offline(True)

    questions.ensure_not_empty()

    assert not questions.is_creating
    assert questions.ids() == []


def test_guard_blocks_writes(store):
    def expired() -> None:
        raise SessionExpiredError("expired")

    _seed(store, {"a": 0})
    questions = OrderedQuestionStore(store, CODE, guard=expired)
    _follow(store, questions)

    with pytest.raises(SessionExpiredError):
        questions.add_question()
    with pytest.raises(SessionExpiredError):
        questions.update_question("a", {"text": "x"})
    assert questions.ids() == ["a"]


def test_created_at_of_legacy_rows_can_be_naive(store, clock):
    store.set_document(
        join_path(questions_path(CODE), "naive"),
        {"text": "old", "createdAt": clock.now().replace(tzinfo=None) - timedelta(days=1)},
    )
    _seed(store, {"dated": None}, clock)

    assert OrderedQuestionStore(store, CODE).ensure_order() == 2
    assert _stored_order(store, "naive") == 0
    assert _stored_order(store, "dated") == 1
