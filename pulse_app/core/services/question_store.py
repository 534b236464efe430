"""Service keeping the ordered question list of one session."""

from __future__ import annotations

from concurrent.futures import Future
from datetime import datetime, timezone
import logging
from threading import RLock
from typing import Any, Callable, Mapping, Sequence

from pulse_app.constants.session_constants import QUESTIONS_COLLECTION, SESSIONS_COLLECTION
from pulse_app.core.errors import StaleReferenceError
from pulse_app.core.models import Question
from pulse_app.core.notices import NoticeBoard
from pulse_app.store.base import (
    SERVER_TIMESTAMP,
    DocumentStore,
    QuerySnapshot,
    SnapshotGate,
    join_path,
)

logger = logging.getLogger(__name__)

ORDER_FIELD = "order"
_LATEST = datetime.max.replace(tzinfo=timezone.utc)


def questions_path(session_code: str) -> str:
    return join_path(SESSIONS_COLLECTION, session_code, QUESTIONS_COLLECTION)


def _sort_key(question: Question) -> tuple[bool, int, str]:
    return (question.order is None, question.order or 0, question.id)


class OrderedQuestionStore:
    """Local ordered view of a session's questions plus the writes that change it.

    The local list follows the store's ordered query. Reorders are applied to
    the local list first and kept as an overlay of expected order values
    until the store echoes each of them back, so intermediate snapshots (one
    per written question) never shuffle the list the host just arranged.
    """

    def __init__(
        self,
        store: DocumentStore,
        session_code: str,
        notices: NoticeBoard | None = None,
        guard: Callable[[], None] | None = None,
    ) -> None:
        self._store = store
        self._session_code = session_code
        self._path = questions_path(session_code)
        self._notices = notices or NoticeBoard()
        self._guard = guard
        self._lock = RLock()
        self._gate = SnapshotGate()
        self._questions: list[Question] = []
        self._expected_orders: dict[str, int] = {}
        self._loaded = False
        self._order_ensured = False
        self._creating = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def is_loaded(self) -> bool:
        with self._lock:
            return self._loaded

    @property
    def is_creating(self) -> bool:
        with self._lock:
            return self._creating

    @property
    def questions(self) -> list[Question]:
        with self._lock:
            return list(self._questions)

    def ids(self) -> list[str]:
        with self._lock:
            return [question.id for question in self._questions]

    def get(self, question_id: str) -> Question | None:
        with self._lock:
            return next((question for question in self._questions if question.id == question_id), None)

    def require(self, question_id: str) -> Question:
        question = self.get(question_id)
        if question is None:
            raise StaleReferenceError(f"Question {question_id} no longer exists.")
        return question

    # --- Snapshots ---

    def apply_snapshot(self, snapshot: QuerySnapshot) -> bool:
        """Replace the local list with a newer snapshot; older ones are ignored."""
        with self._lock:
            if not self._gate.accept(snapshot):
                return False
            incoming = [
                Question.from_document(document.id, document.data)
                for document in snapshot.documents
                if document.data is not None
            ]
            for question in incoming:
                expected = self._expected_orders.get(question.id)
                if expected is not None and question.order == expected:
                    del self._expected_orders[question.id]
            present = {question.id for question in incoming}
            for stale_id in set(self._expected_orders) - present:
                del self._expected_orders[stale_id]
            merged = [
                question.with_changes(order=self._expected_orders[question.id])
                if question.id in self._expected_orders
                else question
                for question in incoming
            ]
            merged.sort(key=_sort_key)
            self._questions = merged
            self._loaded = True
            if merged:
                self._creating = False
            return True

    # --- Order maintenance ---

    def ensure_order(self) -> int:
        """Give every legacy question lacking an order a value; runs once per load.

        New values continue after the largest existing order, in creation
        order (document id breaks ties), so the result is deterministic and
        never collides with an existing value.
        """
        with self._lock:
            if self._order_ensured:
                return 0
            self._order_ensured = True
        documents = self._store.list_documents(self._path)
        existing: list[int] = []
        missing: list[tuple[datetime, str]] = []
        for document in documents:
            data = document.data or {}
            order = data.get(ORDER_FIELD)
            if isinstance(order, (int, float)):
                existing.append(int(order))
            else:
                created_at = data.get("createdAt")
                sort_time = created_at if isinstance(created_at, datetime) else _LATEST
                if sort_time.tzinfo is None:
                    sort_time = sort_time.replace(tzinfo=timezone.utc)
                missing.append((sort_time, document.id))
        if not missing:
            return 0

        next_order = max(existing, default=-1) + 1
        missing.sort()
        for offset, (_, question_id) in enumerate(missing):
            future = self._store.update_document(
                join_path(self._path, question_id), {ORDER_FIELD: next_order + offset}
            )
            self._notices.watch(future, "number the existing questions")
        logger.info("Assigned order to %d legacy question(s) in session %s", len(missing), self._session_code)
        return len(missing)

    def reorder(self, ordered_ids: Sequence[str]) -> int:
        """Apply a new order locally, then persist only the changed positions.

        Returns the number of questions written.
        """
        self._check_guard()
        with self._lock:
            by_id = {question.id: question for question in self._questions}
            if sorted(ordered_ids) != sorted(by_id):
                raise StaleReferenceError("Reorder does not match the current question list.")
            changed: list[tuple[str, int]] = []
            reordered: list[Question] = []
            for index, question_id in enumerate(ordered_ids):
                question = by_id[question_id]
                if question.order != index:
                    changed.append((question_id, index))
                    self._expected_orders[question_id] = index
                reordered.append(question.with_changes(order=index))
            self._questions = reordered

        for question_id, index in changed:
            future = self._store.update_document(join_path(self._path, question_id), {ORDER_FIELD: index})
            future.add_done_callback(lambda done, qid=question_id: self._drop_expected_on_failure(qid, done))
            self._notices.watch(future, "save the new question order")
        return len(changed)

    def _drop_expected_on_failure(self, question_id: str, future: Future[None]) -> None:
        if future.exception() is None:
            return
        with self._lock:
            self._expected_orders.pop(question_id, None)

    # --- Create / update / delete ---

    def add_question(self, **fields: Any) -> Question:
        """Append a default question and return it before the write completes."""
        question, _ = self._create_question(fields)
        return question

    def _create_question(self, fields: Mapping[str, Any]) -> tuple[Question, Future[None]]:
        self._check_guard()
        question_id = self._store.new_document_id(self._path)
        with self._lock:
            orders = [question.order for question in self._questions if question.order is not None]
            next_order = max(orders, default=-1) + 1
            question = Question(id=question_id, order=next_order)
            if fields:
                question = question.with_changes(**fields)
            self._questions.append(question)
        document = question.to_document()
        document["createdAt"] = SERVER_TIMESTAMP
        future = self._store.create_document(join_path(self._path, question_id), document)
        future.add_done_callback(lambda done: self._forget_on_failure(question_id, done))
        self._notices.watch(future, "create the question")
        logger.debug("Created question %s at order %d", question_id, next_order)
        return question, future

    def _forget_on_failure(self, question_id: str, future: Future[None]) -> None:
        if future.exception() is None:
            return
        with self._lock:
            self._questions = [question for question in self._questions if question.id != question_id]
            self._creating = False

    def update_question(self, question_id: str, fields: Mapping[str, Any]) -> Future[None]:
        """Write edited content fields; order and createdAt are never touched."""
        self._check_guard()
        content = {key: value for key, value in fields.items() if key not in (ORDER_FIELD, "createdAt")}
        with self._lock:
            for index, question in enumerate(self._questions):
                if question.id == question_id:
                    self._questions[index] = Question.from_document(
                        question_id, {**question.to_document(), **content}
                    )
                    break
        future = self._store.update_document(join_path(self._path, question_id), content)
        return self._notices.watch(future, "save the question")

    def delete_question(self, question_id: str, selected_id: str | None = None) -> str | None:
        """Delete a question and return the id the selection should point at.

        When the deleted question was selected, the replacement is the first
        remaining question, or a freshly created one when none remain. The
        replacement is created before the delete is issued so the collection
        is never observed empty.
        """
        self._check_guard()
        with self._lock:
            remaining = [question for question in self._questions if question.id != question_id]
            replacement: str | None = selected_id
            needs_new = not remaining
        if needs_new:
            replacement = self.add_question().id
        elif selected_id == question_id or selected_id is None:
            replacement = remaining[0].id
        with self._lock:
            self._questions = [question for question in self._questions if question.id != question_id]
            self._expected_orders.pop(question_id, None)
        future = self._store.delete_document(join_path(self._path, question_id))
        self._notices.watch(future, "delete the question")
        return replacement

    def ensure_not_empty(self) -> Question | None:
        """Create the single default question of an empty, loaded session.

        The in-flight latch makes repeated calls before the creation is
        observed a no-op, so exactly one question is created.
        """
        with self._lock:
            if not self._loaded or self._questions or self._creating:
                return None
            self._creating = True
        try:
            question = self.add_question()
        except Exception:
            with self._lock:
                self._creating = False
            raise
        logger.info("Session %s had no questions, created %s", self._session_code, question.id)
        return question

    def _check_guard(self) -> None:
        if self._guard is not None:
            self._guard()
