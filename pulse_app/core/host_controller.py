"""Host-side synchronization between the document store and the console.

Architecture note:
    Store callbacks may arrive on any thread (the Firestore watch thread, a
    FastAPI worker writing through the shared memory store). The controller
    only updates its own state under a re-entrant lock and never touches
    widgets; the Qt console polls it on a timer, the same way it refreshes
    everything else. Every snapshot passes a generation gate first, so a late
    echo of an older write can never overwrite newer local state.
"""

from __future__ import annotations

from enum import Enum
import logging
from threading import RLock
from typing import Any, Sequence

from pulse_app.constants.session_constants import AUTOSAVE_DEBOUNCE_SECONDS
from pulse_app.core.clock import Clock
from pulse_app.core.countdown import CountdownTick, CountdownTimer
from pulse_app.core.debounce import Debouncer, Scheduler
from pulse_app.core.errors import PulseError, SessionExpiredError
from pulse_app.core.models import LiveQuestion, Question, Response, Session, SessionState, TextAnswer
from pulse_app.core.notices import Notice, NoticeBoard
from pulse_app.core.services.question_store import ORDER_FIELD, OrderedQuestionStore
from pulse_app.core.services.response_recorder import responses_path
from pulse_app.core.services.session_directory import SessionDirectory
from pulse_app.core.services.session_lifecycle import SessionLifecycle, SessionSettings
from pulse_app.core.tally import TallyRow, one_per_device, responses_for, tally, tally_rows, text_answers
from pulse_app.store.base import DocumentSnapshot, DocumentStore, QuerySnapshot, SnapshotGate, Subscription

logger = logging.getLogger(__name__)


class HostView(str, Enum):
    """Which screen the host console should show."""

    LOADING = "loading"
    SETUP = "setup"
    CONTROL = "control"
    EXPIRED = "expired"
    ENDED = "ended"


class HostController:
    """Drives one hosted session: questions, editor draft, lifecycle and results."""

    def __init__(
        self,
        store: DocumentStore,
        session_code: str,
        clock: Clock,
        scheduler: Scheduler,
        directory: SessionDirectory | None = None,
        notices: NoticeBoard | None = None,
        autosave_delay: float = AUTOSAVE_DEBOUNCE_SECONDS,
    ) -> None:
        self._store = store
        self._code = session_code
        self._clock = clock
        self._directory = directory
        self._notices = notices or NoticeBoard()
        self._lock = RLock()

        self._lifecycle = SessionLifecycle(store, session_code, clock, self._notices)
        self._questions = OrderedQuestionStore(store, session_code, self._notices, guard=self._ensure_writable)
        self._countdown = CountdownTimer(clock, auto_stop=True)
        self._autosave: Debouncer[Question] = Debouncer(scheduler, autosave_delay, self._save_draft)

        self._session: Session | None = None
        self._session_loaded = False
        self._session_lost = False
        self._session_gate = SnapshotGate()
        self._responses: list[Response] = []
        self._responses_gate = SnapshotGate()
        self._selected_id: str | None = None
        self._draft: Question | None = None
        self._subscriptions: list[Subscription] = []
        self._started = False
        self._closed = False

    # --- Lifecycle of the controller itself ---

    @property
    def session_code(self) -> str:
        return self._code

    @property
    def notices(self) -> NoticeBoard:
        return self._notices

    def start(self) -> None:
        """Subscribe to the session; legacy questions are numbered before the first render."""
        with self._lock:
            if self._started:
                return
            self._started = True
        self._questions.ensure_order()
        subscriptions = [
            self._store.subscribe_document(self._lifecycle.path, self._on_session_snapshot),
            self._store.subscribe_collection(self._questions.path, self._on_questions_snapshot, order_by=ORDER_FIELD),
            self._store.subscribe_collection(responses_path(self._code), self._on_responses_snapshot),
        ]
        with self._lock:
            self._subscriptions.extend(subscriptions)
        logger.info("Hosting session %s", self._code)

    def close(self) -> None:
        """Stop every store callback; a pending autosave is written first."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        self._autosave.flush()
        self._autosave.cancel()
        for subscription in subscriptions:
            subscription.unsubscribe()
        self._countdown.clear()

    @property
    def is_closed(self) -> bool:
        with self._lock:
            return self._closed

    # --- Snapshot handlers ---

    def _on_session_snapshot(self, snapshot: DocumentSnapshot) -> None:
        with self._lock:
            if self._closed or not self._session_gate.accept(snapshot):
                return
            self._session_loaded = True
            if not snapshot.exists or snapshot.data is None:
                if self._session is not None or not self._session_lost:
                    logger.info("Session %s no longer exists", self._code)
                self._session = None
                self._session_lost = True
                self._countdown.clear()
                return
            self._session = Session.from_document(self._code, snapshot.data)
            self._countdown.follow(self._session.current_question)
            questions_loaded = self._questions.is_loaded
        if questions_loaded:
            self._fill_empty_session()

    def _on_questions_snapshot(self, snapshot: QuerySnapshot) -> None:
        with self._lock:
            if self._closed or not self._questions.apply_snapshot(snapshot):
                return
        self._fill_empty_session()

    def _fill_empty_session(self) -> None:
        """Give an existing session with no questions its first blank question."""
        with self._lock:
            if self._closed or self._session is None:
                # Waits for the session document; a lost session is never refilled.
                self._reconcile_selection_locked()
                return
        try:
            created = self._questions.ensure_not_empty()
        except PulseError as exc:
            logger.warning("Could not create the default question: %s", exc)
            created = None
        with self._lock:
            if created is not None and self._selected_id is None:
                self._select_locked(created.id)
            self._reconcile_selection_locked()

    def _on_responses_snapshot(self, snapshot: QuerySnapshot) -> None:
        with self._lock:
            if self._closed or not self._responses_gate.accept(snapshot):
                return
            self._responses = [
                Response.from_document(document.id, document.data)
                for document in snapshot.documents
                if document.data is not None
            ]

    def _reconcile_selection_locked(self) -> None:
        ids = self._questions.ids()
        if not ids:
            return
        if self._selected_id not in ids:
            if self._selected_id is not None:
                logger.info("Selected question %s vanished, selecting %s", self._selected_id, ids[0])
                self._autosave.cancel()
            self._select_locked(ids[0])
            return
        if not self._autosave.has_pending:
            latest = self._questions.get(self._selected_id)
            if latest is not None:
                self._draft = latest

    def _select_locked(self, question_id: str) -> None:
        self._selected_id = question_id
        self._draft = self._questions.get(question_id)

    # --- Read side for the console ---

    @property
    def session(self) -> Session | None:
        with self._lock:
            return self._session

    @property
    def view(self) -> HostView:
        with self._lock:
            if self._session_lost:
                return HostView.ENDED
            if not self._session_loaded or self._session is None:
                return HostView.LOADING
            if self._session.is_expired(self._clock.now()):
                return HostView.EXPIRED
            if self._session.state in (SessionState.VOTING, SessionState.RESULTS):
                return HostView.CONTROL
            if self._session.state is SessionState.ENDED:
                return HostView.ENDED
            return HostView.SETUP

    @property
    def questions(self) -> list[Question]:
        return self._questions.questions

    @property
    def selected_id(self) -> str | None:
        with self._lock:
            return self._selected_id

    @property
    def draft(self) -> Question | None:
        with self._lock:
            return self._draft

    @property
    def live_question(self) -> LiveQuestion | None:
        with self._lock:
            return self._session.current_question if self._session else None

    def live_responses(self) -> list[Response]:
        """Responses to the live question, the earliest one per device."""
        with self._lock:
            live = self.live_question
            if live is None:
                return []
            return one_per_device(responses_for(self._responses, live.id))

    def live_tally(self) -> dict[str, int]:
        with self._lock:
            live = self.live_question
            if live is None:
                return {}
            return tally(self.live_responses(), live)

    def live_tally_rows(self) -> list[TallyRow]:
        with self._lock:
            live = self.live_question
            if live is None:
                return []
            return tally_rows(self.live_responses(), live)

    def live_text_answers(self) -> list[TextAnswer]:
        return text_answers(self.live_responses())

    def drain_notices(self) -> list[Notice]:
        return self._notices.drain()

    # --- Countdown ---

    def tick(self) -> CountdownTick:
        """Advance the host countdown; stops the question once when it runs out."""
        with self._lock:
            result = self._countdown.tick()
            session = self._session
        if result.should_auto_stop and session is not None and session.state is SessionState.VOTING:
            try:
                self._lifecycle.stop_question(session)
            except PulseError as exc:
                logger.warning("Automatic stop of question %s failed: %s", result.question_id, exc)
                self._notices.error(str(exc))
        return result

    # --- Question editing ---

    def select_question(self, question_id: str) -> None:
        with self._lock:
            if question_id == self._selected_id:
                return
        self._autosave.flush()
        with self._lock:
            if self._questions.get(question_id) is None:
                self._reconcile_selection_locked()
                return
            self._select_locked(question_id)

    def add_question(self) -> Question:
        self._autosave.flush()
        question = self._questions.add_question()
        with self._lock:
            self._select_locked(question.id)
        return question

    def delete_question(self, question_id: str) -> None:
        with self._lock:
            selected = self._selected_id
        if selected == question_id:
            self._autosave.cancel()
        replacement = self._questions.delete_question(question_id, selected)
        with self._lock:
            if replacement is not None and replacement != self._selected_id:
                self._select_locked(replacement)
            elif replacement is not None and self._draft is None:
                self._draft = self._questions.get(replacement)

    def reorder_questions(self, ordered_ids: Sequence[str]) -> int:
        return self._questions.reorder(ordered_ids)

    def edit_draft(self, **changes: Any) -> Question | None:
        """Change the editor draft; the write follows after a quiet interval."""
        with self._lock:
            if self._draft is None:
                return None
            self._draft = self._draft.with_changes(**changes)
            draft = self._draft
        self._autosave.submit(draft)
        return draft

    def flush_draft(self) -> None:
        self._autosave.flush()

    def _save_draft(self, draft: Question) -> None:
        try:
            self._questions.update_question(draft.id, draft.content_fields())
        except PulseError as exc:
            logger.warning("Autosave of question %s skipped: %s", draft.id, exc)
            self._notices.error(str(exc))

    # --- Lifecycle transitions ---

    def send_to_audience(self) -> bool:
        """Send the selected question live; returns False when there was nothing to send."""
        self._autosave.flush()
        with self._lock:
            draft = self._draft
            session = self._session
        if draft is None:
            return False
        return self._lifecycle.send_to_audience(session, draft) is not None

    def stop_question(self) -> None:
        self._lifecycle.stop_question(self.session)

    def reveal_results(self) -> None:
        self._lifecycle.reveal_results(self.session)

    def reset_question(self) -> None:
        self._lifecycle.reset_question(self.session)

    def apply_settings(self, settings: SessionSettings) -> None:
        self._lifecycle.apply_settings(self.session, settings)
        self._lifecycle.complete_setup(self.session)

    def end_session(self) -> None:
        """End the session for everyone and forget it on this device."""
        self._autosave.cancel()
        try:
            self._lifecycle.end_session(self.session)
        except SessionExpiredError:
            logger.info("Session %s already expired, leaving without writing", self._code)
        finally:
            if self._directory is not None:
                self._directory.forget_session()
            self.close()

    def _ensure_writable(self) -> None:
        with self._lock:
            session = self._session
        self._lifecycle.ensure_writable(session)
