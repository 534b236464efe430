"""Participant-side synchronization: joining, following the live question, answering."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from threading import RLock

from pulse_app.constants.session_constants import ANONYMOUS_NICKNAME, PARTICIPANT_NAME_KEY
from pulse_app.core.clock import Clock
from pulse_app.core.countdown import CountdownTimer
from pulse_app.core.errors import (
    DuplicateResponseError,
    SessionExpiredError,
    SessionNotFoundError,
    SubmissionClosedError,
)
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.models import LiveQuestion, QuestionType, Session, SessionState
from pulse_app.core.notices import NoticeBoard
from pulse_app.core.services.response_recorder import ResponseRecorder
from pulse_app.core.services.session_directory import normalize_code
from pulse_app.core.services.session_lifecycle import session_path
from pulse_app.core.tally import categories_for
from pulse_app.store.base import DocumentSnapshot, DocumentStore, SnapshotGate, Subscription
from pulse_app.store.local_store import LocalStore

logger = logging.getLogger(__name__)

MAX_TEXT_ANSWER_LENGTH = 500


class ParticipantStep(str, Enum):
    JOIN = "join"
    VERIFYING = "verifying"
    NAME = "name"
    PARTICIPATING = "participating"
    ENDED = "ended"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class ParticipantState:
    """Everything a participant screen needs, captured at one instant."""

    step: ParticipantStep
    session_code: str | None = None
    session_name: str = ""
    brand_color: str | None = None
    nickname: str = ""
    session_state: SessionState | None = None
    question: LiveQuestion | None = None
    submitted: bool = False
    my_answer: str | None = None
    remaining: int | None = None
    locked: bool = False


class ParticipantController:
    """One participant device following one session."""

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock,
        identity: DeviceIdentity,
        local_store: LocalStore,
        notices: NoticeBoard | None = None,
    ) -> None:
        self._store = store
        self._clock = clock
        self._identity = identity
        self._local_store = local_store
        self._notices = notices or NoticeBoard()
        self._lock = RLock()
        self._countdown = CountdownTimer(clock)
        self._gate = SnapshotGate()
        self._step = ParticipantStep.JOIN
        self._code: str | None = None
        self._session: Session | None = None
        self._subscription: Subscription | None = None
        self._recorder: ResponseRecorder | None = None
        self._nickname = local_store.get(PARTICIPANT_NAME_KEY) or ""
        self._question_id: str | None = None
        self._submitted = False
        self._my_answer: str | None = None

    @property
    def identity(self) -> DeviceIdentity:
        return self._identity

    @property
    def notices(self) -> NoticeBoard:
        return self._notices

    @property
    def step(self) -> ParticipantStep:
        with self._lock:
            return self._step

    # --- Joining ---

    def join(self, raw_code: str) -> ParticipantStep:
        """Verify the code and start following the session."""
        code = normalize_code(raw_code)
        self._unsubscribe()
        with self._lock:
            self._step = ParticipantStep.VERIFYING
            self._code = code
        snapshot = self._store.get_document(session_path(code))
        if not snapshot.exists or snapshot.data is None:
            with self._lock:
                self._step = ParticipantStep.JOIN
            raise SessionNotFoundError(f"Session {code} not found.")
        session = Session.from_document(code, snapshot.data)
        if session.is_expired(self._clock.now()):
            with self._lock:
                self._step = ParticipantStep.EXPIRED
            raise SessionExpiredError("This session has exceeded its time limit and is no longer active.")

        with self._lock:
            self._gate.reset()
            self._recorder = ResponseRecorder(self._store, code)
            if session.require_name:
                if self._nickname == ANONYMOUS_NICKNAME:
                    self._nickname = ""
                self._step = ParticipantStep.NAME
            else:
                self._remember_nickname(ANONYMOUS_NICKNAME)
                self._step = ParticipantStep.PARTICIPATING
        subscription = self._store.subscribe_document(session_path(code), self._on_session_snapshot)
        with self._lock:
            self._subscription = subscription
            logger.info("Device %s joined session %s", self._identity.uid[:8], code)
            return self._step

    def set_name(self, nickname: str) -> None:
        cleaned = (nickname or "").strip()
        if not cleaned:
            raise ValueError("Please enter your name.")
        with self._lock:
            if self._step is not ParticipantStep.NAME:
                raise SubmissionClosedError("A name is not needed right now.")
            self._remember_nickname(cleaned)
            self._step = ParticipantStep.PARTICIPATING

    def leave(self) -> None:
        self._unsubscribe()
        with self._lock:
            self._step = ParticipantStep.JOIN
            self._code = None
            self._session = None
            self._recorder = None
            self._countdown.clear()
            self._reset_answer_locked(None)

    def close(self) -> None:
        self._unsubscribe()
        with self._lock:
            self._countdown.clear()

    def _remember_nickname(self, nickname: str) -> None:
        self._nickname = nickname
        self._local_store.set(PARTICIPANT_NAME_KEY, nickname)

    def _unsubscribe(self) -> None:
        with self._lock:
            subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.unsubscribe()

    # --- Snapshots ---

    def _on_session_snapshot(self, snapshot: DocumentSnapshot) -> None:
        vanished = False
        with self._lock:
            if self._code is None or not self._gate.accept(snapshot):
                return
            if not snapshot.exists or snapshot.data is None:
                if self._step is ParticipantStep.ENDED:
                    return
                vanished = self._step is not ParticipantStep.EXPIRED
                self._session = None
                self._countdown.clear()
                if vanished:
                    self._step = ParticipantStep.JOIN
            else:
                session = Session.from_document(self._code, snapshot.data)
                self._session = session
                current = session.current_question
                current_id = current.id if current else None
                if current_id != self._question_id:
                    self._reset_answer_locked(current_id)
                self._countdown.follow(current)
                if session.is_expired(self._clock.now()):
                    self._step = ParticipantStep.EXPIRED
                elif session.state is SessionState.ENDED:
                    self._step = ParticipantStep.ENDED
        if vanished:
            logger.info("Session vanished while participating")
            self._notices.error("Session not found!")
            self._unsubscribe()

    def _reset_answer_locked(self, question_id: str | None) -> None:
        self._question_id = question_id
        self._submitted = False
        self._my_answer = None

    # --- Answering ---

    def state(self) -> ParticipantState:
        with self._lock:
            tick = self._countdown.tick()
            session = self._session
            if session is not None and self._step is ParticipantStep.PARTICIPATING and session.is_expired(self._clock.now()):
                self._step = ParticipantStep.EXPIRED
            return ParticipantState(
                step=self._step,
                session_code=self._code,
                session_name=session.name if session else "",
                brand_color=session.brand_color if session else None,
                nickname=self._nickname,
                session_state=session.state if session else None,
                question=session.current_question if session else None,
                submitted=self._submitted,
                my_answer=self._my_answer,
                remaining=tick.remaining,
                locked=tick.expired,
            )

    def submit(self, answer: str) -> None:
        """Send an answer to the live question; refusals raise before any write."""
        with self._lock:
            if self._step is not ParticipantStep.PARTICIPATING or self._recorder is None:
                raise SubmissionClosedError("Join a session before answering.")
            session = self._session
            if session is None:
                raise SessionNotFoundError("Session not found!")
            if session.is_expired(self._clock.now()):
                self._step = ParticipantStep.EXPIRED
                raise SessionExpiredError("This session has expired.")
            question = session.current_question
            if session.state is not SessionState.VOTING or question is None:
                raise SubmissionClosedError("Answers are closed for this question.")
            if self._countdown.tick().expired:
                raise SubmissionClosedError("Time is up, you can no longer submit an answer.")
            if self._submitted:
                raise DuplicateResponseError("You already answered this question.")
            value = self._validate_answer(question, answer)
            recorder = self._recorder
            nickname = self._nickname or ANONYMOUS_NICKNAME

        try:
            recorder.submit_and_wait(question.id, self._identity.uid, value, nickname)
        except DuplicateResponseError:
            self._mark_submitted(question.id, None)
            raise
        self._mark_submitted(question.id, value)

    def _mark_submitted(self, question_id: str, answer: str | None) -> None:
        with self._lock:
            if self._question_id != question_id:
                return
            self._submitted = True
            if answer is not None:
                self._my_answer = answer

    @staticmethod
    def _validate_answer(question: LiveQuestion, answer: str) -> str:
        value = (answer or "").strip()
        if not value:
            raise ValueError("An answer cannot be empty.")
        if question.type is QuestionType.TEXT:
            if len(value) > MAX_TEXT_ANSWER_LENGTH:
                raise ValueError(f"Answers are limited to {MAX_TEXT_ANSWER_LENGTH} characters.")
            return value
        if value not in categories_for(question):
            raise ValueError(f"{value!r} is not one of the choices.")
        return value
