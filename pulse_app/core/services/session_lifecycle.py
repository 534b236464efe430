"""Service for the lifecycle state machine of a session document."""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
import logging
from typing import Any

from pulse_app.constants.session_constants import SESSIONS_COLLECTION
from pulse_app.core.clock import Clock
from pulse_app.core.errors import InvalidTransitionError, SessionExpiredError, SessionNotFoundError
from pulse_app.core.models import Question, Session, SessionState
from pulse_app.core.notices import NoticeBoard
from pulse_app.store.base import SERVER_TIMESTAMP, DocumentStore, join_path

logger = logging.getLogger(__name__)

_SENDABLE_FROM = (SessionState.WAITING, SessionState.RESULTS)


def session_path(session_code: str) -> str:
    return join_path(SESSIONS_COLLECTION, session_code)


def _copy_outcome(source: Future[None], target: Future[None]) -> None:
    exc = source.exception()
    if exc is None:
        target.set_result(None)
    else:
        target.set_exception(exc)


@dataclass(frozen=True, slots=True)
class SessionSettings:
    """Host-editable session settings; ``None`` leaves a field unchanged."""

    name: str | None = None
    brand_color: str | None = None
    require_name: bool | None = None
    show_results_by_default: bool | None = None

    def to_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {}
        if self.name is not None:
            fields["name"] = self.name.strip()
        if self.brand_color is not None:
            fields["brandColor"] = self.brand_color
        if self.require_name is not None:
            fields["requireName"] = self.require_name
        if self.show_results_by_default is not None:
            fields["showResultsByDefault"] = self.show_results_by_default
        return fields


class SessionLifecycle:
    """Validates transitions against the latest session snapshot and writes them.

    ``waiting`` is the stored form of the setup state. Every method checks the
    session's hard expiry first, so an expired session rejects all writes
    even while its document still exists.
    """

    def __init__(self, store: DocumentStore, session_code: str, clock: Clock, notices: NoticeBoard | None = None) -> None:
        self._store = store
        self._session_code = session_code
        self._clock = clock
        self._notices = notices or NoticeBoard()
        self._path = session_path(session_code)

    @property
    def path(self) -> str:
        return self._path

    def ensure_writable(self, session: Session | None) -> Session:
        if session is None:
            raise SessionNotFoundError(f"Session {self._session_code} no longer exists.")
        if session.is_expired(self._clock.now()):
            logger.info("Rejected write to expired session %s", self._session_code)
            raise SessionExpiredError(f"Session {self._session_code} has expired.")
        return session

    def send_to_audience(self, session: Session | None, question: Question) -> Future[None] | None:
        """Make ``question`` live; returns ``None`` without writing when its text is blank."""
        current = self.ensure_writable(session)
        if not question.is_sendable:
            return None
        if current.state not in _SENDABLE_FROM:
            raise InvalidTransitionError(f"Cannot send a question while the session is {current.state.value}.")
        live = question.to_live().to_document()
        live["startTime"] = SERVER_TIMESTAMP
        logger.info("Sending question %s to session %s", question.id, self._session_code)
        return self._write({"state": SessionState.VOTING.value, "currentQuestion": live}, "send the question")

    def stop_question(self, session: Session | None) -> Future[None]:
        current = self.ensure_writable(session)
        self._require(current, SessionState.VOTING, "stop")
        return self._write({"state": SessionState.WAITING.value, "currentQuestion": None}, "stop the question")

    def reveal_results(self, session: Session | None) -> Future[None]:
        current = self.ensure_writable(session)
        self._require(current, SessionState.VOTING, "reveal results for")
        return self._write({"state": SessionState.RESULTS.value}, "show the results")

    def reset_question(self, session: Session | None) -> Future[None]:
        current = self.ensure_writable(session)
        self._require(current, SessionState.RESULTS, "reset")
        return self._write({"state": SessionState.WAITING.value, "currentQuestion": None}, "reset the question")

    def end_session(self, session: Session | None) -> Future[None]:
        """Mark the session ended, then delete it once that write has committed.

        Participants always observe the ended state before the document
        disappears. Questions and responses are orphaned. The returned future
        resolves when the delete has committed.
        """
        current = self.ensure_writable(session)
        logger.info("Ending session %s", self._session_code)
        if current.state is SessionState.ENDED:
            return self._delete("end the session")
        ended: Future[None] = Future()

        def delete_after(update: Future[None]) -> None:
            exc = update.exception()
            if exc is not None:
                ended.set_exception(exc)
                return
            self._delete("end the session").add_done_callback(lambda deleted: _copy_outcome(deleted, ended))

        self._write({"state": SessionState.ENDED.value, "currentQuestion": None}, "end the session").add_done_callback(
            delete_after
        )
        return ended

    def apply_settings(self, session: Session | None, settings: SessionSettings) -> Future[None] | None:
        self.ensure_writable(session)
        fields = settings.to_fields()
        if not fields:
            return None
        return self._write(fields, "save the settings")

    def complete_setup(self, session: Session | None) -> Future[None] | None:
        current = self.ensure_writable(session)
        if current.is_setup:
            return None
        return self._write({"isSetup": True}, "save the settings")

    def _require(self, session: Session, expected: SessionState, verb: str) -> None:
        if session.state is not expected:
            raise InvalidTransitionError(
                f"Cannot {verb} the question while the session is {session.state.value}."
            )

    def _write(self, fields: dict[str, Any], action: str) -> Future[None]:
        future = self._store.update_document(self._path, fields)
        return self._notices.watch(future, action)

    def _delete(self, action: str) -> Future[None]:
        return self._notices.watch(self._store.delete_document(self._path), action)
