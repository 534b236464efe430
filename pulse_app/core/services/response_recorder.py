"""Service writing participant responses with one answer per device and question."""

from __future__ import annotations

from concurrent.futures import Future, TimeoutError as FutureTimeoutError
import logging

from pulse_app.constants.session_constants import RESPONSES_COLLECTION, SESSIONS_COLLECTION
from pulse_app.core.errors import DuplicateResponseError, WriteFailureError
from pulse_app.core.models import Response
from pulse_app.core.notices import classify_store_error
from pulse_app.store.base import SERVER_TIMESTAMP, DocumentExistsError, DocumentStore, join_path

logger = logging.getLogger(__name__)

WRITE_TIMEOUT_SECONDS = 10.0


def responses_path(session_code: str) -> str:
    return join_path(SESSIONS_COLLECTION, session_code, RESPONSES_COLLECTION)


def response_id(question_id: str, uid: str) -> str:
    """Deterministic document id, so a second answer from a device collides."""
    return f"{question_id}__{uid}"


class ResponseRecorder:
    """Creates response documents; the store refuses a second create for the same id."""

    def __init__(self, store: DocumentStore, session_code: str) -> None:
        self._store = store
        self._path = responses_path(session_code)

    @property
    def path(self) -> str:
        return self._path

    def submit(self, question_id: str, uid: str, answer: str, nickname: str) -> Future[None]:
        response = Response(question_id=question_id, answer=answer, nickname=nickname, uid=uid)
        document = response.to_document()
        document["timestamp"] = SERVER_TIMESTAMP
        return self._store.create_document(join_path(self._path, response_id(question_id, uid)), document)

    def submit_and_wait(
        self,
        question_id: str,
        uid: str,
        answer: str,
        nickname: str,
        timeout: float = WRITE_TIMEOUT_SECONDS,
    ) -> None:
        """Submit and translate the outcome into domain errors."""
        future = self.submit(question_id, uid, answer, nickname)
        try:
            future.result(timeout=timeout)
        except DocumentExistsError as exc:
            raise DuplicateResponseError("You already answered this question.") from exc
        except FutureTimeoutError as exc:
            raise WriteFailureError("The answer could not be confirmed in time.") from exc
        except Exception as exc:
            logger.warning("Response write for question %s failed: %s", question_id, exc)
            raise classify_store_error(exc, "send your answer") from exc
