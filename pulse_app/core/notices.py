"""Non-blocking user notices and classification of failed writes."""

from __future__ import annotations

from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
import logging
from threading import Lock
from typing import Callable, TypeVar

from pulse_app.core.errors import PulseError, SessionNotFoundError, WriteFailureError
from pulse_app.store.base import DocumentNotFoundError, StoreError

logger = logging.getLogger(__name__)

MAX_QUEUED_NOTICES = 50

T = TypeVar("T")


class NoticeLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    level: NoticeLevel
    message: str


def classify_store_error(exc: BaseException, action: str) -> Exception:
    """Translate a store failure into the error a user should hear about."""
    if isinstance(exc, DocumentNotFoundError):
        return SessionNotFoundError(f"Could not {action}: it no longer exists.")
    if isinstance(exc, StoreError):
        return WriteFailureError(f"Could not {action}. Check your connection and try again.")
    return WriteFailureError(f"Could not {action}: {exc}")


class NoticeBoard:
    """Queue of notices produced on any thread and drained by the UI."""

    def __init__(self) -> None:
        self._notices: deque[Notice] = deque(maxlen=MAX_QUEUED_NOTICES)
        self._lock = Lock()

    def post(self, level: NoticeLevel, message: str) -> None:
        with self._lock:
            self._notices.append(Notice(level=level, message=message))

    def info(self, message: str) -> None:
        self.post(NoticeLevel.INFO, message)

    def error(self, message: str) -> None:
        self.post(NoticeLevel.ERROR, message)

    def drain(self) -> list[Notice]:
        with self._lock:
            notices = list(self._notices)
            self._notices.clear()
            return notices

    def watch(self, future: Future[None], action: str) -> Future[None]:
        """Post an error notice if ``future`` fails; single attempt, never retried."""

        def on_done(done: Future[None]) -> None:
            exc = done.exception()
            if exc is None:
                return
            classified = classify_store_error(exc, action)
            logger.warning("Write failed (%s): %s", action, exc)
            self.error(str(classified))

        future.add_done_callback(on_done)
        return future

    def attempt(self, action: Callable[[], T], failure: str) -> T | None:
        """Run a user action; a refusal is queued as an error notice and None is returned."""
        try:
            return action()
        except (PulseError, ValueError) as exc:
            logger.warning("%s: %s", failure, exc)
            self.error(f"{failure}: {exc}")
            return None
