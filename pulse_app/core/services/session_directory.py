"""Service for creating, finding and rejoining sessions."""

from __future__ import annotations

from concurrent.futures import Future, TimeoutError as FutureTimeoutError
from datetime import timedelta
import logging
import random

from pulse_app.constants.session_constants import (
    HOST_SESSION_KEY,
    SESSION_CODE_ATTEMPTS,
    SESSION_CODE_LENGTH,
    SESSION_LIFETIME_HOURS,
)
from pulse_app.core.clock import Clock
from pulse_app.core.errors import PulseError, SessionExpiredError, SessionNotFoundError, WriteFailureError
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.models import Session, SessionState
from pulse_app.core.services.session_lifecycle import session_path
from pulse_app.store.base import SERVER_TIMESTAMP, DocumentStore, StoreError
from pulse_app.store.local_store import LocalStore

logger = logging.getLogger(__name__)

CREATE_TIMEOUT_SECONDS = 10.0


def normalize_code(raw_code: str) -> str:
    """Clean a typed or linked session code; only its length is validated."""
    code = (raw_code or "").strip().upper()
    if len(code) != SESSION_CODE_LENGTH:
        raise ValueError(f"Session codes have {SESSION_CODE_LENGTH} characters.")
    return code


class SessionDirectory:
    """Looks up session documents and creates new ones for this host device."""

    def __init__(
        self,
        store: DocumentStore,
        local_store: LocalStore,
        identity: DeviceIdentity,
        clock: Clock,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._local_store = local_store
        self._identity = identity
        self._clock = clock
        self._rng = rng or random.Random()

    def saved_session_code(self) -> str | None:
        return self._local_store.get(HOST_SESSION_KEY) or None

    def forget_session(self) -> None:
        self._local_store.remove(HOST_SESSION_KEY)

    def find_session(self, raw_code: str) -> Session:
        """Return the live session for a code or raise NotFound / Expired."""
        code = normalize_code(raw_code)
        snapshot = self._store.get_document(session_path(code))
        if not snapshot.exists or snapshot.data is None:
            raise SessionNotFoundError(f"Session {code} not found.")
        session = Session.from_document(code, snapshot.data)
        if session.is_expired(self._clock.now()):
            raise SessionExpiredError(f"Session {code} has expired.")
        if session.state is SessionState.ENDED:
            raise SessionNotFoundError(f"Session {code} has ended.")
        return session

    def create_session(self) -> str:
        """Create a fresh session for this device and remember its code."""
        previous = self.saved_session_code()
        if previous:
            self._discard_previous(previous)

        code = self._generate_code()
        now = self._clock.now()
        document = {
            "state": SessionState.WAITING.value,
            "currentQuestion": None,
            "createdAt": SERVER_TIMESTAMP,
            "expiresAt": now + timedelta(hours=SESSION_LIFETIME_HOURS),
            "hostId": self._identity.uid,
            "requireName": False,
            "isSetup": False,
        }
        try:
            self._store.set_document(session_path(code), document).result(timeout=CREATE_TIMEOUT_SECONDS)
        except (StoreError, FutureTimeoutError) as exc:
            logger.warning("Creating session %s failed: %s", code, exc)
            raise WriteFailureError("Could not create the session. Check your connection and try again.") from exc
        self._local_store.set(HOST_SESSION_KEY, code)
        logger.info("Created session %s", code)
        return code

    def _discard_previous(self, code: str) -> None:
        future = self._store.delete_document(session_path(code))

        def on_done(done: Future[None]) -> None:
            exc = done.exception()
            if exc is not None:
                logger.warning("Could not delete previous session %s: %s", code, exc)

        future.add_done_callback(on_done)

    def _generate_code(self) -> str:
        low = 10 ** (SESSION_CODE_LENGTH - 1)
        high = 10**SESSION_CODE_LENGTH - 1
        for _ in range(SESSION_CODE_ATTEMPTS):
            code = str(self._rng.randint(low, high))
            if not self._store.get_document(session_path(code)).exists:
                return code
        raise PulseError("Could not find a free session code, try again.")
