"""Per-device participant controllers hosted by the web gateway."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from threading import Lock

from pulse_app.constants.network_constants import PARTICIPANT_IDLE_TIMEOUT_SECONDS
from pulse_app.core.clock import Clock
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.participant_controller import ParticipantController
from pulse_app.store.base import DocumentStore
from pulse_app.store.local_store import LocalStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    controller: ParticipantController
    last_seen: datetime


class ParticipantRegistry:
    """Keeps one controller per device cookie and closes idle ones."""

    def __init__(
        self,
        store: DocumentStore,
        clock: Clock,
        idle_timeout_seconds: float = PARTICIPANT_IDLE_TIMEOUT_SECONDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._idle_timeout_seconds = idle_timeout_seconds
        self._entries: dict[str, _Entry] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def controller_for(self, identity: DeviceIdentity) -> ParticipantController:
        now = self._clock.now()
        self.evict_idle(now)
        with self._lock:
            entry = self._entries.get(identity.uid)
            if entry is None:
                # Each browser keeps its nickname in its own local store.
                controller = ParticipantController(self._store, self._clock, identity, LocalStore())
                entry = _Entry(controller=controller, last_seen=now)
                self._entries[identity.uid] = entry
            entry.last_seen = now
            return entry.controller

    def evict_idle(self, now: datetime | None = None) -> int:
        now = now or self._clock.now()
        with self._lock:
            idle = [
                uid
                for uid, entry in self._entries.items()
                if (now - entry.last_seen).total_seconds() > self._idle_timeout_seconds
            ]
            evicted = [self._entries.pop(uid) for uid in idle]
        for entry in evicted:
            entry.controller.close()
        if evicted:
            logger.info("Closed %d idle participant(s)", len(evicted))
        return len(evicted)

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.controller.close()
