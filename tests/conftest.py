"""Shared fixtures: a controllable clock, a manual scheduler and memory stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from pulse_app.core.services.session_lifecycle import session_path
from pulse_app.store.memory_store import MemoryDocumentStore

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float = 0.0, **kwargs: float) -> None:
        self.current += timedelta(seconds=seconds, **kwargs)


class _Handle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Runs scheduled callbacks only when the test advances time."""

    def __init__(self) -> None:
        self.elapsed = 0.0
        self.handles: list[_Handle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle(self.elapsed + delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> int:
        return sum(1 for handle in self.handles if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        self.elapsed += seconds
        due = [handle for handle in self.handles if handle.due <= self.elapsed and not handle.cancelled]
        self.handles = [handle for handle in self.handles if handle not in due]
        for handle in due:
            handle.callback()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def store(clock: FakeClock) -> MemoryDocumentStore:
    return MemoryDocumentStore(clock)


@pytest.fixture
def make_session(store: MemoryDocumentStore, clock: FakeClock) -> Callable[..., str]:
    """Write a session document the way a host creates it and return its code."""

    def factory(code: str = "4821", **fields: Any) -> str:
        document: dict[str, Any] = {
            "state": "waiting",
            "currentQuestion": None,
            "createdAt": clock.now(),
            "expiresAt": clock.now() + timedelta(hours=6),
            "hostId": "host-device",
            "requireName": False,
            "isSetup": True,
        }
        document.update(fields)
        store.set_document(session_path(code), document).result()
        return code

    return factory
