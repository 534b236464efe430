"""Debounced execution of editor autosaves."""

from __future__ import annotations

from threading import Lock, Timer
from typing import Callable, Generic, Protocol, TypeVar

T = TypeVar("T")


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs a callback once after a delay in seconds."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...


class ThreadingScheduler:
    """Scheduler for non-Qt processes; callbacks run on a timer thread."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable:
        timer = Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class Debouncer(Generic[T]):
    """Delays ``action`` until ``delay`` seconds pass without a new submission.

    Every submission restarts the delay and replaces the pending value, so
    rapid edits coalesce into one call carrying the latest value.
    """

    def __init__(self, scheduler: Scheduler, delay: float, action: Callable[[T], None]) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._action = action
        self._lock = Lock()
        self._handle: Cancellable | None = None
        self._pending: T | None = None
        self._has_pending = False
        self._generation = 0

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return self._has_pending

    def submit(self, value: T) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._pending = value
            self._has_pending = True
            self._generation += 1
            generation = self._generation
            self._handle = self._scheduler.call_later(self._delay, lambda: self._fire(generation))

    def flush(self) -> None:
        """Run the pending action now instead of waiting for the delay."""
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._generation += 1
        self._fire(None)

    def cancel(self) -> None:
        with self._lock:
            if self._handle is not None:
                self._handle.cancel()
            self._handle = None
            self._pending = None
            self._has_pending = False
            self._generation += 1

    def _fire(self, generation: int | None) -> None:
        with self._lock:
            if generation is not None and generation != self._generation:
                return
            if not self._has_pending:
                return
            value = self._pending
            self._pending = None
            self._has_pending = False
            self._handle = None
        self._action(value)  # type: ignore[arg-type]
