"""Scheduler that runs debounced callbacks on the Qt event loop."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import QObject, QTimer


class _TimerHandle:
    def __init__(self, timer: QTimer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()
        self._timer.deleteLater()


class QtScheduler:
    """Single-shot timers owned by ``parent``; callbacks run on the GUI thread."""

    def __init__(self, parent: QObject) -> None:
        self._parent = parent

    def call_later(self, delay: float, callback: Callable[[], None]) -> _TimerHandle:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.setInterval(int(delay * 1000))

        def on_timeout() -> None:
            timer.deleteLater()
            callback()

        timer.timeout.connect(on_timeout)
        timer.start()
        return _TimerHandle(timer)
