"""Countdown for timed questions, corrected for local clock skew.

Architecture note:
    The live question carries a duration and a start instant stamped by the
    store's clock. Each client derives its own countdown from those two values
    and its local clock, once per tick. A client whose clock lags the store
    would see more time remaining than the question was ever given; when that
    happens the excess is remembered as skew and subtracted from every later
    reading. Skew only ever corrects a lagging clock. A client running ahead
    simply sees a slightly shorter countdown, which is acceptable because
    timers are advisory and only the host stops the question.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import math

from pulse_app.constants.session_constants import AUTO_STOP_GRACE_SECONDS, CLOCK_SKEW_TOLERANCE_SECONDS
from pulse_app.core.clock import Clock, ensure_utc
from pulse_app.core.models import LiveQuestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CountdownTick:
    """Result of one timer evaluation."""

    question_id: str | None
    duration: int | None = None
    adjusted_remaining: int | None = None
    skew: float = 0.0
    should_auto_stop: bool = False

    @property
    def active(self) -> bool:
        return self.adjusted_remaining is not None

    @property
    def remaining(self) -> int | None:
        """Seconds shown to people; never negative."""
        if self.adjusted_remaining is None:
            return None
        return max(0, self.adjusted_remaining)

    @property
    def expired(self) -> bool:
        return self.adjusted_remaining is not None and self.adjusted_remaining <= 0

    @property
    def progress(self) -> float:
        """Fraction of the duration still remaining, for progress bars."""
        if not self.duration or self.remaining is None:
            return 0.0
        return min(1.0, self.remaining / self.duration)


class CountdownTimer:
    """Per-client countdown state for the live question.

    With ``auto_stop`` enabled (host consoles only) the first tick whose
    adjusted remaining time is at or below the grace limit reports
    ``should_auto_stop``; the latch guarantees it is reported once per
    question.
    """

    def __init__(self, clock: Clock, auto_stop: bool = False) -> None:
        self._clock = clock
        self._auto_stop = auto_stop
        self._question_id: str | None = None
        self._start_time: datetime | None = None
        self._duration: int | None = None
        self._skew: float = 0.0
        self._has_auto_stopped: bool = False
        self._last_tick = CountdownTick(question_id=None)

    @property
    def skew(self) -> float:
        return self._skew

    @property
    def has_auto_stopped(self) -> bool:
        return self._has_auto_stopped

    @property
    def last_tick(self) -> CountdownTick:
        return self._last_tick

    def configure(self, question_id: str | None, start_time: datetime | None, duration: int | None) -> None:
        """Point the timer at a (possibly new) live question."""
        if question_id != self._question_id:
            self._skew = 0.0
            self._has_auto_stopped = False
            self._question_id = question_id
        self._start_time = ensure_utc(start_time) if start_time is not None else None
        self._duration = duration

    def follow(self, question: LiveQuestion | None) -> None:
        if question is None:
            self.configure(None, None, None)
        else:
            self.configure(question.id, question.start_time, question.timer)

    def clear(self) -> None:
        self.configure(None, None, None)

    def tick(self) -> CountdownTick:
        if self._question_id is None or self._duration is None or self._start_time is None:
            self._last_tick = CountdownTick(question_id=self._question_id)
            return self._last_tick

        elapsed = (ensure_utc(self._clock.now()) - self._start_time).total_seconds()
        raw_remaining = self._duration - elapsed
        if raw_remaining > self._duration + CLOCK_SKEW_TOLERANCE_SECONDS:
            self._skew = raw_remaining - self._duration
            logger.debug("Local clock lags the store by %.2fs for question %s", self._skew, self._question_id)

        adjusted = math.ceil(raw_remaining - self._skew)
        should_stop = False
        if self._auto_stop and not self._has_auto_stopped and adjusted <= -AUTO_STOP_GRACE_SECONDS:
            self._has_auto_stopped = True
            should_stop = True
            logger.info("Timer for question %s ran out, stopping it", self._question_id)

        self._last_tick = CountdownTick(
            question_id=self._question_id,
            duration=self._duration,
            adjusted_remaining=adjusted,
            skew=self._skew,
            should_auto_stop=should_stop,
        )
        return self._last_tick
