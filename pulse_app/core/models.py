"""Domain models for sessions, questions and responses."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import logging
from typing import Any, Mapping

from pulse_app.constants.session_constants import (
    DEFAULT_CHOICE_OPTION_COUNT,
    MAX_CHOICE_OPTIONS,
    TIMER_CHOICES,
)
from pulse_app.core.clock import ensure_utc

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Stored lifecycle state of a session document."""

    WAITING = "waiting"
    VOTING = "voting"
    RESULTS = "results"
    ENDED = "ended"

    @classmethod
    def parse(cls, value: object) -> "SessionState":
        # Older hosts wrote "setup" when a question was stopped.
        if value == "setup" or value is None:
            return cls.WAITING
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown session state %r, treating as waiting", value)
            return cls.WAITING


class QuestionType(str, Enum):
    CHOICE = "choice"
    TEXT = "text"
    REACTION = "reaction"

    @classmethod
    def parse(cls, value: object) -> "QuestionType":
        try:
            return cls(value)
        except ValueError:
            logger.warning("Unknown question type %r, treating as choice", value)
            return cls.CHOICE


def parse_timer(value: object) -> int | None:
    """Normalize a stored timer value ("none", "30", 30, None) to seconds."""
    if value is None or value == "" or value == "none":
        return None
    try:
        seconds = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unsupported timer value {value!r}.") from exc
    if seconds not in TIMER_CHOICES:
        raise ValueError(f"Timer must be one of {TIMER_CHOICES}, got {seconds}.")
    return seconds


def _parse_timer_leniently(value: object) -> int | None:
    try:
        return parse_timer(value)
    except ValueError:
        logger.warning("Ignoring unsupported timer value %r", value)
        return None


def _as_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return ensure_utc(value)
    return None


def clean_options(options: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    """Strip option labels and drop blanks, keeping the author's order."""
    return tuple(option.strip() for option in options if option and option.strip())


@dataclass(frozen=True, slots=True)
class LiveQuestion:
    """Denormalized copy of a question taken at the moment it went live."""

    id: str
    text: str
    type: QuestionType
    options: tuple[str, ...] = ()
    timer: int | None = None
    color: str | None = None
    start_time: datetime | None = None

    @property
    def has_timer(self) -> bool:
        return self.timer is not None and self.start_time is not None

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "type": self.type.value,
            "options": list(self.options),
            "timer": self.timer,
            "color": self.color,
            "startTime": self.start_time,
        }

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> "LiveQuestion":
        return cls(
            id=str(data.get("id", "")),
            text=str(data.get("text") or ""),
            type=QuestionType.parse(data.get("type", QuestionType.CHOICE.value)),
            options=tuple(data.get("options") or ()),
            timer=_parse_timer_leniently(data.get("timer")),
            color=data.get("color") or None,
            start_time=_as_datetime(data.get("startTime")),
        )


@dataclass(frozen=True, slots=True)
class Question:
    """One poll item of a session."""

    id: str
    text: str = ""
    type: QuestionType = QuestionType.CHOICE
    options: tuple[str, ...] = ("",) * DEFAULT_CHOICE_OPTION_COUNT
    timer: int | None = None
    color: str | None = None
    order: int | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if len(self.options) > MAX_CHOICE_OPTIONS:
            raise ValueError(f"A question may have at most {MAX_CHOICE_OPTIONS} options.")

    @property
    def is_sendable(self) -> bool:
        return bool(self.text.strip())

    def live_options(self) -> tuple[str, ...]:
        if self.type is QuestionType.CHOICE:
            return clean_options(self.options)
        return ()

    def content_fields(self) -> dict[str, Any]:
        """Editable fields as written by autosave (never order or createdAt)."""
        return {
            "text": self.text,
            "type": self.type.value,
            "options": list(self.options) if self.type is QuestionType.CHOICE else [],
            "timer": self.timer,
            "color": self.color,
        }

    def to_document(self) -> dict[str, Any]:
        document = self.content_fields()
        document["order"] = self.order
        document["createdAt"] = self.created_at
        return document

    def to_live(self, start_time: datetime | None = None) -> LiveQuestion:
        return LiveQuestion(
            id=self.id,
            text=self.text.strip(),
            type=self.type,
            options=self.live_options(),
            timer=self.timer,
            color=self.color,
            start_time=start_time,
        )

    def with_changes(self, **changes: Any) -> "Question":
        if "options" in changes:
            changes["options"] = tuple(changes["options"])
        if "type" in changes:
            changes["type"] = QuestionType(changes["type"])
        if "timer" in changes:
            changes["timer"] = parse_timer(changes["timer"])
        return replace(self, **changes)

    @classmethod
    def from_document(cls, question_id: str, data: Mapping[str, Any]) -> "Question":
        question_type = QuestionType.parse(data.get("type", QuestionType.CHOICE.value))
        options = tuple(str(option) for option in data.get("options") or ())
        if question_type is QuestionType.CHOICE and not options:
            options = ("",) * DEFAULT_CHOICE_OPTION_COUNT
        order = data.get("order")
        return cls(
            id=question_id,
            text=str(data.get("text") or ""),
            type=question_type,
            options=options[:MAX_CHOICE_OPTIONS],
            timer=_parse_timer_leniently(data.get("timer")),
            color=data.get("color") or None,
            order=int(order) if isinstance(order, (int, float)) else None,
            created_at=_as_datetime(data.get("createdAt")),
        )


@dataclass(frozen=True, slots=True)
class Session:
    """Root document of a hosted polling room."""

    code: str
    state: SessionState = SessionState.WAITING
    current_question: LiveQuestion | None = None
    require_name: bool = False
    brand_color: str | None = None
    name: str = ""
    created_at: datetime | None = None
    expires_at: datetime | None = None
    host_id: str | None = None
    is_setup: bool = True
    show_results_by_default: bool = True

    @property
    def is_live(self) -> bool:
        return self.state in (SessionState.VOTING, SessionState.RESULTS)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and ensure_utc(now) > self.expires_at

    @classmethod
    def from_document(cls, code: str, data: Mapping[str, Any]) -> "Session":
        state = SessionState.parse(data.get("state"))
        raw_question = data.get("currentQuestion")
        current = LiveQuestion.from_document(raw_question) if raw_question else None
        live_states = (SessionState.VOTING, SessionState.RESULTS)
        if state in live_states and current is None:
            logger.warning("Session %s is %s without a live question; reading as waiting", code, state.value)
            state = SessionState.WAITING
        elif state not in live_states and current is not None:
            if state is not SessionState.ENDED:
                logger.warning("Session %s is %s with a live question; dropping it", code, state.value)
            current = None
        return cls(
            code=code,
            state=state,
            current_question=current,
            require_name=bool(data.get("requireName", False)),
            brand_color=data.get("brandColor") or None,
            name=str(data.get("name") or ""),
            created_at=_as_datetime(data.get("createdAt")),
            expires_at=_as_datetime(data.get("expiresAt")),
            host_id=data.get("hostId"),
            is_setup=bool(data.get("isSetup", True)),
            show_results_by_default=bool(data.get("showResultsByDefault", True)),
        )


@dataclass(frozen=True, slots=True)
class Response:
    """One participant's submitted answer."""

    question_id: str
    answer: str
    nickname: str = ""
    uid: str | None = None
    timestamp: datetime | None = None
    id: str = field(default="", compare=False)

    def to_document(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "answer": self.answer,
            "nickname": self.nickname,
            "uid": self.uid,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_document(cls, response_id: str, data: Mapping[str, Any]) -> "Response":
        return cls(
            id=response_id,
            question_id=str(data.get("questionId", "")),
            answer=str(data.get("answer", "")),
            nickname=str(data.get("nickname") or ""),
            uid=data.get("uid"),
            timestamp=_as_datetime(data.get("timestamp")),
        )


@dataclass(frozen=True, slots=True)
class TextAnswer:
    """Free-text answer shown on the host's live view."""

    nickname: str
    answer: str
