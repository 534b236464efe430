"""Aggregation of participant responses into per-category counts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from pulse_app.constants.session_constants import REACTION_EMOJIS
from pulse_app.core.models import LiveQuestion, Question, QuestionType, Response, TextAnswer

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class TallyRow:
    """Immutable snapshot of one category for result charts."""

    label: str
    count: int
    share: float


def categories_for(question: Question | LiveQuestion) -> tuple[str, ...]:
    """Known answer categories of a question, in display order."""
    if question.type is QuestionType.REACTION:
        return REACTION_EMOJIS
    if question.type is QuestionType.CHOICE:
        return tuple(dict.fromkeys(option for option in question.options if option))
    return ()


def tally(responses: Iterable[Response], question: Question | LiveQuestion) -> dict[str, int]:
    """Count responses per known category; unknown answers are ignored."""
    counts = {category: 0 for category in categories_for(question)}
    for response in responses:
        if response.answer in counts:
            counts[response.answer] += 1
    return counts


def tally_rows(responses: Iterable[Response], question: Question | LiveQuestion) -> list[TallyRow]:
    counts = tally(responses, question)
    total = sum(counts.values())
    return [
        TallyRow(label=label, count=count, share=(count / total) if total else 0.0)
        for label, count in counts.items()
    ]


def _arrival_key(response: Response) -> tuple[bool, datetime, str]:
    # Responses still waiting for their server timestamp sort last.
    return (response.timestamp is None, response.timestamp or _EARLIEST, response.id)


def text_answers(responses: Iterable[Response]) -> list[TextAnswer]:
    """Raw (nickname, answer) pairs in arrival order."""
    return [
        TextAnswer(nickname=response.nickname, answer=response.answer)
        for response in sorted(responses, key=_arrival_key)
    ]


def responses_for(responses: Iterable[Response], question_id: str) -> list[Response]:
    return [response for response in responses if response.question_id == question_id]


def one_per_device(responses: Iterable[Response]) -> list[Response]:
    """Keep the earliest response of every device; anonymous rows are all kept."""
    seen: set[str] = set()
    kept: list[Response] = []
    for response in sorted(responses, key=_arrival_key):
        if response.uid:
            if response.uid in seen:
                continue
            seen.add(response.uid)
        kept.append(response)
    return kept
