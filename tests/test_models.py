from datetime import datetime

import pytest

from pulse_app.core.markdown_renderer import renderer
from pulse_app.core.models import LiveQuestion, Question, QuestionType, Session, SessionState, parse_timer

from conftest import START


def test_timer_values_are_normalized():
    assert parse_timer("none") is None
    assert parse_timer(None) is None
    assert parse_timer("30") == 30
    assert parse_timer(120) == 120
    with pytest.raises(ValueError):
        parse_timer(45)
    with pytest.raises(ValueError):
        parse_timer("soon")


def test_question_document_defaults_for_legacy_rows():
    question = Question.from_document("q1", {"text": "Old", "timer": "weird"})

    assert question.type is QuestionType.CHOICE
    assert question.options == ("", "")
    assert question.timer is None
    assert question.order is None


def test_live_copy_drops_blank_options_and_strips_text():
    question = Question(id="q1", text="  Pick one  ", options=(" A ", "", "B"), timer=10, color="#ef4444")

    live = question.to_live(START)

    assert live == LiveQuestion(
        id="q1", text="Pick one", type=QuestionType.CHOICE, options=("A", "B"), timer=10, color="#ef4444", start_time=START
    )


def test_text_questions_carry_no_options():
    question = Question(id="q1", text="Why?", type=QuestionType.TEXT, options=("left", "over"))

    assert question.content_fields()["options"] == []
    assert question.to_live().options == ()


def test_too_many_options_are_refused():
    with pytest.raises(ValueError):
        Question(id="q1", options=tuple(str(index) for index in range(11)))


def test_inconsistent_session_documents_are_repaired():
    voting_without_question = Session.from_document("4821", {"state": "voting", "currentQuestion": None})
    waiting_with_question = Session.from_document(
        "4821", {"state": "waiting", "currentQuestion": {"id": "q1", "text": "?", "type": "choice"}}
    )

    assert voting_without_question.state is SessionState.WAITING
    assert waiting_with_question.current_question is None


def test_unknown_state_reads_as_waiting():
    assert SessionState.parse("paused") is SessionState.WAITING
    assert SessionState.parse("setup") is SessionState.WAITING


def test_naive_timestamps_are_read_as_utc():
    session = Session.from_document("4821", {"expiresAt": datetime(2026, 3, 2, 15, 0)})

    assert session.expires_at.tzinfo is not None
    assert not session.is_expired(START)


def test_markdown_escapes_raw_html():
    html = renderer.render_fragment("Hello <script>alert(1)</script> **world**")

    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "<strong>world</strong>" in html


def test_empty_markdown_renders_placeholder():
    assert "No question text" in renderer.render_fragment("   ")
