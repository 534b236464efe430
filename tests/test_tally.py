from datetime import timedelta

from pulse_app.constants.session_constants import REACTION_EMOJIS
from pulse_app.core.models import LiveQuestion, Question, QuestionType, Response, TextAnswer
from pulse_app.core.tally import categories_for, one_per_device, tally, tally_rows, text_answers

from conftest import START


def _response(answer, uid, seconds=None, question_id="q1", nickname="Anonymous", response_id=None):
    return Response(
        id=response_id or f"{question_id}__{uid}",
        question_id=question_id,
        answer=answer,
        nickname=nickname,
        uid=uid,
        timestamp=START + timedelta(seconds=seconds) if seconds is not None else None,
    )


def test_choice_tally_counts_known_options_only():
    question = LiveQuestion(id="q1", text="Lunch?", type=QuestionType.CHOICE, options=("Pizza", "Salad"))
    responses = [
        _response("Pizza", "u1", 1),
        _response("Pizza", "u2", 2),
        _response("Soup", "u3", 3),
    ]

    assert tally(responses, question) == {"Pizza": 2, "Salad": 0}


def test_duplicate_option_labels_form_one_category():
    question = Question(id="q1", text="Pick", options=("Yes", "No", "Yes", ""))

    assert categories_for(question) == ("Yes", "No")


def test_reaction_questions_use_the_fixed_emoji_set():
    question = LiveQuestion(id="q1", text="How was it?", type=QuestionType.REACTION)
    responses = [_response(REACTION_EMOJIS[0], "u1", 1), _response(REACTION_EMOJIS[0], "u2", 2)]

    counts = tally(responses, question)

    assert list(counts) == list(REACTION_EMOJIS)
    assert counts[REACTION_EMOJIS[0]] == 2


def test_tally_rows_report_shares():
    question = LiveQuestion(id="q1", text="?", type=QuestionType.CHOICE, options=("A", "B"))
    rows = tally_rows([_response("A", "u1", 1), _response("A", "u2", 2), _response("B", "u3", 3), _response("B", "u4", 4)], question)

    assert [(row.label, row.count, row.share) for row in rows] == [("A", 2, 0.5), ("B", 2, 0.5)]
    assert all(row.share == 0.0 for row in tally_rows([], question))


def test_text_questions_have_no_categories_and_list_answers_in_arrival_order():
    question = LiveQuestion(id="q1", text="Thoughts?", type=QuestionType.TEXT)
    responses = [
        _response("later", "u2", 5, nickname="Bo"),
        _response("pending", "u3", None, nickname="Cy"),
        _response("first", "u1", 1, nickname="Ada"),
    ]

    assert tally(responses, question) == {}
    assert text_answers(responses) == [
        TextAnswer(nickname="Ada", answer="first"),
        TextAnswer(nickname="Bo", answer="later"),
        TextAnswer(nickname="Cy", answer="pending"),
    ]


def test_one_per_device_keeps_the_earliest_answer():
    responses = [
        _response("B", "u1", 9, response_id="legacy-1"),
        _response("A", "u1", 2),
        _response("A", None, 3, response_id="anon-1"),
        _response("B", None, 4, response_id="anon-2"),
    ]

    kept = one_per_device(responses)

    assert [response.answer for response in kept if response.uid == "u1"] == ["A"]
    assert len(kept) == 3
