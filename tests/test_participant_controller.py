import pytest

from pulse_app.constants.session_constants import PARTICIPANT_NAME_KEY
from pulse_app.core.errors import (
    DuplicateResponseError,
    SessionExpiredError,
    SessionNotFoundError,
    SubmissionClosedError,
)
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.models import Question, QuestionType, Session
from pulse_app.core.participant_controller import MAX_TEXT_ANSWER_LENGTH, ParticipantController, ParticipantStep
from pulse_app.core.services.response_recorder import ResponseRecorder, response_id, responses_path
from pulse_app.core.services.session_lifecycle import SessionLifecycle, session_path
from pulse_app.store.base import join_path
from pulse_app.store.local_store import LocalStore


@pytest.fixture
def local_store():
    return LocalStore()


@pytest.fixture
def participant(store, clock, local_store):
    controller = ParticipantController(store, clock, DeviceIdentity("device-1"), local_store)
    yield controller
    controller.close()


def _go_live(store, clock, code, question):
    lifecycle = SessionLifecycle(store, code, clock)
    session = Session.from_document(code, store.get_document(session_path(code)).data)
    if session.is_live:
        lifecycle.stop_question(session)
        session = Session.from_document(code, store.get_document(session_path(code)).data)
    lifecycle.send_to_audience(session, question).result()
    return lifecycle


def _choice(question_id="q1", **fields):
    return Question(id=question_id, text="Lunch?", options=("Pizza", "Salad"), **fields)


def test_unknown_code_is_reported_and_stays_on_join(participant):
    with pytest.raises(SessionNotFoundError):
        participant.join("9999")

    assert participant.step is ParticipantStep.JOIN


def test_malformed_code_is_rejected(participant):
    with pytest.raises(ValueError):
        participant.join("12")


def test_code_is_normalized(participant, make_session):
    make_session(code="AB12")

    assert participant.join("  ab12 ") is ParticipantStep.PARTICIPATING
    assert participant.state().session_code == "AB12"


def test_expired_session_cannot_be_joined(participant, clock, make_session):
    make_session()
    clock.advance(hours=7)

    with pytest.raises(SessionExpiredError):
        participant.join("4821")
    assert participant.step is ParticipantStep.EXPIRED


def test_anonymous_join_remembers_default_nickname(participant, local_store, make_session):
    make_session()

    participant.join("4821")

    assert participant.state().nickname == "Anonymous"
    assert local_store.get(PARTICIPANT_NAME_KEY) == "Anonymous"


def test_named_session_asks_for_a_name(participant, local_store, make_session):
    make_session(requireName=True)

    assert participant.join("4821") is ParticipantStep.NAME
    with pytest.raises(ValueError):
        participant.set_name("   ")

    participant.set_name("  Ada ")

    assert participant.step is ParticipantStep.PARTICIPATING
    assert local_store.get(PARTICIPANT_NAME_KEY) == "Ada"


def test_answer_is_recorded_once(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)
    _go_live(store, clock, code, _choice())

    participant.submit(" Pizza ")

    stored = store.get_document(join_path(responses_path(code), response_id("q1", "device-1"))).data
    assert stored["answer"] == "Pizza"
    assert stored["nickname"] == "Anonymous"
    state = participant.state()
    assert state.submitted and state.my_answer == "Pizza"

    with pytest.raises(DuplicateResponseError):
        participant.submit("Salad")


def test_answer_from_another_client_of_this_device_is_refused(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)
    _go_live(store, clock, code, _choice())
    ResponseRecorder(store, code).submit("q1", "device-1", "Salad", "Anonymous")

    with pytest.raises(DuplicateResponseError):
        participant.submit("Pizza")

    state = participant.state()
    assert state.submitted and state.my_answer is None


def test_answers_outside_voting_are_closed(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)

    with pytest.raises(SubmissionClosedError):
        participant.submit("Pizza")

    lifecycle = _go_live(store, clock, code, _choice())
    lifecycle.reveal_results(Session.from_document(code, store.get_document(session_path(code)).data))

    with pytest.raises(SubmissionClosedError):
        participant.submit("Pizza")


def test_invalid_answers_raise_value_error(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)
    _go_live(store, clock, code, _choice())

    with pytest.raises(ValueError):
        participant.submit("Soup")
    with pytest.raises(ValueError):
        participant.submit("  ")

    _go_live(store, clock, code, Question(id="q2", text="Thoughts?", type=QuestionType.TEXT))
    with pytest.raises(ValueError):
        participant.submit("x" * (MAX_TEXT_ANSWER_LENGTH + 1))


def test_timer_locks_answers(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)
    _go_live(store, clock, code, _choice(timer=10))

    clock.advance(4)
    assert participant.state().remaining == 6

    clock.advance(6)
    state = participant.state()
    assert state.locked and state.remaining == 0
    with pytest.raises(SubmissionClosedError):
        participant.submit("Pizza")


def test_new_live_question_resets_the_answer(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)
    _go_live(store, clock, code, _choice())
    participant.submit("Pizza")

    _go_live(store, clock, code, _choice(question_id="q2"))

    state = participant.state()
    assert state.question.id == "q2"
    assert not state.submitted and state.my_answer is None
    participant.submit("Salad")


def test_session_vanishing_returns_to_join_with_notice(store, participant, make_session):
    code = make_session()
    participant.join(code)

    store.delete_document(session_path(code))

    assert participant.step is ParticipantStep.JOIN
    assert [notice.message for notice in participant.notices.drain()] == ["Session not found!"]


def test_ended_session_shows_ended(store, clock, participant, make_session):
    code = make_session()
    participant.join(code)

    SessionLifecycle(store, code, clock).end_session(
        Session.from_document(code, store.get_document(session_path(code)).data)
    )

    assert participant.step is ParticipantStep.ENDED
    assert participant.notices.drain() == []


def test_session_expiring_while_participating(clock, participant, make_session):
    participant.join(make_session())

    clock.advance(hours=6, seconds=1)

    assert participant.state().step is ParticipantStep.EXPIRED
    with pytest.raises(SubmissionClosedError):
        participant.submit("Pizza")


def test_leave_stops_following(store, participant, make_session):
    code = make_session()
    participant.join(code)

    participant.leave()
    store.update_document(session_path(code), {"name": "Renamed"})

    state = participant.state()
    assert state.step is ParticipantStep.JOIN
    assert state.session_code is None and state.session_name == ""
