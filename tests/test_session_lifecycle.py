from datetime import timedelta

import pytest

from pulse_app.core.errors import InvalidTransitionError, SessionExpiredError, SessionNotFoundError
from pulse_app.core.models import Question, QuestionType, Session, SessionState
from pulse_app.core.notices import NoticeBoard
from pulse_app.core.services.session_lifecycle import SessionLifecycle, SessionSettings, session_path
from pulse_app.store.base import StoreError
from pulse_app.store.memory_store import MemoryDocumentStore


def _session(store, code):
    return Session.from_document(code, store.get_document(session_path(code)).data)


def _question(**fields):
    return Question(id="q1", text="Favourite colour?", options=("Red", "", "Blue"), **fields)


def test_send_makes_question_live_with_server_start_time(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)

    lifecycle.send_to_audience(_session(store, code), _question(timer=30)).result()

    session = _session(store, code)
    assert session.state is SessionState.VOTING
    live = session.current_question
    assert live.id == "q1"
    assert live.options == ("Red", "Blue")
    assert live.timer == 30
    assert live.start_time == clock.now()


def test_blank_question_is_not_sent(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)

    assert lifecycle.send_to_audience(_session(store, code), Question(id="q1", text="   ")) is None
    assert _session(store, code).state is SessionState.WAITING


def test_cannot_send_while_voting(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    lifecycle.send_to_audience(_session(store, code), _question())

    with pytest.raises(InvalidTransitionError):
        lifecycle.send_to_audience(_session(store, code), _question())


def test_stop_returns_to_waiting_and_clears_live_question(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    lifecycle.send_to_audience(_session(store, code), _question())

    lifecycle.stop_question(_session(store, code))

    data = store.get_document(session_path(code)).data
    assert data["state"] == "waiting"
    assert data["currentQuestion"] is None


def test_reveal_then_reset(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    lifecycle.send_to_audience(_session(store, code), _question())

    lifecycle.reveal_results(_session(store, code))
    revealed = _session(store, code)
    assert revealed.state is SessionState.RESULTS
    assert revealed.current_question is not None

    with pytest.raises(InvalidTransitionError):
        lifecycle.stop_question(revealed)

    lifecycle.reset_question(revealed)
    assert _session(store, code).state is SessionState.WAITING


def test_results_can_go_straight_to_the_next_question(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    lifecycle.send_to_audience(_session(store, code), _question())
    lifecycle.reveal_results(_session(store, code))

    lifecycle.send_to_audience(_session(store, code), Question(id="q2", text="Next?", type=QuestionType.TEXT))

    session = _session(store, code)
    assert session.state is SessionState.VOTING
    assert session.current_question.id == "q2"
    assert session.current_question.options == ()


def test_reveal_requires_voting(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)

    with pytest.raises(InvalidTransitionError):
        lifecycle.reveal_results(_session(store, code))


def test_expired_session_rejects_every_write(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    session = _session(store, code)
    clock.advance(hours=6, seconds=1)

    with pytest.raises(SessionExpiredError):
        lifecycle.send_to_audience(session, _question())
    with pytest.raises(SessionExpiredError):
        lifecycle.apply_settings(session, SessionSettings(name="Late"))
    with pytest.raises(SessionExpiredError):
        lifecycle.end_session(session)
    assert store.get_document(session_path(code)).exists


def test_missing_session_is_reported(store, clock):
    lifecycle = SessionLifecycle(store, "0000", clock)

    with pytest.raises(SessionNotFoundError):
        lifecycle.stop_question(None)


def test_end_session_marks_ended_then_deletes(store, clock, make_session):
    code = make_session()
    lifecycle = SessionLifecycle(store, code, clock)
    states: list[str | None] = []
    store.subscribe_document(
        session_path(code), lambda snapshot: states.append(snapshot.data["state"] if snapshot.data else None)
    )

    lifecycle.end_session(_session(store, code)).result()

    assert states == ["waiting", "ended", None]
    assert not store.get_document(session_path(code)).exists


def test_delete_waits_for_the_ended_state_to_commit(clock):
    store = MemoryDocumentStore(clock, defer_commits=True)
    store.set_document(session_path("4821"), {"state": "waiting", "expiresAt": clock.now() + timedelta(hours=6)})
    store.flush()
    notices = NoticeBoard()
    lifecycle = SessionLifecycle(store, "4821", clock, notices)
    states: list[str | None] = []
    store.subscribe_document(
        session_path("4821"), lambda snapshot: states.append(snapshot.data["state"] if snapshot.data else None)
    )

    ended = lifecycle.end_session(_session(store, "4821"))

    assert store.pending_count == 1
    assert store.get_document(session_path("4821")).data["state"] == "ended"
    assert not ended.done()

    assert store.flush() == 2

    assert ended.result() is None
    assert list(dict.fromkeys(states)) == ["waiting", "ended", None]
    assert states[-1] is None
    assert notices.drain() == []


def test_failed_end_keeps_the_session(store, clock, make_session):
    code = make_session()
    notices = NoticeBoard()
    lifecycle = SessionLifecycle(store, code, clock, notices)
    session = _session(store, code)
    store.set_offline(True)

    ended = lifecycle.end_session(session)

    with pytest.raises(StoreError):
        ended.result()
    store.set_offline(False)
    assert _session(store, code).state is SessionState.WAITING
    assert len(notices.drain()) == 1


def test_apply_settings_writes_only_given_fields(store, clock, make_session):
    code = make_session(name="Keep me")
    lifecycle = SessionLifecycle(store, code, clock)

    assert lifecycle.apply_settings(_session(store, code), SessionSettings()) is None
    lifecycle.apply_settings(_session(store, code), SessionSettings(require_name=True, brand_color="#10b981"))

    session = _session(store, code)
    assert session.require_name
    assert session.brand_color == "#10b981"
    assert session.name == "Keep me"


def test_complete_setup_only_writes_once(store, clock, make_session):
    code = make_session(isSetup=False)
    lifecycle = SessionLifecycle(store, code, clock)

    assert lifecycle.complete_setup(_session(store, code)) is not None
    assert _session(store, code).is_setup
    assert lifecycle.complete_setup(_session(store, code)) is None


def test_legacy_setup_state_reads_as_waiting(store, clock, make_session):
    code = make_session(state="setup")
    lifecycle = SessionLifecycle(store, code, clock)

    assert _session(store, code).state is SessionState.WAITING
    lifecycle.send_to_audience(_session(store, code), _question())
    assert _session(store, code).state is SessionState.VOTING


def test_expiry_boundary_is_exclusive(store, clock, make_session):
    code = make_session()
    clock.advance(timedelta(hours=6).total_seconds())

    assert not _session(store, code).is_expired(clock.now())
