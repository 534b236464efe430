from fastapi.testclient import TestClient
import pytest

from pulse_app.constants.network_constants import DEVICE_COOKIE_NAME
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.models import Question, Session
from pulse_app.core.participant_controller import ParticipantStep
from pulse_app.core.services.session_lifecycle import SessionLifecycle, session_path
from pulse_app.server.api_server import create_api_app
from pulse_app.server.participant_registry import ParticipantRegistry


@pytest.fixture
def client(store, clock):
    with TestClient(create_api_app(store, clock)) as test_client:
        # Establish the device cookie the way the participant page does.
        test_client.get("/identity")
        yield test_client


def _go_live(store, clock, code, question):
    session = Session.from_document(code, store.get_document(session_path(code)).data)
    SessionLifecycle(store, code, clock).send_to_audience(session, question).result()


def test_participant_page_is_served(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Join Session" in response.text


def test_identity_is_stable_across_requests(client):
    first = client.get("/identity").json()["uid"]
    second = client.get("/identity").json()["uid"]

    assert first == second
    assert client.cookies.get(DEVICE_COOKIE_NAME) == first


def test_malformed_device_cookie_is_replaced(store, clock):
    with TestClient(create_api_app(store, clock)) as test_client:
        response = test_client.get("/identity", headers={"Cookie": f"{DEVICE_COOKIE_NAME}=short"})

    uid = response.json()["uid"]
    assert uid != "short"
    assert len(uid) == 32
    assert response.cookies.get(DEVICE_COOKIE_NAME) == uid


def test_join_unknown_session_is_404(client):
    response = client.post("/join", json={"code": "9999"})

    assert response.status_code == 404


def test_join_with_malformed_code_is_422(client):
    assert client.post("/join", json={"code": "12345"}).status_code == 422


def test_join_expired_session_is_410(client, clock, make_session):
    make_session()
    clock.advance(hours=7)

    assert client.post("/join", json={"code": "4821"}).status_code == 410


def test_join_and_answer_flow(store, clock, client, make_session):
    code = make_session(name="Team sync")

    joined = client.post("/join", json={"code": code}).json()
    assert joined["step"] == "participating"
    assert joined["session_name"] == "Team sync"
    assert joined["question"] is None

    _go_live(store, clock, code, Question(id="q1", text="**Lunch?**", options=("Pizza", "Salad"), timer=30))

    state = client.get("/state").json()
    assert state["session_state"] == "voting"
    assert state["question"]["options"] == ["Pizza", "Salad"]
    assert "<strong>Lunch?</strong>" in state["question"]["html"]
    assert state["remaining"] == 30

    answered = client.post("/answer", json={"answer": "Pizza"})
    assert answered.status_code == 201
    assert answered.json()["my_answer"] == "Pizza"

    assert client.post("/answer", json={"answer": "Salad"}).status_code == 409


def test_invalid_answer_is_422(store, clock, client, make_session):
    code = make_session()
    client.post("/join", json={"code": code})
    _go_live(store, clock, code, Question(id="q1", text="Lunch?", options=("Pizza", "Salad")))

    assert client.post("/answer", json={"answer": "Soup"}).status_code == 422


def test_answer_while_waiting_is_409(client, make_session):
    client.post("/join", json={"code": make_session()})

    assert client.post("/answer", json={"answer": "Pizza"}).status_code == 409


def test_name_is_required_when_the_host_asks(client, make_session):
    code = make_session(requireName=True)

    assert client.post("/join", json={"code": code}).json()["step"] == "name"
    assert client.post("/name", json={"nickname": " "}).status_code == 422

    named = client.post("/name", json={"nickname": "Ada"}).json()
    assert named["step"] == "participating"
    assert named["nickname"] == "Ada"


def test_vanished_session_notice_is_delivered_once(store, client, make_session):
    code = make_session()
    client.post("/join", json={"code": code})
    store.delete_document(session_path(code))

    first = client.get("/state").json()
    second = client.get("/state").json()

    assert first["step"] == "join"
    assert first["notices"] == ["Session not found!"]
    assert second["notices"] == []


def test_leave_returns_to_join(client, make_session):
    client.post("/join", json={"code": make_session()})

    left = client.post("/leave").json()

    assert left["step"] == "join"
    assert left["session_code"] is None


def test_registry_evicts_idle_participants(store, clock):
    registry = ParticipantRegistry(store, clock, idle_timeout_seconds=60)
    with TestClient(create_api_app(store, clock, registry)) as test_client:
        test_client.get("/identity")
        assert len(registry) == 1

        clock.advance(61)

        assert registry.evict_idle() == 1
        assert len(registry) == 0


def test_shutdown_closes_participant_listeners(store, clock, make_session):
    registry = ParticipantRegistry(store, clock)
    code = make_session()
    with TestClient(create_api_app(store, clock, registry)) as test_client:
        uid = test_client.get("/identity").json()["uid"]
        test_client.post("/join", json={"code": code})
        participant = registry.controller_for(DeviceIdentity(uid))

    store.update_document(session_path(code), {"state": "ended"})

    assert len(registry) == 0
    assert participant.step is ParticipantStep.PARTICIPATING
