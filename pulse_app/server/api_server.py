"""FastAPI server that exposes participant endpoints."""

from __future__ import annotations

from contextlib import asynccontextmanager
import re
from threading import Thread

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
import uvicorn

from pulse_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEVICE_COOKIE_MAX_AGE_SECONDS,
    DEVICE_COOKIE_NAME,
)
from pulse_app.constants.session_constants import REACTION_EMOJIS
from pulse_app.core.clock import Clock, SystemClock
from pulse_app.core.errors import (
    DuplicateResponseError,
    InvalidTransitionError,
    PulseError,
    SessionExpiredError,
    SessionNotFoundError,
    StaleReferenceError,
    SubmissionClosedError,
    WriteFailureError,
)
from pulse_app.core.identity import DeviceIdentity, new_device_uid
from pulse_app.core.markdown_renderer import renderer
from pulse_app.core.models import QuestionType
from pulse_app.core.participant_controller import ParticipantController, ParticipantState
from pulse_app.server.participant_registry import ParticipantRegistry
from pulse_app.store.base import DocumentStore

_DEVICE_UID_PATTERN = re.compile(r"[A-Za-z0-9_-]{8,64}")

_STATUS_BY_ERROR: tuple[tuple[type[PulseError], int], ...] = (
    (SessionNotFoundError, 404),
    (SessionExpiredError, 410),
    (SubmissionClosedError, 409),
    (DuplicateResponseError, 409),
    (InvalidTransitionError, 409),
    (StaleReferenceError, 409),
    (WriteFailureError, 503),
)


def _ensure_device(request: Request, response: Response) -> DeviceIdentity:
    uid = request.cookies.get(DEVICE_COOKIE_NAME)
    if uid and _DEVICE_UID_PATTERN.fullmatch(uid):
        return DeviceIdentity(uid)
    uid = new_device_uid()
    response.set_cookie(
        key=DEVICE_COOKIE_NAME,
        value=uid,
        max_age=DEVICE_COOKIE_MAX_AGE_SECONDS,
        samesite="lax",
        httponly=True,
    )
    return DeviceIdentity(uid)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _serialize_state(state: ParticipantState, controller: ParticipantController) -> dict[str, object]:
    question_payload: dict[str, object] | None = None
    question = state.question
    if question is not None:
        if question.type is QuestionType.REACTION:
            options = list(REACTION_EMOJIS)
        else:
            options = list(question.options)
        question_payload = {
            "id": question.id,
            "type": question.type.value,
            "html": renderer.render_fragment(question.text),
            "options": options,
            "timer": question.timer,
            "color": question.color,
        }
    return {
        "step": state.step.value,
        "session_code": state.session_code,
        "session_name": state.session_name,
        "brand_color": state.brand_color,
        "nickname": state.nickname,
        "session_state": state.session_state.value if state.session_state else None,
        "question": question_payload,
        "submitted": state.submitted,
        "my_answer": state.my_answer,
        "remaining": state.remaining,
        "locked": state.locked,
        "notices": [notice.message for notice in controller.notices.drain()],
    }


_PARTICIPANT_PAGE_HTML = """<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>PulseQt</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      :root { --brand: #4f46e5; font-family: 'Inter', system-ui, sans-serif; background: #f8fafc; color: #0f172a; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; align-items: center; }
      .card { width: 100%; max-width: 28rem; background: #fff; border-radius: 1rem; padding: 1.5rem; box-shadow: 0 0.5rem 1.5rem rgba(15, 23, 42, 0.08); box-sizing: border-box; }
      .hidden { display: none; }
      h1, h2 { margin-top: 0; }
      input[type=text] { width: 100%; box-sizing: border-box; border: 1px solid #cbd5e1; border-radius: 0.75rem; padding: 0.85rem; font-size: 1.1rem; margin-bottom: 0.75rem; }
      #code-input { text-align: center; letter-spacing: 0.5em; font-family: monospace; font-size: 1.6rem; text-transform: uppercase; }
      .primary-button, .option-button { width: 100%; border: none; border-radius: 0.75rem; padding: 0.85rem 1.5rem; font-size: 1rem; background: var(--brand); color: #fff; cursor: pointer; margin-bottom: 0.6rem; }
      .primary-button:disabled, .option-button:disabled { opacity: 0.5; cursor: not-allowed; }
      .reaction-grid { display: grid; grid-template-columns: repeat(5, 1fr); gap: 0.5rem; }
      .reaction-grid .option-button { font-size: 1.8rem; padding: 0.6rem; background: #eef2ff; }
      #question-container { font-size: 1.15rem; line-height: 1.6; margin-bottom: 1rem; }
      #status { min-height: 1.25rem; color: #475569; }
      #notice { min-height: 1.25rem; color: #dc2626; }
      #timer-wrapper { display: flex; flex-direction: column; gap: 0.35rem; margin-bottom: 1rem; }
      #timer-wrapper.hidden { display: none; }
      #timer-label { font-size: 0.95rem; color: #b45309; }
      .timer-track { width: 100%; height: 0.6rem; background: rgba(245, 158, 11, 0.25); border-radius: 999px; overflow: hidden; }
      #timer-fill { width: 100%; height: 100%; background: #f59e0b; transform-origin: left center; transform: scaleX(0); transition: transform 200ms linear; }
      .session-name { color: #64748b; font-size: 0.95rem; }
    </style>
  </head>
  <body>
    <p id=\"notice\"></p>
    <section class=\"card\" id=\"join-card\">
      <h1>Join Session</h1>
      <p>Enter the 4-digit code displayed on the host screen.</p>
      <input id=\"code-input\" type=\"text\" maxlength=\"4\" inputmode=\"numeric\" placeholder=\"1234\" />
      <button id=\"join-button\" class=\"primary-button\" disabled>Next</button>
    </section>
    <section class=\"card hidden\" id=\"verifying-card\">
      <p>Checking the session…</p>
    </section>
    <section class=\"card hidden\" id=\"name-card\">
      <h2>Who are you?</h2>
      <p>Enter your name so the host knows who's answering.</p>
      <input id=\"name-input\" type=\"text\" maxlength=\"40\" placeholder=\"Your Name\" />
      <button id=\"name-button\" class=\"primary-button\">Join Session</button>
    </section>
    <section class=\"card hidden\" id=\"waiting-card\">
      <h2>You're in!</h2>
      <p class=\"session-name\" id=\"waiting-session-name\"></p>
      <p>Waiting for the host to start the next question…</p>
    </section>
    <section class=\"card hidden\" id=\"question-card\">
      <div id=\"question-container\"></div>
      <div id=\"timer-wrapper\" class=\"hidden\">
        <span id=\"timer-label\"></span>
        <div class=\"timer-track\"><div id=\"timer-fill\"></div></div>
      </div>
      <div id=\"answer-container\"></div>
      <p id=\"status\"></p>
    </section>
    <section class=\"card hidden\" id=\"ended-card\">
      <h2>Session Ended</h2>
      <p>The host has ended this session.</p>
      <button class=\"primary-button\" onclick=\"leaveSession()\">Back to Home</button>
    </section>
    <section class=\"card hidden\" id=\"expired-card\">
      <h2>Session Expired</h2>
      <p>This session has exceeded the 6-hour time limit and is no longer active.</p>
      <button class=\"primary-button\" onclick=\"leaveSession()\">Return to Home</button>
    </section>
    <script>
      const cards = ['join', 'verifying', 'name', 'waiting', 'question', 'ended', 'expired'];
      const codeInput = document.getElementById('code-input');
      const joinButton = document.getElementById('join-button');
      const nameInput = document.getElementById('name-input');
      const nameButton = document.getElementById('name-button');
      const noticeEl = document.getElementById('notice');
      const questionContainer = document.getElementById('question-container');
      const answerContainer = document.getElementById('answer-container');
      const statusEl = document.getElementById('status');
      const timerWrapper = document.getElementById('timer-wrapper');
      const timerLabel = document.getElementById('timer-label');
      const timerFill = document.getElementById('timer-fill');

      let renderedQuestionKey = null;
      let pollHandle = null;

      function showCard(name) {
        cards.forEach(card => {
          document.getElementById(`${card}-card`).classList.toggle('hidden', card !== name);
        });
      }

      function showNotice(message) {
        noticeEl.textContent = message || '';
      }

      async function callApi(path, method = 'GET', body = null) {
        const options = { method, headers: { 'Content-Type': 'application/json' } };
        if (body !== null) {
          options.body = JSON.stringify(body);
        }
        const response = await fetch(path, options);
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          throw new Error(payload.detail || 'Something went wrong.');
        }
        return payload;
      }

      codeInput.addEventListener('input', () => {
        joinButton.disabled = codeInput.value.trim().length !== 4;
      });

      async function joinSession(code) {
        showCard('verifying');
        try {
          render(await callApi('/join', 'POST', { code }));
          showNotice('');
        } catch (error) {
          showNotice(error.message);
          showCard('join');
        }
      }

      joinButton.addEventListener('click', () => joinSession(codeInput.value.trim()));

      nameButton.addEventListener('click', async () => {
        try {
          render(await callApi('/name', 'POST', { nickname: nameInput.value }));
        } catch (error) {
          showNotice(error.message);
        }
      });

      async function leaveSession() {
        try {
          render(await callApi('/leave', 'POST', {}));
        } catch (error) {
          showCard('join');
        }
        window.history.replaceState({}, '', window.location.pathname);
      }

      async function submitAnswer(value) {
        answerContainer.querySelectorAll('button').forEach(btn => (btn.disabled = true));
        try {
          render(await callApi('/answer', 'POST', { answer: value }));
        } catch (error) {
          statusEl.textContent = error.message;
          refreshState();
        }
      }

      function buildAnswerControls(question, enabled) {
        answerContainer.innerHTML = '';
        if (question.type === 'text') {
          const input = document.createElement('input');
          input.type = 'text';
          input.placeholder = 'Type your answer…';
          input.disabled = !enabled;
          const button = document.createElement('button');
          button.className = 'primary-button';
          button.textContent = 'Submit';
          button.disabled = !enabled;
          button.addEventListener('click', () => submitAnswer(input.value));
          answerContainer.append(input, button);
          return;
        }
        const wrapper = document.createElement('div');
        if (question.type === 'reaction') {
          wrapper.className = 'reaction-grid';
        }
        question.options.forEach(option => {
          const button = document.createElement('button');
          button.className = 'option-button';
          button.textContent = option;
          button.disabled = !enabled;
          button.addEventListener('click', () => submitAnswer(option));
          wrapper.appendChild(button);
        });
        answerContainer.appendChild(wrapper);
      }

      function renderTimer(state) {
        const question = state.question;
        if (!question || !question.timer || state.remaining === null) {
          timerWrapper.classList.add('hidden');
          return;
        }
        timerWrapper.classList.remove('hidden');
        const fraction = Math.min(1, state.remaining / question.timer);
        timerFill.style.transform = `scaleX(${fraction})`;
        timerLabel.textContent = state.locked ? 'Time is up' : `${state.remaining}s remaining`;
      }

      function render(state) {
        if (state.brand_color) {
          document.documentElement.style.setProperty('--brand', state.brand_color);
        }
        if (state.notices && state.notices.length) {
          showNotice(state.notices[state.notices.length - 1]);
        }
        document.getElementById('waiting-session-name').textContent = state.session_name || '';
        if (state.step !== 'participating') {
          renderedQuestionKey = null;
          showCard(state.step);
          if (state.step === 'name' && !nameInput.value) {
            nameInput.value = state.nickname || '';
          }
          return;
        }
        const question = state.question;
        if (state.session_state !== 'voting' && state.session_state !== 'results' || !question) {
          renderedQuestionKey = null;
          showCard('waiting');
          return;
        }
        showCard('question');
        const open = state.session_state === 'voting' && !state.locked && !state.submitted;
        const key = `${question.id}|${open}`;
        if (key !== renderedQuestionKey) {
          renderedQuestionKey = key;
          questionContainer.innerHTML = question.html;
          buildAnswerControls(question, open);
        }
        if (state.submitted) {
          statusEl.textContent = state.my_answer ? `Answer sent: ${state.my_answer}` : 'Answer sent!';
        } else if (state.session_state === 'results') {
          statusEl.textContent = 'Answers are closed.';
        } else if (state.locked) {
          statusEl.textContent = 'Time is up, you can no longer submit an answer.';
        } else {
          statusEl.textContent = '';
        }
        renderTimer(state);
      }

      async function refreshState() {
        try {
          render(await callApi('/state'));
        } catch (error) {
          showNotice('Unable to reach the session server.');
        }
      }

      const linkedCode = new URLSearchParams(window.location.search).get('session');
      if (linkedCode && linkedCode.trim().length === 4) {
        joinSession(linkedCode.trim());
      } else {
        refreshState();
      }
      pollHandle = setInterval(refreshState, 1000);
    </script>
  </body>
</html>
"""


class JoinPayload(BaseModel):
    """Payload schema for joining a session by code."""

    code: str


class NamePayload(BaseModel):
    nickname: str


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    answer: str


def _get_registry_dependency(registry: ParticipantRegistry):
    def dependency() -> ParticipantRegistry:
        return registry

    return dependency


def create_api_app(
    store: DocumentStore,
    clock: Clock | None = None,
    registry: ParticipantRegistry | None = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided document store."""
    registry = registry or ParticipantRegistry(store, clock or SystemClock())

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        # Participant listeners must not outlive the server.
        registry.close_all()

    app = FastAPI(title="PulseQt Participant API", version="0.1.0", lifespan=lifespan)
    registry_dep = _get_registry_dependency(registry)

    def participant(request: Request, response: Response, participants: ParticipantRegistry) -> ParticipantController:
        return participants.controller_for(_ensure_device(request, response))

    @app.get("/", response_class=HTMLResponse)
    def serve_participant_page() -> str:
        return _PARTICIPANT_PAGE_HTML

    @app.get("/identity")
    def get_identity(
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        state = controller.state()
        return {"uid": controller.identity.uid, "nickname": state.nickname}

    @app.get("/state")
    def get_state(
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        return _serialize_state(controller.state(), controller)

    @app.post("/join")
    def join_session(
        payload: JoinPayload,
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        try:
            controller.join(payload.code)
        except (PulseError, ValueError) as exc:
            raise _http_error(exc) from exc
        return _serialize_state(controller.state(), controller)

    @app.post("/name")
    def set_name(
        payload: NamePayload,
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        try:
            controller.set_name(payload.nickname)
        except (PulseError, ValueError) as exc:
            raise _http_error(exc) from exc
        return _serialize_state(controller.state(), controller)

    @app.post("/answer", status_code=201)
    def submit_answer(
        payload: AnswerPayload,
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        try:
            controller.submit(payload.answer)
        except (PulseError, ValueError) as exc:
            raise _http_error(exc) from exc
        return _serialize_state(controller.state(), controller)

    @app.post("/leave")
    def leave_session(
        request: Request,
        response: Response,
        participants: ParticipantRegistry = Depends(registry_dep),
    ) -> dict[str, object]:
        controller = participant(request, response, participants)
        controller.leave()
        return _serialize_state(controller.state(), controller)

    return app


def start_api_server(
    store: DocumentStore,
    clock: Clock | None = None,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
    registry: ParticipantRegistry | None = None,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(store, clock, registry)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="PulseApiServer", daemon=True)
    thread.start()
    return thread
