"""Runtime settings read from the environment (optionally a .env file)."""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from dotenv import load_dotenv

from pulse_app.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT

STORE_BACKENDS = ("memory", "firestore")
DEFAULT_STATE_PATH = Path.home() / ".pulseqt" / "state.json"


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Settings for the host console and the participant gateway."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    store_backend: str = "memory"
    firebase_service_account_json: str | None = None
    state_path: Path = DEFAULT_STATE_PATH
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Path | None = None) -> "AppSettings":
        load_dotenv(dotenv_path=env_file)
        backend = os.getenv("PULSE_STORE_BACKEND", "memory").strip().lower()
        if backend not in STORE_BACKENDS:
            raise ValueError(
                f"Unsupported PULSE_STORE_BACKEND {backend!r}; expected one of {', '.join(STORE_BACKENDS)}."
            )
        port_value = os.getenv("PULSE_PORT", str(DEFAULT_PORT))
        try:
            port = int(port_value)
        except ValueError as exc:
            raise ValueError(f"PULSE_PORT must be an integer, got {port_value!r}.") from exc
        state_path = os.getenv("PULSE_STATE_PATH")
        return cls(
            host=os.getenv("PULSE_HOST", DEFAULT_HOST),
            port=port,
            store_backend=backend,
            firebase_service_account_json=os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON"),
            state_path=Path(state_path) if state_path else DEFAULT_STATE_PATH,
            log_level=os.getenv("PULSE_LOG_LEVEL", "INFO"),
        )
