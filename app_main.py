"""Application entry point for the PulseQt host console."""

from __future__ import annotations

import socket
import sys

from PySide6.QtWidgets import QApplication

from pulse_app.core.clock import SystemClock
from pulse_app.core.identity import DeviceIdentity
from pulse_app.server.api_server import start_api_server
from pulse_app.server.participant_registry import ParticipantRegistry
from pulse_app.store.base import DocumentStore
from pulse_app.store.local_store import JsonFileLocalStore
from pulse_app.store.memory_store import MemoryDocumentStore
from pulse_app.ui.host_main_window import HostMainWindow
from pulse_app.utils.logging_config import configure_logging
from pulse_app.utils.settings import AppSettings


def _determine_participant_url(port: int) -> str:
    """Best-effort determination of the local IP for the participant-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def _create_store(settings: AppSettings, clock: SystemClock) -> DocumentStore:
    if settings.store_backend == "firestore":
        # firebase-admin is only imported for this backend.
        from pulse_app.store.firestore_store import FirestoreDocumentStore

        return FirestoreDocumentStore.from_service_account(settings.firebase_service_account_json)
    return MemoryDocumentStore(clock)


def main() -> None:
    """Initialize logging, start the participant gateway, and launch the Qt UI."""
    settings = AppSettings.from_env()
    logger = configure_logging(settings.log_level)
    logger.info("Starting PulseQt with the %s store…", settings.store_backend)

    clock = SystemClock()
    store = _create_store(settings, clock)
    local_store = JsonFileLocalStore(settings.state_path)
    identity = DeviceIdentity.load_or_create(local_store)

    registry = ParticipantRegistry(store, clock)
    start_api_server(store=store, clock=clock, host=settings.host, port=settings.port, registry=registry)
    participant_url = _determine_participant_url(settings.port)
    logger.info("Participant page available at %s", participant_url)

    app = QApplication(sys.argv)
    window = HostMainWindow(
        store=store,
        local_store=local_store,
        identity=identity,
        clock=clock,
        participant_url=participant_url,
    )
    window.show()
    exit_code = app.exec()
    # The server thread is a daemon and never runs its shutdown hooks.
    registry.close_all()
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
