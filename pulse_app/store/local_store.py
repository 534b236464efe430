"""Key/value storage that survives restarts of this device.

Holds the host's active session code, the participant nickname, the device
uid and the console theme. Values are plain strings.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock

logger = logging.getLogger(__name__)


class LocalStore:
    """In-memory key/value store; the base for persistent variants."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})
        self._lock = Lock()

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            return self._values.get(key, default)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value
            self._persist()

    def remove(self, key: str) -> None:
        with self._lock:
            if self._values.pop(key, None) is not None:
                self._persist()

    def _persist(self) -> None:
        """Hook for subclasses; called with the lock held after every change."""


class JsonFileLocalStore(LocalStore):
    """Local store persisted as a small JSON object on disk."""

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path.expanduser().resolve()
        super().__init__(self._load())

    @property
    def file_path(self) -> Path:
        return self._file_path

    def _load(self) -> dict[str, str]:
        if not self._file_path.exists():
            return {}
        try:
            raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self._file_path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring malformed state file %s", self._file_path)
            return {}
        return {str(key): str(value) for key, value in raw.items()}

    def _persist(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        temp_path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")
        temp_path.replace(self._file_path)
