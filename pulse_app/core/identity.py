"""Anonymous per-device identity."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from pulse_app.constants.session_constants import DEVICE_UID_KEY
from pulse_app.store.local_store import LocalStore


def new_device_uid() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class DeviceIdentity:
    """Opaque, stable identifier of one device, attached to its responses."""

    uid: str

    def __post_init__(self) -> None:
        if not self.uid or not self.uid.strip():
            raise ValueError("Device uid cannot be empty.")

    @classmethod
    def load_or_create(cls, local_store: LocalStore) -> "DeviceIdentity":
        uid = local_store.get(DEVICE_UID_KEY)
        if not uid:
            uid = new_device_uid()
            local_store.set(DEVICE_UID_KEY, uid)
        return cls(uid)
