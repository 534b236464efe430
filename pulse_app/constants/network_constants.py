"""Network configuration constants for the participant gateway."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 8000
DEVICE_COOKIE_NAME: str = "pulse_device_id"
DEVICE_COOKIE_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 30
PARTICIPANT_IDLE_TIMEOUT_SECONDS: int = 15 * 60
