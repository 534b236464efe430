"""Session, question and timer constants shared across core and UI layers."""

SESSION_CODE_LENGTH: int = 4
SESSION_LIFETIME_HOURS: int = 6
SESSION_CODE_ATTEMPTS: int = 20

SESSIONS_COLLECTION: str = "sessions"
QUESTIONS_COLLECTION: str = "questions"
RESPONSES_COLLECTION: str = "responses"

HOST_SESSION_KEY: str = "host_session_id"
PARTICIPANT_NAME_KEY: str = "participant_name"
DEVICE_UID_KEY: str = "device_uid"
HOST_THEME_KEY: str = "host_theme"

ANONYMOUS_NICKNAME: str = "Anonymous"

TIMER_CHOICES: tuple[int | None, ...] = (None, 10, 30, 60, 120)
TIMER_LABELS: dict[int | None, str] = {
    None: "No Timer",
    10: "10 Seconds",
    30: "30 Seconds",
    60: "1 Minute",
    120: "2 Minutes",
}
TIMER_TICK_INTERVAL_MS: int = 1000
CLOCK_SKEW_TOLERANCE_SECONDS: float = 0.5
AUTO_STOP_GRACE_SECONDS: int = 5

AUTOSAVE_DEBOUNCE_SECONDS: float = 1.0

MAX_CHOICE_OPTIONS: int = 10
DEFAULT_CHOICE_OPTION_COUNT: int = 2
REACTION_EMOJIS: tuple[str, ...] = ("👍", "❤️", "😂", "😮", "😢")

DEFAULT_BRAND_COLOR: str = "#4f46e5"
BRAND_COLORS: tuple[str, ...] = (
    "#0ea5e9",
    "#4f46e5",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#ec4899",
    "#8b5cf6",
    "#111827",
)
