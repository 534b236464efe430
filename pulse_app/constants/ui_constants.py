"""Qt UI constants used across widgets."""

WINDOW_TITLE: str = "PulseQt Host Console"
PARTICIPANT_URL_PLACEHOLDER: str = "http://<host-ip>:8000/"
STATE_REFRESH_INTERVAL_MS: int = 1000
NOTICE_DISPLAY_MS: int = 5000

LANDING_TITLE: str = "Live polls for any room"
LANDING_CREATE_BUTTON: str = "Create New Session"
LANDING_REJOIN_TEMPLATE: str = "Rejoin Session {code}"
LANDING_CREATING_MESSAGE: str = "Creating session..."

TOP_BAR_SETTINGS_BUTTON: str = "Settings"
TOP_BAR_THEME_BUTTON: str = "Toggle Theme"
TOP_BAR_END_BUTTON: str = "End Session"
TOP_BAR_ABOUT_BUTTON: str = "About PulseQt"
TOP_BAR_HELP_BUTTON: str = "Help"
SESSION_CODE_TEMPLATE: str = "Session code: {code}"
PARTICIPANT_URL_TEMPLATE: str = "Join at {url}?session={code}"

SIDEBAR_TITLE: str = "Questions"
SIDEBAR_ADD_BUTTON: str = "Add Question"
SIDEBAR_DRAG_HANDLE: str = "☰"
SIDEBAR_UNTITLED: str = "Untitled question"
SIDEBAR_ROW_MIN_HEIGHT: int = 44

EDITOR_PLACEHOLDER: str = "Type your question (Markdown supported)."
EDITOR_OPTION_PLACEHOLDER: str = "Option {number}"
EDITOR_ADD_OPTION_BUTTON: str = "Add Option"
EDITOR_REMOVE_OPTION_BUTTON: str = "Remove"
EDITOR_DELETE_BUTTON: str = "Delete Question"
EDITOR_SEND_BUTTON: str = "Send to Audience"
EDITOR_TYPE_LABELS: dict[str, str] = {
    "choice": "Multiple Choice",
    "text": "Open Text",
    "reaction": "Emoji Reaction",
}
EDITOR_NO_COLOR_LABEL: str = "Session colour"

LIVE_REVEAL_BUTTON: str = "Show Results"
LIVE_STOP_BUTTON: str = "Stop Question"
LIVE_RESET_BUTTON: str = "Back to Editor"
LIVE_RESPONSES_TEMPLATE: str = "Responses: {count}"
LIVE_NO_TIMER: str = "No timer"
LIVE_TIME_UP: str = "Time is up"
LIVE_RESULTS_HIDDEN: str = "Results are hidden until you press 'Show Results'."
LIVE_NO_TEXT_ANSWERS: str = "No answers yet."

LOADING_MESSAGE: str = "Connecting to session..."
EXPIRED_MESSAGE: str = "This session has exceeded its time limit and is no longer active."
ENDED_MESSAGE: str = "This session has ended."
BACK_TO_START_BUTTON: str = "Back to Start"
