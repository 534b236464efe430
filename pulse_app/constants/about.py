"""Static metadata describing PulseQt."""

APP_NAME = "PulseQt"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "PulseQt is a live audience polling console built with Qt and FastAPI. "
    "Host a session, share the four-digit code, and watch answers arrive in real time."
)

HELP_TEXT = (
    "Create a session, then build your questions in the sidebar. Drag a question by its "
    "handle to change the running order. Edits are saved automatically about a second "
    "after you stop typing.\n\n"
    "Press 'Send to Audience' to make the selected question live. Participants join from "
    "the address shown in the top bar using the session code. A timed question stops on "
    "its own a few seconds after the countdown reaches zero.\n\n"
    "Sessions expire six hours after they were created."
)
