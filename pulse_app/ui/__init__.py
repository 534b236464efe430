"""Qt UI components for the host console."""

from .dialog_helpers import (
    confirm_delete_question,
    confirm_end_session,
    show_info,
)
from .host_main_window import HostMainWindow
from .question_renderer import render_question_with_options

__all__ = [
    "HostMainWindow",
    "confirm_delete_question",
    "confirm_end_session",
    "show_info",
    "render_question_with_options",
]
