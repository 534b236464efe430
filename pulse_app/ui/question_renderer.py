"""Question rendering utilities for the editor preview and the live panel."""

from __future__ import annotations

from pulse_app.constants.session_constants import DEFAULT_BRAND_COLOR, REACTION_EMOJIS
from pulse_app.core.markdown_renderer import renderer
from pulse_app.core.models import LiveQuestion, Question, QuestionType


def render_question_with_options(question: Question | LiveQuestion, accent_color: str | None = None) -> str:
    """Render a question with its answer choices as HTML.

    Args:
        question: A draft or a live question (Markdown text)
        accent_color: Colour of the side bar next to the question text

    Returns:
        HTML string ready for display in QTextBrowser
    """
    options = question.live_options() if isinstance(question, Question) else question.options
    if question.type is QuestionType.CHOICE:
        lines = [
            f"<p><b>{chr(ord('A') + index)}.</b> {renderer.render_inline(option)}</p>"
            for index, option in enumerate(options)
        ]
        extra = "".join(lines) or "<p><em>(no options)</em></p>"
    elif question.type is QuestionType.REACTION:
        extra = f"<p style='font-size: 20pt;'>{' '.join(REACTION_EMOJIS)}</p>"
    else:
        extra = "<p><em>Participants type a free-text answer.</em></p>"
    document = renderer.render_document(question.text, accent_color or DEFAULT_BRAND_COLOR)
    return document.replace("</body>", f"{extra}</body>")
