"""Markdown rendering of question text for the host preview and participant page.

Architecture note:
    The host console (QTextBrowser) and the participant page (browser) both
    receive the same HTML fragment, so a question looks the same everywhere.
    Raw HTML in question text is escaped rather than passed through because
    the fragment is injected into participant pages verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt

_EMPTY_FRAGMENT = "<p><em>No question text.</em></p>"


@dataclass(slots=True)
class QuestionMarkdownRenderer:
    """Converts question markdown into HTML fragments or standalone documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html, "breaks": True})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return _EMPTY_FRAGMENT
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (option labels, list titles) without a paragraph wrapper."""

        return self._markdown.renderInline((markdown_text or "").strip())

    def render_document(self, markdown_text: str, accent_color: str, title: str = "PulseQt") -> str:
        """Wrap a rendered fragment in a minimal styled HTML document."""

        body_html = self.render_fragment(markdown_text)
        return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{title}</title>
    <style>
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 0.5rem; }}
      .question-html {{ font-size: 1.2rem; line-height: 1.5; border-left: 4px solid {accent_color}; padding-left: 0.75rem; }}
    </style>
  </head>
  <body>
    <div class="question-html">{body_html}</div>
  </body>
</html>"""


# Shared instance; the Qt thread and the FastAPI workers render concurrently.
renderer = QuestionMarkdownRenderer()
