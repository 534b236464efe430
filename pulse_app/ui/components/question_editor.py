"""Component for editing the selected question and sending it live."""

from __future__ import annotations

from typing import Any, Callable

from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QPushButton,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

from pulse_app.constants.session_constants import (
    BRAND_COLORS,
    DEFAULT_BRAND_COLOR,
    MAX_CHOICE_OPTIONS,
    TIMER_CHOICES,
    TIMER_LABELS,
)
from pulse_app.constants.ui_constants import (
    EDITOR_ADD_OPTION_BUTTON,
    EDITOR_DELETE_BUTTON,
    EDITOR_NO_COLOR_LABEL,
    EDITOR_OPTION_PLACEHOLDER,
    EDITOR_PLACEHOLDER,
    EDITOR_REMOVE_OPTION_BUTTON,
    EDITOR_SEND_BUTTON,
    EDITOR_TYPE_LABELS,
)
from pulse_app.core.models import Question, QuestionType
from pulse_app.ui.question_renderer import render_question_with_options
from pulse_app.ui.settings_dialog import color_icon


class _OptionRow(QWidget):
    def __init__(self, editor: "QuestionEditor", parent: QWidget) -> None:
        super().__init__(parent)
        layout = QHBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        self.setLayout(layout)
        self.input = QLineEdit(self)
        self.input.textChanged.connect(lambda _: editor.emit_options())
        layout.addWidget(self.input, 1)
        self.remove_button = QPushButton(EDITOR_REMOVE_OPTION_BUTTON, self)
        self.remove_button.clicked.connect(lambda: editor.remove_option(self))
        layout.addWidget(self.remove_button)


class QuestionEditor(QWidget):
    """Edits one question; every change is reported immediately, saving is the caller's job."""

    def __init__(
        self,
        on_change: Callable[..., Any],
        on_send: Callable[[], None],
        on_delete: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._on_change = on_change
        self._on_send = on_send
        self._on_delete = on_delete
        self._shown: Question | None = None
        self._accent_color = DEFAULT_BRAND_COLOR
        self._loading = False
        self.option_rows: list[_OptionRow] = []
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        settings_row = QHBoxLayout()
        settings_row.addWidget(QLabel("Type:", self))
        self.type_combo = QComboBox(self)
        for question_type in QuestionType:
            self.type_combo.addItem(EDITOR_TYPE_LABELS[question_type.value], question_type.value)
        self.type_combo.currentIndexChanged.connect(self._handle_type_changed)
        settings_row.addWidget(self.type_combo)

        settings_row.addWidget(QLabel("Timer:", self))
        self.timer_combo = QComboBox(self)
        for seconds in TIMER_CHOICES:
            self.timer_combo.addItem(TIMER_LABELS[seconds], seconds)
        self.timer_combo.currentIndexChanged.connect(self._handle_timer_changed)
        settings_row.addWidget(self.timer_combo)

        settings_row.addWidget(QLabel("Colour:", self))
        self.color_combo = QComboBox(self)
        self.color_combo.addItem(EDITOR_NO_COLOR_LABEL, None)
        for color in BRAND_COLORS:
            self.color_combo.addItem(color_icon(color), color, color)
        self.color_combo.currentIndexChanged.connect(self._handle_color_changed)
        settings_row.addWidget(self.color_combo)
        settings_row.addStretch()
        layout.addLayout(settings_row)

        self.question_input = QPlainTextEdit(self)
        self.question_input.setPlaceholderText(EDITOR_PLACEHOLDER)
        self.question_input.setMaximumHeight(140)
        self.question_input.textChanged.connect(self._handle_text_changed)
        layout.addWidget(self.question_input)

        self.options_container = QWidget(self)
        self.options_layout = QVBoxLayout()
        self.options_layout.setContentsMargins(0, 0, 0, 0)
        self.options_container.setLayout(self.options_layout)
        layout.addWidget(self.options_container)

        self.add_option_button = QPushButton(EDITOR_ADD_OPTION_BUTTON, self)
        self.add_option_button.clicked.connect(self._handle_add_option)
        layout.addWidget(self.add_option_button)

        self.preview_view = QTextBrowser(self)
        self.preview_view.setOpenExternalLinks(True)
        layout.addWidget(self.preview_view, 1)

        action_row = QHBoxLayout()
        self.delete_button = QPushButton(EDITOR_DELETE_BUTTON, self)
        self.delete_button.setObjectName("dangerButton")
        self.delete_button.clicked.connect(self._on_delete)
        action_row.addWidget(self.delete_button)
        action_row.addStretch()
        self.send_button = QPushButton(EDITOR_SEND_BUTTON, self)
        self.send_button.setObjectName("primaryButton")
        self.send_button.clicked.connect(self._on_send)
        action_row.addWidget(self.send_button)
        layout.addLayout(action_row)

    # --- Loading ---

    @property
    def question_id(self) -> str | None:
        return self._shown.id if self._shown else None

    def set_accent_color(self, color: str | None) -> None:
        color = color or DEFAULT_BRAND_COLOR
        if color != self._accent_color:
            self._accent_color = color
            self._update_preview()

    def show_question(self, question: Question | None) -> None:
        """Load ``question`` unless the editor already shows exactly that content."""
        if question == self._shown:
            return
        self._loading = True
        try:
            self._load(question)
        finally:
            self._loading = False
        self._shown = question
        self._update_preview()

    def _load(self, question: Question | None) -> None:
        self.setEnabled(question is not None)
        if question is None:
            self.question_input.setPlainText("")
            self._set_option_rows(())
            return
        if self.question_input.toPlainText() != question.text:
            cursor_position = self.question_input.textCursor().position()
            self.question_input.setPlainText(question.text)
            cursor = self.question_input.textCursor()
            cursor.setPosition(min(cursor_position, len(question.text)))
            self.question_input.setTextCursor(cursor)
        self.type_combo.setCurrentIndex(self.type_combo.findData(question.type.value))
        self.timer_combo.setCurrentIndex(max(0, self.timer_combo.findData(question.timer)))
        color_index = self.color_combo.findData(question.color) if question.color else 0
        if color_index < 0:
            self.color_combo.addItem(color_icon(question.color), question.color, question.color)
            color_index = self.color_combo.count() - 1
        self.color_combo.setCurrentIndex(color_index)
        self._set_option_rows(question.options if question.type is QuestionType.CHOICE else ())
        self._update_option_controls(question.type)

    def _set_option_rows(self, options: tuple[str, ...]) -> None:
        while len(self.option_rows) > len(options):
            row = self.option_rows.pop()
            self.options_layout.removeWidget(row)
            row.deleteLater()
        while len(self.option_rows) < len(options):
            row = _OptionRow(self, self.options_container)
            self.options_layout.addWidget(row)
            self.option_rows.append(row)
        for index, (row, option) in enumerate(zip(self.option_rows, options)):
            row.input.setPlaceholderText(EDITOR_OPTION_PLACEHOLDER.format(number=index + 1))
            if row.input.text() != option:
                row.input.setText(option)

    def _update_option_controls(self, question_type: QuestionType) -> None:
        is_choice = question_type is QuestionType.CHOICE
        self.options_container.setVisible(is_choice)
        self.add_option_button.setVisible(is_choice)
        self.add_option_button.setEnabled(len(self.option_rows) < MAX_CHOICE_OPTIONS)
        for row in self.option_rows:
            row.remove_button.setEnabled(len(self.option_rows) > 1)

    def _update_preview(self) -> None:
        if self._shown is None:
            self.preview_view.setHtml("")
            return
        self.preview_view.setHtml(render_question_with_options(self._shown, self._shown.color or self._accent_color))

    # --- Edits ---

    def _emit(self, **changes: Any) -> None:
        if self._loading or self._shown is None:
            return
        updated = self._on_change(**changes)
        if isinstance(updated, Question):
            self._shown = updated
        self._update_preview()

    def _handle_text_changed(self) -> None:
        self._emit(text=self.question_input.toPlainText())

    def _handle_type_changed(self, _index: int) -> None:
        question_type = QuestionType(self.type_combo.currentData())
        if self._loading or self._shown is None:
            return
        changes: dict[str, Any] = {"type": question_type}
        if question_type is QuestionType.CHOICE and not self.option_rows:
            changes["options"] = ("", "")
        self._emit(**changes)
        if self._shown is not None:
            self._loading = True
            try:
                self._set_option_rows(self._shown.options if question_type is QuestionType.CHOICE else ())
            finally:
                self._loading = False
        self._update_option_controls(question_type)

    def _handle_timer_changed(self, _index: int) -> None:
        self._emit(timer=self.timer_combo.currentData())

    def _handle_color_changed(self, _index: int) -> None:
        self._emit(color=self.color_combo.currentData())

    def emit_options(self) -> None:
        self._emit(options=tuple(row.input.text() for row in self.option_rows))

    def _handle_add_option(self) -> None:
        if len(self.option_rows) >= MAX_CHOICE_OPTIONS:
            return
        row = _OptionRow(self, self.options_container)
        row.input.setPlaceholderText(EDITOR_OPTION_PLACEHOLDER.format(number=len(self.option_rows) + 1))
        self.options_layout.addWidget(row)
        self.option_rows.append(row)
        self._update_option_controls(QuestionType.CHOICE)
        self.emit_options()
        row.input.setFocus()

    def remove_option(self, row: _OptionRow) -> None:
        if len(self.option_rows) <= 1 or row not in self.option_rows:
            return
        self.option_rows.remove(row)
        self.options_layout.removeWidget(row)
        row.deleteLater()
        for index, remaining in enumerate(self.option_rows):
            remaining.input.setPlaceholderText(EDITOR_OPTION_PLACEHOLDER.format(number=index + 1))
        self._update_option_controls(QuestionType.CHOICE)
        self.emit_options()
