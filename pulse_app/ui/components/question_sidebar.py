"""Sidebar listing the session's questions with drag-to-reorder."""

from __future__ import annotations

from typing import Callable, Sequence

from PySide6.QtCore import QEvent, QObject, QPoint, Qt
from PySide6.QtGui import QHideEvent, QMouseEvent
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from pulse_app.constants.ui_constants import (
    SIDEBAR_ADD_BUTTON,
    SIDEBAR_DRAG_HANDLE,
    SIDEBAR_ROW_MIN_HEIGHT,
    SIDEBAR_TITLE,
    SIDEBAR_UNTITLED,
)
from pulse_app.core.drag_reorder import DragReorderController, Point, Rect
from pulse_app.core.models import Question
from pulse_app.styling.color_palette import Theme
from pulse_app.styling.styles import Styles

TITLE_PREVIEW_LENGTH = 48


def question_title(question: Question) -> str:
    first_line = question.text.strip().splitlines()[0] if question.text.strip() else ""
    if not first_line:
        return SIDEBAR_UNTITLED
    if len(first_line) > TITLE_PREVIEW_LENGTH:
        return first_line[: TITLE_PREVIEW_LENGTH - 1] + "…"
    return first_line


def _rect_of(widget: QWidget) -> Rect:
    geometry = widget.geometry()
    return Rect(geometry.x(), geometry.y(), geometry.width(), geometry.height())


class _DragHandle(QLabel):
    """Grip on the left of each row; only this starts a drag."""

    def __init__(self, row: "_QuestionRow") -> None:
        super().__init__(SIDEBAR_DRAG_HANDLE, row)
        self._row = row
        self.setCursor(Qt.OpenHandCursor)
        self.setFixedWidth(20)

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.LeftButton:
            self._row.sidebar.begin_drag(self._row, event.globalPosition().toPoint())
            event.accept()
            return
        super().mousePressEvent(event)


class _QuestionRow(QFrame):
    def __init__(self, sidebar: "QuestionSidebar", question_id: str, parent: QWidget) -> None:
        super().__init__(parent)
        self.sidebar = sidebar
        self.question_id = question_id
        self.setMinimumHeight(SIDEBAR_ROW_MIN_HEIGHT)

        layout = QHBoxLayout()
        layout.setContentsMargins(6, 4, 6, 4)
        self.setLayout(layout)

        self.handle = _DragHandle(self)
        layout.addWidget(self.handle)
        self.number_label = QLabel("", self)
        self.number_label.setFixedWidth(24)
        layout.addWidget(self.number_label)
        self.title_label = QLabel("", self)
        layout.addWidget(self.title_label, 1)

    def update_question(self, number: int, question: Question, selected: bool, theme: Theme) -> None:
        self.number_label.setText(f"{number}.")
        self.title_label.setText(question_title(question))
        self.setStyleSheet(Styles.get_sidebar_row_style(theme, selected))

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() == Qt.LeftButton:
            self.sidebar.select_row(self.question_id)
        super().mousePressEvent(event)


class QuestionSidebar(QFrame):
    """Question list; row order comes from the store, drags go through the controller."""

    def __init__(
        self,
        on_select: Callable[[str], None],
        on_add: Callable[[], None],
        on_reorder: Callable[[list[str]], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName("sidebar")
        self._on_select = on_select
        self._on_add = on_add
        self._theme = Theme.LIGHT
        self._questions: list[Question] = []
        self._selected_id: str | None = None
        self._rows: dict[str, _QuestionRow] = {}
        self._drag = DragReorderController(on_commit=on_reorder)
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        header = QHBoxLayout()
        title = QLabel(SIDEBAR_TITLE, self)
        title.setStyleSheet("font-weight: bold;")
        header.addWidget(title)
        header.addStretch()
        self.add_button = QPushButton(SIDEBAR_ADD_BUTTON, self)
        self.add_button.clicked.connect(self._on_add)
        header.addWidget(self.add_button)
        layout.addLayout(header)

        self.scroll_area = QScrollArea(self)
        self.scroll_area.setWidgetResizable(True)
        self.container = QWidget()
        self.rows_layout = QVBoxLayout()
        self.rows_layout.setSpacing(6)
        self.rows_layout.setContentsMargins(4, 4, 4, 4)
        self.container.setLayout(self.rows_layout)
        self.scroll_area.setWidget(self.container)
        layout.addWidget(self.scroll_area, 1)

        self.placeholder = QFrame(self.container)
        self.placeholder.setVisible(False)

        self.ghost = QLabel(self.container)
        self.ghost.setVisible(False)
        self.ghost.setAttribute(Qt.WA_TransparentForMouseEvents)

        self.container.installEventFilter(self)

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:
        # The container holds the mouse grab for the whole drag.
        if watched is self.container and self._drag.is_dragging:
            if event.type() == QEvent.MouseMove:
                self.drag_to(event.globalPosition().toPoint())
                return True
            if event.type() == QEvent.MouseButtonRelease:
                self.end_drag()
                return True
        return super().eventFilter(watched, event)

    def hideEvent(self, event: QHideEvent) -> None:
        self.cancel_drag()
        super().hideEvent(event)

    # --- Data ---

    def set_theme(self, theme: Theme) -> None:
        self._theme = theme
        self.placeholder.setStyleSheet(Styles.get_placeholder_style(theme))
        self._refresh_rows()

    def set_questions(self, questions: Sequence[Question], selected_id: str | None) -> None:
        self._questions = list(questions)
        self._selected_id = selected_id
        self._drag.set_items([question.id for question in self._questions])
        if self._drag.is_dragging:
            # Rows are rebuilt once the drag ends.
            return
        self._sync_rows()
        self._refresh_rows()
        self._relayout()

    def _sync_rows(self) -> None:
        ids = {question.id for question in self._questions}
        for question_id in list(self._rows):
            if question_id not in ids:
                row = self._rows.pop(question_id)
                self.rows_layout.removeWidget(row)
                row.deleteLater()
        for question in self._questions:
            if question.id not in self._rows:
                self._rows[question.id] = _QuestionRow(self, question.id, self.container)

    def _refresh_rows(self) -> None:
        for number, question in enumerate(self._questions, start=1):
            row = self._rows.get(question.id)
            if row is not None:
                row.update_question(number, question, question.id == self._selected_id, self._theme)

    def _relayout(self) -> None:
        while self.rows_layout.count():
            self.rows_layout.takeAt(0)
        dragging_id = self._drag.dragging_id
        for slot in self._drag.layout():
            if slot.is_placeholder:
                self.placeholder.setFixedHeight(int(slot.height or SIDEBAR_ROW_MIN_HEIGHT))
                self.placeholder.setVisible(True)
                self.rows_layout.addWidget(self.placeholder)
                continue
            row = self._rows.get(slot.item_id or "")
            if row is None:
                continue
            row.setVisible(True)
            self.rows_layout.addWidget(row)
        if dragging_id is None:
            self.placeholder.setVisible(False)
        elif dragging_id in self._rows:
            self._rows[dragging_id].setVisible(False)
        self.rows_layout.addStretch()
        self.container.updateGeometry()

    def select_row(self, question_id: str) -> None:
        if self._drag.is_dragging:
            return
        self._on_select(question_id)

    # --- Dragging ---

    def _container_point(self, global_pos: QPoint) -> Point:
        local = self.container.mapFromGlobal(global_pos)
        return Point(local.x(), local.y())

    def begin_drag(self, row: _QuestionRow, global_pos: QPoint) -> None:
        if not self._drag.press(row.question_id, self._container_point(global_pos), _rect_of(row)):
            return
        self.ghost.setPixmap(row.grab())
        self.ghost.resize(row.size())
        self.ghost.setVisible(True)
        self.ghost.raise_()
        self.container.grabMouse()
        self._relayout()
        self._place_ghost()

    def drag_to(self, global_pos: QPoint) -> None:
        if not self._drag.is_dragging:
            return
        dragging_id = self._drag.dragging_id
        others = [_rect_of(row) for question_id, row in self._rows.items() if question_id != dragging_id and row.isVisible()]
        previous = self._drag.target_index
        self._drag.move(self._container_point(global_pos), others)
        if self._drag.target_index != previous:
            self._relayout()
        self._place_ghost()
        self.scroll_area.ensureVisible(int(self.ghost.x()), int(self.ghost.y()), 0, SIDEBAR_ROW_MIN_HEIGHT)

    def _place_ghost(self) -> None:
        position = self._drag.ghost_position()
        if position is None:
            return
        self.ghost.move(int(position.x), int(position.y))
        # Rendered position, mapped back into container coordinates.
        rendered = self.ghost.mapTo(self.container, QPoint(0, 0))
        if self._drag.observe_ghost(Point(rendered.x(), rendered.y())):
            corrected = self._drag.ghost_position()
            if corrected is not None:
                self.ghost.move(int(corrected.x), int(corrected.y))

    def end_drag(self) -> None:
        if not self._drag.is_dragging:
            return
        self.container.releaseMouse()
        self.ghost.setVisible(False)
        commit = self._drag.release()
        if commit is not None:
            by_id = {question.id: question for question in self._questions}
            self._questions = [by_id[question_id] for question_id in commit.order if question_id in by_id]
        self._sync_rows()
        self._refresh_rows()
        self._relayout()

    def cancel_drag(self) -> None:
        if not self._drag.is_dragging:
            return
        self._drag.cancel()
        self.container.releaseMouse()
        self.ghost.setVisible(False)
        self._sync_rows()
        self._refresh_rows()
        self._relayout()
