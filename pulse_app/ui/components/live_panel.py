"""Component for running a live question: countdown, results and lifecycle buttons."""

from __future__ import annotations

from typing import Callable, Sequence

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QProgressBar,
    QPushButton,
    QTextBrowser,
    QVBoxLayout,
    QWidget,
)

from pulse_app.constants.ui_constants import (
    LIVE_NO_TEXT_ANSWERS,
    LIVE_NO_TIMER,
    LIVE_RESET_BUTTON,
    LIVE_RESPONSES_TEMPLATE,
    LIVE_RESULTS_HIDDEN,
    LIVE_REVEAL_BUTTON,
    LIVE_STOP_BUTTON,
    LIVE_TIME_UP,
)
from pulse_app.core.countdown import CountdownTick
from pulse_app.core.models import QuestionType, Session, SessionState, TextAnswer
from pulse_app.core.tally import TallyRow
from pulse_app.ui.question_renderer import render_question_with_options

PROGRESS_STEPS = 1000


class LivePanel(QWidget):
    """UI component shown while a question is live or its results are up."""

    def __init__(
        self,
        on_reveal: Callable[[], None],
        on_stop: Callable[[], None],
        on_reset: Callable[[], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._question_id: str | None = None
        self._bar_rows: list[tuple[QLabel, QProgressBar]] = []
        self._build_ui(on_reveal, on_stop, on_reset)

    def _build_ui(
        self,
        on_reveal: Callable[[], None],
        on_stop: Callable[[], None],
        on_reset: Callable[[], None],
    ) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        self.preview_view = QTextBrowser(self)
        self.preview_view.setMaximumHeight(220)
        layout.addWidget(self.preview_view)

        timer_row = QHBoxLayout()
        self.time_limit_label = QLabel(LIVE_NO_TIMER, self)
        timer_row.addWidget(self.time_limit_label)
        self.time_limit_progress = QProgressBar(self)
        self.time_limit_progress.setRange(0, PROGRESS_STEPS)
        self.time_limit_progress.setTextVisible(False)
        timer_row.addWidget(self.time_limit_progress, 1)
        layout.addLayout(timer_row)

        self.responses_label = QLabel(LIVE_RESPONSES_TEMPLATE.format(count=0), self)
        layout.addWidget(self.responses_label)

        self.results_group = QGroupBox("Results", self)
        results_layout = QVBoxLayout()
        self.results_group.setLayout(results_layout)
        self.hidden_label = QLabel(LIVE_RESULTS_HIDDEN, self.results_group)
        self.hidden_label.setAlignment(Qt.AlignCenter)
        results_layout.addWidget(self.hidden_label)
        self.bars_container = QWidget(self.results_group)
        self.bars_layout = QVBoxLayout()
        self.bars_layout.setContentsMargins(0, 0, 0, 0)
        self.bars_container.setLayout(self.bars_layout)
        results_layout.addWidget(self.bars_container)
        self.text_answers_list = QListWidget(self.results_group)
        results_layout.addWidget(self.text_answers_list)
        layout.addWidget(self.results_group, 1)

        button_row = QHBoxLayout()
        self.reset_button = QPushButton(LIVE_RESET_BUTTON, self)
        self.reset_button.clicked.connect(on_reset)
        button_row.addWidget(self.reset_button)
        button_row.addStretch()
        self.stop_button = QPushButton(LIVE_STOP_BUTTON, self)
        self.stop_button.setObjectName("dangerButton")
        self.stop_button.clicked.connect(on_stop)
        button_row.addWidget(self.stop_button)
        self.reveal_button = QPushButton(LIVE_REVEAL_BUTTON, self)
        self.reveal_button.setObjectName("primaryButton")
        self.reveal_button.clicked.connect(on_reveal)
        button_row.addWidget(self.reveal_button)
        layout.addLayout(button_row)

    def update_state(
        self,
        session: Session,
        tick: CountdownTick,
        rows: Sequence[TallyRow],
        answers: Sequence[TextAnswer],
        response_count: int,
    ) -> None:
        question = session.current_question
        if question is None:
            return
        if question.id != self._question_id:
            self._question_id = question.id
            self.preview_view.setHtml(render_question_with_options(question, question.color or session.brand_color))
            self._rebuild_bars(rows)

        voting = session.state is SessionState.VOTING
        self.stop_button.setEnabled(voting)
        self.reveal_button.setEnabled(voting)
        self.reset_button.setEnabled(session.state is SessionState.RESULTS)

        self._update_countdown(tick)
        self.responses_label.setText(LIVE_RESPONSES_TEMPLATE.format(count=response_count))

        show_results = session.state is SessionState.RESULTS or session.show_results_by_default
        self.hidden_label.setVisible(not show_results)
        is_text = question.type is QuestionType.TEXT
        self.bars_container.setVisible(show_results and not is_text)
        self.text_answers_list.setVisible(show_results and is_text)
        if is_text:
            self._update_text_answers(answers)
        else:
            self._update_bars(rows)

    def _update_countdown(self, tick: CountdownTick) -> None:
        if not tick.active:
            self.time_limit_label.setText(LIVE_NO_TIMER)
            self.time_limit_progress.setVisible(False)
            return
        self.time_limit_progress.setVisible(True)
        self.time_limit_progress.setValue(int(tick.progress * PROGRESS_STEPS))
        if tick.expired:
            self.time_limit_label.setText(LIVE_TIME_UP)
        else:
            self.time_limit_label.setText(f"{tick.remaining} s left")

    def _rebuild_bars(self, rows: Sequence[TallyRow]) -> None:
        while self.bars_layout.count():
            item = self.bars_layout.takeAt(0)
            widget = item.widget()
            if widget is not None:
                widget.deleteLater()
        self._bar_rows = []
        for row in rows:
            line = QWidget(self.bars_container)
            line_layout = QHBoxLayout()
            line_layout.setContentsMargins(0, 0, 0, 0)
            line.setLayout(line_layout)
            label = QLabel(row.label, line)
            label.setMinimumWidth(120)
            line_layout.addWidget(label)
            bar = QProgressBar(line)
            bar.setRange(0, PROGRESS_STEPS)
            line_layout.addWidget(bar, 1)
            self.bars_layout.addWidget(line)
            self._bar_rows.append((label, bar))

    def _update_bars(self, rows: Sequence[TallyRow]) -> None:
        if len(rows) != len(self._bar_rows):
            self._rebuild_bars(rows)
        for (label, bar), row in zip(self._bar_rows, rows):
            label.setText(row.label)
            bar.setValue(int(row.share * PROGRESS_STEPS))
            bar.setFormat(f"{row.count} ({row.share * 100:.0f}%)")

    def _update_text_answers(self, answers: Sequence[TextAnswer]) -> None:
        lines = [f"{answer.nickname}: {answer.answer}" for answer in answers] or [LIVE_NO_TEXT_ANSWERS]
        current = [self.text_answers_list.item(index).text() for index in range(self.text_answers_list.count())]
        if current != lines:
            self.text_answers_list.clear()
            self.text_answers_list.addItems(lines)

    def reset(self) -> None:
        self._question_id = None
