"""Settings dialog for the hosted session's name, colour and participant options."""

from __future__ import annotations

from PySide6.QtGui import QColor, QPixmap, QIcon
from PySide6.QtWidgets import (
    QCheckBox,
    QComboBox,
    QDialog,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
)

from pulse_app.constants.session_constants import BRAND_COLORS, DEFAULT_BRAND_COLOR
from pulse_app.core.models import Session
from pulse_app.core.services.session_lifecycle import SessionSettings


def color_icon(color: str, size: int = 14) -> QIcon:
    pixmap = QPixmap(size, size)
    pixmap.fill(QColor(color))
    return QIcon(pixmap)


class SettingsDialog(QDialog):
    """Dialog for configuring the session participants see."""

    def __init__(self, session: Session | None, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Session Settings")
        self.setModal(True)
        self.setMinimumWidth(400)

        self._name = session.name if session else ""
        self._brand_color = (session.brand_color if session else None) or DEFAULT_BRAND_COLOR
        self._require_name = session.require_name if session else False
        self._show_results = session.show_results_by_default if session else True

        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        self.setLayout(layout)

        session_group = QGroupBox("Session")
        session_layout = QVBoxLayout()
        session_group.setLayout(session_layout)

        name_row = QHBoxLayout()
        name_row.addWidget(QLabel("Session name:"))
        self.name_edit = QLineEdit()
        self.name_edit.setPlaceholderText("e.g. Monday all-hands")
        self.name_edit.setText(self._name)
        name_row.addWidget(self.name_edit)
        session_layout.addLayout(name_row)

        color_row = QHBoxLayout()
        color_row.addWidget(QLabel("Brand colour:"))
        color_row.addStretch()
        self.color_combo = QComboBox()
        for color in BRAND_COLORS:
            self.color_combo.addItem(color_icon(color), color, color)
        index = self.color_combo.findData(self._brand_color)
        if index < 0:
            self.color_combo.addItem(color_icon(self._brand_color), self._brand_color, self._brand_color)
            index = self.color_combo.count() - 1
        self.color_combo.setCurrentIndex(index)
        color_row.addWidget(self.color_combo)
        session_layout.addLayout(color_row)

        layout.addWidget(session_group)

        participants_group = QGroupBox("Participants")
        participants_layout = QVBoxLayout()
        participants_group.setLayout(participants_layout)

        self.require_name_checkbox = QCheckBox("Ask participants for their name")
        self.require_name_checkbox.setToolTip("When disabled, everyone answers as 'Anonymous'.")
        self.require_name_checkbox.setChecked(self._require_name)
        participants_layout.addWidget(self.require_name_checkbox)

        self.show_results_checkbox = QCheckBox("Show results while voting")
        self.show_results_checkbox.setToolTip("When disabled, the live tally stays hidden until you reveal it.")
        self.show_results_checkbox.setChecked(self._show_results)
        participants_layout.addWidget(self.show_results_checkbox)

        layout.addWidget(participants_group)

        button_row = QHBoxLayout()
        button_row.addStretch()

        self.cancel_button = QPushButton("Cancel")
        self.cancel_button.clicked.connect(self.reject)  # type: ignore[arg-type]
        button_row.addWidget(self.cancel_button)

        self.apply_button = QPushButton("Apply")
        self.apply_button.clicked.connect(self.accept)  # type: ignore[arg-type]
        self.apply_button.setDefault(True)
        button_row.addWidget(self.apply_button)

        layout.addLayout(button_row)

    def get_settings(self) -> SessionSettings:
        return SessionSettings(
            name=self.name_edit.text().strip(),
            brand_color=self.color_combo.currentData() or DEFAULT_BRAND_COLOR,
            require_name=self.require_name_checkbox.isChecked(),
            show_results_by_default=self.show_results_checkbox.isChecked(),
        )
