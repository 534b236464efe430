"""Start screen: create a new session or rejoin the one this device hosted last."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QPushButton, QVBoxLayout, QWidget

from pulse_app.constants.about import APP_ABOUT_TEXT
from pulse_app.constants.ui_constants import (
    LANDING_CREATE_BUTTON,
    LANDING_CREATING_MESSAGE,
    LANDING_REJOIN_TEMPLATE,
    LANDING_TITLE,
)
from pulse_app.styling.styles import Styles


class LandingPanel(QWidget):
    def __init__(
        self,
        on_create: Callable[[], None],
        on_rejoin: Callable[[str], None],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._on_create = on_create
        self._on_rejoin = on_rejoin
        self._saved_code: str | None = None
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout()
        layout.setAlignment(Qt.AlignCenter)
        self.setLayout(layout)

        title = QLabel(LANDING_TITLE, self)
        title.setAlignment(Qt.AlignCenter)
        title.setStyleSheet(Styles.get_large_label_style())
        layout.addWidget(title)

        blurb = QLabel(APP_ABOUT_TEXT, self)
        blurb.setWordWrap(True)
        blurb.setAlignment(Qt.AlignCenter)
        blurb.setMaximumWidth(480)
        layout.addWidget(blurb, alignment=Qt.AlignCenter)

        self.create_button = QPushButton(LANDING_CREATE_BUTTON, self)
        self.create_button.setObjectName("primaryButton")
        self.create_button.clicked.connect(self._handle_create)
        layout.addWidget(self.create_button, alignment=Qt.AlignCenter)

        self.rejoin_button = QPushButton(self)
        self.rejoin_button.clicked.connect(self._handle_rejoin)
        self.rejoin_button.setVisible(False)
        layout.addWidget(self.rejoin_button, alignment=Qt.AlignCenter)

        self.status_label = QLabel("", self)
        self.status_label.setAlignment(Qt.AlignCenter)
        layout.addWidget(self.status_label)

    def set_saved_session(self, code: str | None) -> None:
        self._saved_code = code
        self.rejoin_button.setVisible(code is not None)
        if code is not None:
            self.rejoin_button.setText(LANDING_REJOIN_TEMPLATE.format(code=code))

    def set_busy(self, busy: bool) -> None:
        self.create_button.setEnabled(not busy)
        self.rejoin_button.setEnabled(not busy)
        self.status_label.setText(LANDING_CREATING_MESSAGE if busy else "")

    def _handle_create(self) -> None:
        self._on_create()

    def _handle_rejoin(self) -> None:
        if self._saved_code is not None:
            self._on_rejoin(self._saved_code)
