"""Qt main window of the host console: landing, question editing and live control."""

from __future__ import annotations

from enum import Enum, auto
import logging
from typing import Any, Callable

from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QCloseEvent
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from pulse_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION, HELP_TEXT
from pulse_app.constants.session_constants import DEFAULT_BRAND_COLOR, HOST_THEME_KEY
from pulse_app.constants.ui_constants import (
    BACK_TO_START_BUTTON,
    ENDED_MESSAGE,
    EXPIRED_MESSAGE,
    LOADING_MESSAGE,
    NOTICE_DISPLAY_MS,
    PARTICIPANT_URL_PLACEHOLDER,
    PARTICIPANT_URL_TEMPLATE,
    SESSION_CODE_TEMPLATE,
    STATE_REFRESH_INTERVAL_MS,
    TOP_BAR_ABOUT_BUTTON,
    TOP_BAR_END_BUTTON,
    TOP_BAR_HELP_BUTTON,
    TOP_BAR_SETTINGS_BUTTON,
    TOP_BAR_THEME_BUTTON,
    WINDOW_TITLE,
)
from pulse_app.core.clock import Clock
from pulse_app.core.errors import PulseError, SessionExpiredError, SessionNotFoundError
from pulse_app.core.host_controller import HostController, HostView
from pulse_app.core.identity import DeviceIdentity
from pulse_app.core.notices import NoticeBoard, NoticeLevel
from pulse_app.core.services.session_directory import SessionDirectory
from pulse_app.store.base import DocumentStore
from pulse_app.store.local_store import LocalStore
from pulse_app.styling.color_palette import Theme
from pulse_app.styling.styles import Styles
from pulse_app.ui.components.landing_panel import LandingPanel
from pulse_app.ui.components.live_panel import LivePanel
from pulse_app.ui.components.question_editor import QuestionEditor
from pulse_app.ui.components.question_sidebar import QuestionSidebar
from pulse_app.ui.dialog_helpers import (
    confirm_delete_question,
    confirm_end_session,
    show_info,
)
from pulse_app.ui.qt_scheduler import QtScheduler
from pulse_app.ui.settings_dialog import SettingsDialog

logger = logging.getLogger(__name__)


class HostPage(Enum):
    """Top-level page of the console."""

    LANDING = auto()
    WORKSPACE = auto()
    MESSAGE = auto()


class HostMainWindow(QMainWindow):
    """Main Qt window; all session state lives in the host controller and is polled."""

    def __init__(
        self,
        store: DocumentStore,
        local_store: LocalStore,
        identity: DeviceIdentity,
        clock: Clock,
        participant_url: str | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle(WINDOW_TITLE)
        self.resize(1100, 720)

        self.store = store
        self.local_store = local_store
        self.clock = clock
        self.participant_url = participant_url or PARTICIPANT_URL_PLACEHOLDER
        self.directory = SessionDirectory(store, local_store, identity, clock)
        self.scheduler = QtScheduler(self)
        self.notices = NoticeBoard()
        self.controller: HostController | None = None

        self._theme = Theme.parse(local_store.get(HOST_THEME_KEY))
        self._setup_prompted = False

        self._build_ui()
        self._configure_refresh_timer()
        self._apply_styles()
        self._show_landing()

    def _build_ui(self) -> None:
        central_widget = QWidget(self)
        self.setCentralWidget(central_widget)

        root_layout = QVBoxLayout()
        central_widget.setLayout(root_layout)

        self._build_top_bar(root_layout)

        self.page_stack = QStackedWidget(self)

        self.landing_panel = LandingPanel(
            on_create=self._handle_create_session,
            on_rejoin=self._handle_rejoin_session,
            parent=self,
        )

        self.workspace = QWidget(self)
        workspace_layout = QHBoxLayout()
        workspace_layout.setContentsMargins(0, 0, 0, 0)
        self.workspace.setLayout(workspace_layout)
        self.sidebar = QuestionSidebar(
            on_select=lambda question_id: self._run(lambda: self._require_controller().select_question(question_id)),
            on_add=self._handle_add_question,
            on_reorder=lambda ordered: self._run(lambda: self._require_controller().reorder_questions(ordered)),
            parent=self.workspace,
        )
        self.sidebar.setFixedWidth(300)
        workspace_layout.addWidget(self.sidebar)

        self.content_stack = QStackedWidget(self.workspace)
        self.editor = QuestionEditor(
            on_change=self._handle_edit,
            on_send=self._handle_send,
            on_delete=self._handle_delete_question,
            parent=self.content_stack,
        )
        self.live_panel = LivePanel(
            on_reveal=lambda: self._run(lambda: self._require_controller().reveal_results()),
            on_stop=lambda: self._run(lambda: self._require_controller().stop_question()),
            on_reset=lambda: self._run(lambda: self._require_controller().reset_question()),
            parent=self.content_stack,
        )
        self.content_stack.addWidget(self.editor)
        self.content_stack.addWidget(self.live_panel)
        workspace_layout.addWidget(self.content_stack, 1)

        self.message_page = QWidget(self)
        message_layout = QVBoxLayout()
        message_layout.setAlignment(Qt.AlignCenter)
        self.message_page.setLayout(message_layout)
        self.message_label = QLabel("", self.message_page)
        self.message_label.setAlignment(Qt.AlignCenter)
        self.message_label.setWordWrap(True)
        self.message_label.setStyleSheet(Styles.get_large_label_style())
        message_layout.addWidget(self.message_label)
        self.back_button = QPushButton(BACK_TO_START_BUTTON, self.message_page)
        self.back_button.clicked.connect(self._handle_back_to_start)
        message_layout.addWidget(self.back_button, alignment=Qt.AlignCenter)

        self._page_indexes = {
            HostPage.LANDING: self.page_stack.addWidget(self.landing_panel),
            HostPage.WORKSPACE: self.page_stack.addWidget(self.workspace),
            HostPage.MESSAGE: self.page_stack.addWidget(self.message_page),
        }
        root_layout.addWidget(self.page_stack, 1)

    def _build_top_bar(self, layout: QVBoxLayout) -> None:
        button_row = QHBoxLayout()

        self.session_code_label = QLabel("", self)
        button_row.addWidget(self.session_code_label)

        self.participant_url_label = QLabel("", self)
        self.participant_url_label.setTextInteractionFlags(Qt.TextSelectableByMouse)
        button_row.addWidget(self.participant_url_label)
        button_row.addStretch()

        self.settings_button = QPushButton(TOP_BAR_SETTINGS_BUTTON, self)
        self.settings_button.clicked.connect(self._handle_settings)
        button_row.addWidget(self.settings_button)

        self.theme_button = QPushButton(TOP_BAR_THEME_BUTTON, self)
        self.theme_button.clicked.connect(self._handle_toggle_theme)
        button_row.addWidget(self.theme_button)

        self.about_button = QPushButton(TOP_BAR_ABOUT_BUTTON, self)
        self.about_button.clicked.connect(self._handle_about)
        button_row.addWidget(self.about_button)

        self.help_button = QPushButton(TOP_BAR_HELP_BUTTON, self)
        self.help_button.clicked.connect(self._handle_help)
        button_row.addWidget(self.help_button)

        self.end_button = QPushButton(TOP_BAR_END_BUTTON, self)
        self.end_button.setObjectName("dangerButton")
        self.end_button.clicked.connect(self._handle_end_session)
        button_row.addWidget(self.end_button)

        layout.addLayout(button_row)

    def _configure_refresh_timer(self) -> None:
        self.refresh_timer = QTimer(self)
        self.refresh_timer.setInterval(STATE_REFRESH_INTERVAL_MS)
        self.refresh_timer.timeout.connect(self._refresh_state)
        self.refresh_timer.start()

    def _apply_styles(self) -> None:
        self.setStyleSheet(Styles.get_main_window_style(self._theme))
        self.sidebar.set_theme(self._theme)

    # --- Polling ---

    def _refresh_state(self) -> None:
        controller = self.controller
        if controller is None:
            self._show_notices()
            return
        tick = controller.tick()
        self._show_notices()

        view = controller.view
        session = controller.session
        in_session = view in (HostView.SETUP, HostView.CONTROL)
        self.settings_button.setEnabled(in_session)
        self.end_button.setEnabled(view is not HostView.ENDED)

        if view is HostView.LOADING:
            self._show_message(LOADING_MESSAGE, allow_back=False)
            return
        if view is HostView.EXPIRED:
            self._show_message(EXPIRED_MESSAGE, allow_back=True)
            return
        if view is HostView.ENDED:
            self._show_message(ENDED_MESSAGE, allow_back=True)
            return

        self._set_page(HostPage.WORKSPACE)
        brand_color = (session.brand_color if session else None) or DEFAULT_BRAND_COLOR
        self.session_code_label.setStyleSheet(Styles.get_session_code_style(brand_color))
        self.sidebar.set_questions(controller.questions, controller.selected_id)

        if view is HostView.CONTROL and session is not None:
            self.content_stack.setCurrentWidget(self.live_panel)
            responses = controller.live_responses()
            self.live_panel.update_state(
                session,
                tick,
                controller.live_tally_rows(),
                controller.live_text_answers(),
                len(responses),
            )
            return

        self.live_panel.reset()
        self.content_stack.setCurrentWidget(self.editor)
        self.editor.set_accent_color(brand_color)
        self.editor.show_question(controller.draft)
        if session is not None and not session.is_setup and not self._setup_prompted:
            self._setup_prompted = True
            QTimer.singleShot(0, self._handle_settings)

    def _show_notices(self) -> None:
        for notice in self.notices.drain():
            self.statusBar().showMessage(notice.message, NOTICE_DISPLAY_MS)
            if notice.level is NoticeLevel.ERROR:
                logger.info("Notice shown: %s", notice.message)

    def _notify(self, level: NoticeLevel, message: str) -> None:
        self.notices.post(level, message)
        self._show_notices()

    def _set_page(self, page: HostPage) -> None:
        self.page_stack.setCurrentIndex(self._page_indexes[page])

    def _show_message(self, message: str, allow_back: bool) -> None:
        self.message_label.setText(message)
        self.back_button.setVisible(allow_back)
        self._set_page(HostPage.MESSAGE)

    def _show_landing(self) -> None:
        self.session_code_label.setText("")
        self.participant_url_label.setText("")
        self.settings_button.setEnabled(False)
        self.end_button.setEnabled(False)
        self.landing_panel.set_busy(False)
        self.landing_panel.set_saved_session(self.directory.saved_session_code())
        self._set_page(HostPage.LANDING)

    # --- Session management ---

    def _require_controller(self) -> HostController:
        if self.controller is None:
            raise SessionNotFoundError("No session is open.")
        return self.controller

    def _run(self, action: Callable[[], Any], title: str = "Action failed") -> Any:
        result = self.notices.attempt(action, title)
        self._show_notices()
        return result

    def _start_hosting(self, code: str) -> None:
        self._stop_hosting()
        self._setup_prompted = False
        self.controller = HostController(
            self.store, code, self.clock, self.scheduler, directory=self.directory, notices=self.notices
        )
        self.controller.start()
        self.session_code_label.setText(SESSION_CODE_TEMPLATE.format(code=code))
        self.participant_url_label.setText(PARTICIPANT_URL_TEMPLATE.format(url=self.participant_url, code=code))
        self._show_message(LOADING_MESSAGE, allow_back=False)
        self._refresh_state()

    def _stop_hosting(self) -> None:
        if self.controller is not None:
            self.controller.close()
            self.controller = None

    def _handle_create_session(self) -> None:
        self.landing_panel.set_busy(True)
        try:
            code = self.directory.create_session()
        except PulseError as exc:
            self.landing_panel.set_busy(False)
            self._notify(NoticeLevel.ERROR, f"Could not create session: {exc}")
            return
        self._start_hosting(code)

    def _handle_rejoin_session(self, code: str) -> None:
        try:
            session = self.directory.find_session(code)
        except (SessionNotFoundError, SessionExpiredError) as exc:
            self.directory.forget_session()
            self._show_landing()
            self._notify(NoticeLevel.WARNING, str(exc))
            return
        except PulseError as exc:
            self._notify(NoticeLevel.ERROR, f"Could not rejoin session: {exc}")
            return
        self._start_hosting(session.code)

    def _handle_back_to_start(self) -> None:
        self._stop_hosting()
        self.directory.forget_session()
        self._show_landing()

    def _handle_end_session(self) -> None:
        if self.controller is None or not confirm_end_session(self):
            return
        controller = self.controller
        self.controller = None
        self._run(controller.end_session, "Could not end session")
        self._show_landing()

    def _handle_settings(self) -> None:
        controller = self.controller
        if controller is None:
            return
        dialog = SettingsDialog(controller.session, self)
        if dialog.exec():
            self._run(lambda: controller.apply_settings(dialog.get_settings()), "Could not save settings")

    # --- Question editing ---

    def _handle_add_question(self) -> None:
        self._run(lambda: self._require_controller().add_question(), "Could not add question")
        self._refresh_state()

    def _handle_delete_question(self) -> None:
        controller = self.controller
        question_id = self.editor.question_id
        if controller is None or question_id is None:
            return
        ids = [question.id for question in controller.questions]
        number = ids.index(question_id) + 1 if question_id in ids else 1
        if not confirm_delete_question(self, number):
            return
        self._run(lambda: controller.delete_question(question_id), "Could not delete question")
        self._refresh_state()

    def _handle_edit(self, **changes: Any) -> Any:
        controller = self.controller
        if controller is None:
            return None
        return self._run(lambda: controller.edit_draft(**changes), "Invalid value")

    def _handle_send(self) -> None:
        controller = self.controller
        if controller is None:
            return
        sent = self._run(controller.send_to_audience, "Could not send question")
        if sent is False:
            self._notify(NoticeLevel.WARNING, "Nothing to send. Type a question before sending it to the audience.")
        self._refresh_state()

    # --- Window chrome ---

    def _handle_toggle_theme(self) -> None:
        self._theme = self._theme.toggled()
        self.local_store.set(HOST_THEME_KEY, self._theme.value)
        self._apply_styles()

    def _handle_about(self) -> None:
        show_info(
            self,
            f"About {APP_NAME}",
            f"{APP_NAME} {APP_VERSION}\n\n{APP_ABOUT_TEXT}\n\nLicense: {APP_LICENSE}",
        )

    def _handle_help(self) -> None:
        show_info(self, "Help", HELP_TEXT)

    def closeEvent(self, event: QCloseEvent) -> None:
        self.refresh_timer.stop()
        self._stop_hosting()
        super().closeEvent(event)
