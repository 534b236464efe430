"""Centralized styles and font definitions for the console."""

from .color_palette import ColorPalette, Theme


class Styles:
    """Helper class to generate Qt stylesheets based on the current theme."""

    @staticmethod
    def get_main_window_style(theme: Theme = Theme.LIGHT) -> str:
        return f"""
            QMainWindow {{
                background-color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
            }}
            QWidget {{
                background-color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                font-family: 'Segoe UI', 'Roboto', sans-serif;
                font-size: 14px;
            }}
            QPushButton {{
                background-color: {ColorPalette.BUTTON_SECONDARY_BG.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 4px;
                padding: 6px 12px;
            }}
            QPushButton:hover {{
                background-color: {ColorPalette.BUTTON_HOVER_BG.get(theme)};
            }}
            QPushButton:disabled {{
                color: {ColorPalette.TEXT_SECONDARY.get(theme)};
            }}
            QPushButton#primaryButton {{
                background-color: {ColorPalette.ACCENT_PRIMARY.get(theme)};
                color: {ColorPalette.BUTTON_PRIMARY_TEXT.get(theme)};
                border: 1px solid {ColorPalette.ACCENT_PRIMARY.get(theme)};
                font-weight: bold;
            }}
            QPushButton#dangerButton {{
                color: {ColorPalette.ERROR.get(theme)};
            }}
            QLineEdit, QPlainTextEdit, QComboBox, QTextBrowser {{
                background-color: {ColorPalette.BACKGROUND_PRIMARY.get(theme)};
                color: {ColorPalette.TEXT_PRIMARY.get(theme)};
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 4px;
                padding: 4px;
            }}
            QScrollArea, QFrame#sidebar {{
                background-color: {ColorPalette.BACKGROUND_SECONDARY.get(theme)};
                border: none;
            }}
            QProgressBar {{
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 4px;
                text-align: center;
            }}
            QProgressBar::chunk {{
                background-color: {ColorPalette.ACCENT_PRIMARY.get(theme)};
            }}
            QGroupBox {{
                border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};
                border-radius: 6px;
                margin-top: 6px;
                padding-top: 10px;
            }}
            QGroupBox::title {{
                subcontrol-origin: margin;
                left: 10px;
                padding: 0 3px 0 3px;
            }}
        """

    @staticmethod
    def get_sidebar_row_style(theme: Theme, selected: bool) -> str:
        background = (
            ColorPalette.SELECTED_ROW_BG.get(theme) if selected else ColorPalette.BACKGROUND_PRIMARY.get(theme)
        )
        return (
            f"background-color: {background};"
            f"border: 1px solid {ColorPalette.BORDER_PRIMARY.get(theme)};"
            "border-radius: 6px;"
        )

    @staticmethod
    def get_placeholder_style(theme: Theme) -> str:
        return (
            "background-color: transparent;"
            f"border: 2px dashed {ColorPalette.PLACEHOLDER_BORDER.get(theme)};"
            "border-radius: 6px;"
        )

    @staticmethod
    def get_secondary_label_style(theme: Theme) -> str:
        return f"color: {ColorPalette.TEXT_SECONDARY.get(theme)};"

    @staticmethod
    def get_large_label_style() -> str:
        return "font-size: 16pt; font-weight: bold;"

    @staticmethod
    def get_session_code_style(accent_color: str) -> str:
        return f"font-size: 18pt; font-weight: bold; color: {accent_color}; letter-spacing: 4px;"
