"""Color palette for the PulseQt host console supporting light and dark themes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Theme(str, Enum):
    """Console theme options; the value is what the local store keeps."""
    LIGHT = "light"
    DARK = "dark"

    @classmethod
    def parse(cls, value: str | None) -> "Theme":
        return cls.DARK if value == cls.DARK.value else cls.LIGHT

    def toggled(self) -> "Theme":
        return Theme.LIGHT if self is Theme.DARK else Theme.DARK


@dataclass(frozen=True)
class ThemeColors:
    """Color definitions for a specific theme."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        """Get color value for the specified theme."""
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the console."""

    TEXT_PRIMARY = ThemeColors(
        light="#111827",      # Near black
        dark="#F3F4F6"        # Near white
    )

    TEXT_SECONDARY = ThemeColors(
        light="#6B7280",      # Slate
        dark="#9CA3AF"        # Light slate
    )

    BACKGROUND_PRIMARY = ThemeColors(
        light="#FFFFFF",
        dark="#111827"
    )

    BACKGROUND_SECONDARY = ThemeColors(
        light="#F9FAFB",
        dark="#1F2937"
    )

    ACCENT_PRIMARY = ThemeColors(
        light="#4F46E5",      # Indigo
        dark="#818CF8"        # Light indigo
    )

    ERROR = ThemeColors(
        light="#DC2626",
        dark="#F87171"
    )

    BORDER_PRIMARY = ThemeColors(
        light="#E5E7EB",
        dark="#374151"
    )

    BUTTON_PRIMARY_TEXT = ThemeColors(
        light="#FFFFFF",
        dark="#111827"
    )

    BUTTON_SECONDARY_BG = ThemeColors(
        light="#F3F4F6",
        dark="#374151"
    )

    BUTTON_HOVER_BG = ThemeColors(
        light="#E5E7EB",
        dark="#4B5563"
    )

    # Drag placeholder and selected sidebar row
    PLACEHOLDER_BORDER = ThemeColors(
        light="#A5B4FC",
        dark="#6366F1"
    )

    SELECTED_ROW_BG = ThemeColors(
        light="#EEF2FF",
        dark="#312E81"
    )
