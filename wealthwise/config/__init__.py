"""Configuration package."""

from wealthwise.config.settings import (
    AppSettings,
    GeminiSettings,
    Settings,
    get_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "Settings",
    "get_settings",
]
