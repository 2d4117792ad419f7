"""Configuration and stored profile."""

from __future__ import annotations

from caltrack.config.settings import (
    ProfileSettings,
    Settings,
    SettingsError,
    WeightEntry,
    get_settings,
    reload_settings,
    save_settings,
)

__all__ = [
    "ProfileSettings",
    "Settings",
    "SettingsError",
    "WeightEntry",
    "get_settings",
    "reload_settings",
    "save_settings",
]
