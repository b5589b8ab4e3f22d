"""Configuration package."""

from arus.config.settings import (
    LedgerSettings,
    LoggingSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LedgerSettings",
    "LoggingSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
