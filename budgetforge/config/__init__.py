"""Configuration package."""

from budgetforge.config.settings import (
    SUPPORTED_MONTH_LOCALES,
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "SUPPORTED_MONTH_LOCALES",
    "AppSettings",
    "GoogleSheetsSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
