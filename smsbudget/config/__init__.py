"""Configuration package."""

from smsbudget.config.settings import (
    GoogleSheetsSettings,
    Settings,
    SmsSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "GoogleSheetsSettings",
    "Settings",
    "SmsSettings",
    "get_settings",
    "validate_all_settings",
]
