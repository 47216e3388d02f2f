"""Configuration package."""

from subscription_manager.config.settings import (
    AppSettings,
    ExchangeRateSettings,
    NotificationSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ExchangeRateSettings",
    "NotificationSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
