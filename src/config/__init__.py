"""Configuration package."""

from src.config.settings import (
    AppSettings,
    QuoteSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "QuoteSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
