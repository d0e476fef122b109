"""
Configuration Management for the Financial Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage directory and quote source the
ledger talks to, and ensures values are validated at startup.
"""

from functools import lru_cache
from pathlib import Path

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Record store persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Attach a durable medium. When false the store degrades to empty/no-op."
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON document per collection"
    )
    backup_enabled: bool = Field(
        default=True,
        description="Write a backup snapshot after every mutating write"
    )


class QuoteSettings(BaseSettings):
    """External quote source configuration."""

    model_config = SettingsConfigDict(
        env_prefix="QUOTES_",
        extra="ignore"
    )

    provider: str = Field(
        default="mock",
        pattern="^(mock|http)$",
        description="Which quote source to use"
    )
    api_url: str = Field(
        default="http://localhost:3000/api/stocks",
        description="Endpoint answering GET ?symbol=... with {symbol, price, change, changePercent}"
    )
    timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=60,
        description="Per-request timeout for the HTTP quote source"
    )
    market_timezone: str = Field(
        default="America/Sao_Paulo",
        description="Reference timezone for market hours"
    )
    market_suffix: str = Field(
        default=".SA",
        description="Suffix appended to local-market tickers"
    )

    @field_validator("market_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Fail at startup rather than on the first market-hours check."""
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    audit_history_size: int = Field(
        default=200,
        ge=0,
        le=10000,
        description="How many audit events to keep in memory"
    )

    # Presentation
    locale: str = Field(default="pt_BR")
    currency: str = Field(default="BRL")
    default_chart_months: int = Field(
        default=6,
        ge=1,
        le=60,
        description="Months shown on the evolution chart"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def quotes(self) -> QuoteSettings:
        return QuoteSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "quotes", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
