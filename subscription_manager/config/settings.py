"""
Configuration Management for Subscription Manager

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Services receive their settings group through the constructor and only
fall back to get_settings() when nothing was injected.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExchangeRateSettings(BaseSettings):
    """Remote exchange rate source and cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_RATE_",
        extra="ignore"
    )

    api_base_url: str = Field(
        default="https://api.fxratesapi.com/latest",
        description="Base URL of the latest-rates endpoint (base currency is appended)"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="HTTP timeout for a single rate request"
    )
    cache_ttl_hours: int = Field(
        default=24,
        ge=1,
        description="How long a fetched rate stays valid"
    )
    cache_key: str = Field(
        default="com.subscriptionmanager.exchangeRateCache",
        min_length=1,
        description="Key under which cached rates are stored"
    )
    # Keys are "BASE/TARGET"
    fallback_rates: dict[str, float] = Field(
        default_factory=lambda: {"USD/JPY": 150.0},
        description="Fixed rates used when the remote source is unavailable"
    )

    @field_validator('fallback_rates')
    @classmethod
    def validate_fallback_rates(cls, v: dict[str, float]) -> dict[str, float]:
        """Normalise pair keys and reject non-positive rates."""
        normalised = {}
        for pair, rate in v.items():
            parts = pair.upper().replace(" ", "").split("/")
            if len(parts) != 2 or any(len(code) != 3 for code in parts):
                raise ValueError(f"Fallback rate key must look like 'USD/JPY', got {pair!r}")
            if rate <= 0:
                raise ValueError(f"Fallback rate for {pair} must be positive")
            normalised["/".join(parts)] = rate
        return normalised

    def fallback_for(self, base: str, target: str) -> Optional[float]:
        """
        Fallback rate for a currency pair.

        Uses the inverse of the reverse pair when only that one is configured.
        """
        direct = self.fallback_rates.get(f"{base}/{target}")
        if direct is not None:
            return direct
        inverse = self.fallback_rates.get(f"{target}/{base}")
        if inverse is not None:
            return 1.0 / inverse
        return None


class NotificationSettings(BaseSettings):
    """Reminder notification configuration."""

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATION_",
        extra="ignore"
    )

    default_hour: int = Field(
        default=10,
        ge=0,
        le=23,
        description="Hour used when a subscription has no notification time"
    )
    default_minute: int = Field(
        default=0,
        ge=0,
        le=59,
        description="Minute used when a subscription has no notification time"
    )
    title: str = Field(
        default="Subscription renewal notice",
        min_length=1,
        max_length=100,
        description="Title shown on every renewal reminder"
    )


class StorageSettings(BaseSettings):
    """Local storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        extra="ignore"
    )

    data_dir: str = Field(
        default="~/.subscription_manager",
        description="Directory holding the key-value store and the audit log"
    )
    audit_log_filename: str = Field(
        default="subscription_manager.log",
        description="JSON-lines audit log file inside data_dir"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def audit_log_path(self) -> Path:
        return self.data_path / self.audit_log_filename


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

    # Environment
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
        description="Minimum level for local structured logs"
    )

    # Aggregation
    display_currency: str = Field(
        default="JPY",
        min_length=3,
        max_length=3,
        description="Currency that spending totals are converted into"
    )

    @field_validator('display_currency')
    @classmethod
    def upper_case_currency(cls, v: str) -> str:
        return v.upper()


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
    def exchange_rate(self) -> ExchangeRateSettings:
        return ExchangeRateSettings()

    @property
    def notification(self) -> NotificationSettings:
        return NotificationSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the groups that failed.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("exchange_rate", "notification", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
