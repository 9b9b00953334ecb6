# portfolio_tracker/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- DATABASE_URL: SQLite file holding portfolios, transactions and caches
- LOG_LEVEL / LOG_FORMAT: Logging output
- Provider endpoints, timeouts and rate limits

Environment-specific behavior:
- test: Uses an in-memory SQLite database unless DATABASE_URL is set
- development / production: Defaults to a local SQLite file

Usage:
    from portfolio_tracker.config import settings

    interval = settings.yahoo_min_request_interval
"""
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - DATABASE_URL: SQLAlchemy connection string
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
        - DEFAULT_DISPLAY_CURRENCY: Currency for the All Portfolios view
          when no portfolio exists (default: "EUR")
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy connection string for local storage"
    )
    debug: bool = False

    default_display_currency: str = Field(
        default="EUR",
        description="Fallback display currency for the All Portfolios view"
    )

    # =========================================================================
    # MARKET DATA PROVIDERS
    # =========================================================================
    http_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for outbound HTTP requests"
    )
    yahoo_min_request_interval: float = Field(
        default=0.2,
        ge=0,
        description="Minimum spacing in seconds between Yahoo Finance requests"
    )
    kraken_base_url: str = Field(
        default="https://api.kraken.com",
        description="Kraken public REST API base URL"
    )
    frankfurter_base_url: str = Field(
        default="https://api.frankfurter.app",
        description="Frankfurter exchange rate API base URL"
    )
    crypto_fallback_currencies: list[str] = Field(
        default=["EUR", "USD"],
        description="Quote currencies tried after the preferred one for crypto"
    )

    # =========================================================================
    # CACHING
    # =========================================================================
    exchange_rate_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="How long a fetched exchange rate stays fresh"
    )

    # =========================================================================
    # RESILIENCE
    # =========================================================================
    breaker_failure_threshold: int = Field(
        default=5,
        ge=1,
        description="Consecutive provider failures before the circuit opens"
    )
    breaker_recovery_timeout: float = Field(
        default=60.0,
        ge=0,
        description="Seconds an open circuit waits before probing again"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_display_currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        normalized = v.strip().upper()
        if len(normalized) != 3 or not normalized.isalpha():
            raise ValueError(f"Invalid currency code: '{v}'")
        return normalized

    @field_validator("crypto_fallback_currencies")
    @classmethod
    def normalize_fallbacks(cls, v: list[str]) -> list[str]:
        return [code.strip().upper() for code in v if code.strip()]

    @model_validator(mode="after")
    def validate_database_config(self) -> "Settings":
        """
        Fill in the database URL based on environment.

        - test: in-memory SQLite
        - otherwise: a SQLite file next to the project
        """
        if self.database_url is None:
            if self.environment == "test":
                object.__setattr__(self, "database_url", "sqlite:///:memory:")
            else:
                object.__setattr__(
                    self, "database_url", f"sqlite:///{_PROJECT_ROOT / 'portfolio_tracker.db'}"
                )
        return self

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.database_url is not None and self.database_url.lower().startswith("sqlite://")

    @property
    def is_in_memory(self) -> bool:
        """Check if the database lives only in memory."""
        return self.database_url is not None and ":memory:" in self.database_url

    @property
    def is_test(self) -> bool:
        """Check if running in test environment."""
        return self.environment == "test"


# Create single instance
settings = Settings()
