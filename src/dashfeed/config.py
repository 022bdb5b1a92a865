"""
Configuration management using pydantic-settings.

Loads configuration from environment variables and .env files.
Validates fields and provides typed access to settings.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholder credential the provider accepts for a handful of sample symbols.
DEMO_API_KEY = "demo"

ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        ALPHA_VANTAGE_API_KEY: Provider credential (defaults to the demo key)
        ALPHA_VANTAGE_BASE_URL: Provider query endpoint
        MIN_REQUEST_INTERVAL_SECONDS: Minimum spacing between dispatch starts
        HTTP_TIMEOUT_SECONDS: Transport timeout for a single provider call
        FALLBACK_SEED: Seed for synthetic data generation
        LOG_LEVEL: Logging level
        LOG_FILE: Path for JSON-lines log output
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ALPHA_VANTAGE_API_KEY: str = Field(
        default=DEMO_API_KEY, description="Alpha Vantage API key"
    )
    ALPHA_VANTAGE_BASE_URL: str = Field(
        default=ALPHA_VANTAGE_BASE_URL, description="Alpha Vantage query endpoint"
    )

    # 5 requests per minute on the free tier
    MIN_REQUEST_INTERVAL_SECONDS: float = Field(
        default=12.0, gt=0.0, description="Minimum seconds between dispatch starts"
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=30.0, gt=0.0, description="Transport timeout per provider call"
    )

    FALLBACK_SEED: int | None = Field(
        default=None, description="Seed for synthetic fallback data"
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("ALPHA_VANTAGE_API_KEY")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Strip whitespace; an empty key falls back to the demo key."""
        v = v.strip()
        return v or DEMO_API_KEY

    @property
    def api_key(self) -> str:
        """Get provider API key (lowercase alias)."""
        return self.ALPHA_VANTAGE_API_KEY

    @property
    def is_demo_key(self) -> bool:
        """Whether the configured credential is the demo sentinel."""
        return self.ALPHA_VANTAGE_API_KEY == DEMO_API_KEY

    def redacted_display(self) -> dict[str, str | int | float | None]:
        """Return settings with API keys redacted for display."""
        def redact(value: str) -> str:
            if value == DEMO_API_KEY:
                return value
            return f"{value[:4]}...{value[-2:]}" if len(value) > 8 else "***"

        return {
            "ALPHA_VANTAGE_API_KEY": redact(self.ALPHA_VANTAGE_API_KEY),
            "ALPHA_VANTAGE_BASE_URL": self.ALPHA_VANTAGE_BASE_URL,
            "MIN_REQUEST_INTERVAL_SECONDS": self.MIN_REQUEST_INTERVAL_SECONDS,
            "HTTP_TIMEOUT_SECONDS": self.HTTP_TIMEOUT_SECONDS,
            "FALLBACK_SEED": self.FALLBACK_SEED,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
