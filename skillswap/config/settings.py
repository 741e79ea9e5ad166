"""Configuration settings for SkillSwap."""

from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables (prefixed with SKILLSWAP_) or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SKILLSWAP_",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    database_path: Path = Field(
        default=Path("./data/skillswap.db"),
        description="Path to the SQLite database holding profiles and exchanges",
    )
    directory_read_retries: Annotated[int, Field(ge=0, le=3)] = Field(
        default=1,
        description="Transparent retries for idempotent directory reads",
    )

    # Time credits
    initial_time_balance: Annotated[int, Field(ge=0)] = Field(
        default=0,
        description="Time balance given to profiles created through an upsert",
    )
    max_exchange_hours: int | None = Field(
        default=None,
        gt=0,
        description="Optional upper bound on the duration of a single exchange",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


# Singleton instance for easy import
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
