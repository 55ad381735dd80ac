"""Configuration management using Pydantic Settings."""

from pathlib import Path
from typing import ClassVar

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from chapa_cli.shared.exceptions import ConfigError

DEFAULT_SERVER_URL = "https://chapa.thecreativetoken.com"

# Singleton instance
_settings: "Settings | None" = None


class Settings(BaseSettings):
    """CLI settings loaded from CHAPA_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CHAPA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Chapa server
    server_url: str = DEFAULT_SERVER_URL
    credentials_path: Path = Path("~/.chapa/credentials.json")

    # GitHub configuration
    github_graphql_url: str = "https://api.github.com/graphql"

    # Login polling (5 minutes at 2s intervals)
    poll_interval_seconds: float = 2.0
    max_poll_attempts: int = 150
    progress_every: int = 5

    # Telemetry
    telemetry_timeout_seconds: float = 5.0

    # Application settings
    log_level: str = "WARNING"
    app_version: str = "0.4.0"

    # Valid log levels
    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        v_upper = v.upper()
        if v_upper not in cls.VALID_LOG_LEVELS:
            raise ConfigError(
                f"Invalid log level: {v}. Must be one of {', '.join(cls.VALID_LOG_LEVELS)}"
            )
        return v_upper

    @field_validator("poll_interval_seconds")
    @classmethod
    def validate_poll_interval(cls, v: float) -> float:
        """Validate poll interval is within acceptable range (0-60 seconds)."""
        if not 0 < v <= 60:
            raise ConfigError(f"Poll interval must be between 0 and 60 seconds, got {v}")
        return v

    @field_validator("max_poll_attempts")
    @classmethod
    def validate_max_poll_attempts(cls, v: int) -> int:
        """Validate max poll attempts (1-10000)."""
        if not 1 <= v <= 10000:
            raise ConfigError(f"Max poll attempts must be between 1 and 10000, got {v}")
        return v

    @field_validator("progress_every")
    @classmethod
    def validate_progress_every(cls, v: int) -> int:
        """Validate progress indicator cadence is positive."""
        if v < 1:
            raise ConfigError(f"Progress cadence must be at least 1, got {v}")
        return v

    @field_validator("credentials_path")
    @classmethod
    def expand_credentials_path(cls, v: Path) -> Path:
        """Expand ~ so the store always works with an absolute home path."""
        return v.expanduser()


def get_settings() -> Settings:
    """Get or create the global Settings instance (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
