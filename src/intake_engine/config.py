"""Centralized configuration management using pydantic-settings.

Configuration is loaded from environment variables with sensible defaults.
All settings can be overridden via environment variables or a .env file.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Override via environment variables (prefixed with INTAKE_) or .env file.

    Examples:
        INTAKE_DATA_ENCRYPTION_KEY=<64 hex chars>
        INTAKE_SQLITE_PATH=/var/lib/intake/intake.db
        INTAKE_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="INTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Tax Intake Engine"
    app_version: str = "0.1.0"
    environment: Environment = Environment.DEVELOPMENT

    # Persistence
    sqlite_path: Path = Field(
        default=Path("intake_engine.db"),
        description="SQLite database file path",
    )

    # Logging
    log_level: LogLevel = LogLevel.INFO
    log_format: Literal["json", "console"] | None = Field(
        default=None,
        validate_default=True,
        description="Log output format: 'json' for production, 'console' for development",
    )
    log_file: Path | None = Field(default=None, description="Optional log file path")

    # PII encryption. Either 64 hex characters (decoded to 32 bytes) or any other
    # secret, which is hashed down to 32 bytes. Validated when the codec is built.
    data_encryption_key: str | None = Field(
        default=None,
        description="Process-wide key for field-level PII encryption",
    )

    # Storage
    upload_dir: Path = Field(
        default=Path("uploads"), description="Root directory for uploaded files"
    )
    export_dir: Path = Field(
        default=Path("exports"), description="Root directory for packet exports"
    )

    # Packet generation
    packet_workers: int = Field(default=2, ge=1, le=16)
    packet_renderer: Literal["pdf", "text"] = "pdf"
    summary_title: str = "Preparer Summary"

    @field_validator("log_format", mode="after")
    @classmethod
    def set_log_format_from_environment(cls, v: str | None, info) -> str:
        """Default to JSON logging in production."""
        if v is None:
            env = info.data.get("environment")
            if env == Environment.PRODUCTION:
                return "json"
        return v or "console"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
