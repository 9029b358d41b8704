"""
Centralized configuration management for the ecosystem vault.

This module provides a unified configuration system with support for:
- Environment variables
- Runtime configuration
- Validation using Pydantic

Key material lives in SecurityConfig and is read once when the configuration
is built; services receive it through an explicit codec at construction.
"""

import os
from typing import Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

from .constants import EnvironmentVariable, LogLevel


class QueueConfig(BaseModel):
    """Azure Storage Queue configuration for the audit log sink."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    audit_queue_name: str = Field(
        default_factory=lambda: os.getenv(
            EnvironmentVariable.AUDIT_QUEUE_NAME.value, "vault-audit-queue"
        ),
        description="Queue receiving structured audit log entries",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )
    enable_queue_logs: bool = Field(
        default=False, description="Ship structured log entries to the audit queue"
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    encryption_key: Optional[SecretStr] = Field(
        default_factory=lambda: (
            SecretStr(os.environ[EnvironmentVariable.ENCRYPTION_KEY.value])
            if os.getenv(EnvironmentVariable.ENCRYPTION_KEY.value)
            else None
        ),
        description="AES-256 key, urlsafe base64 encoded",
    )


class TotpConfig(BaseModel):
    """Time-based one-time password parameters."""

    interval: int = Field(default=30, gt=0, description="Time step in seconds")
    digits: int = Field(default=6, ge=6, le=8, description="Default code length")
    valid_window: int = Field(
        default=1, ge=0, description="Number of preceding steps accepted for clock skew"
    )


class ImportConfig(BaseModel):
    """Configuration for bulk imports."""

    max_display_errors: int = Field(
        default=10, gt=0, description="Row errors included in the user-facing summary"
    )


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true",
        description="Debug mode",
    )

    # Sub-configurations
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )
    totp: TotpConfig = Field(default_factory=TotpConfig, description="TOTP configuration")
    imports: ImportConfig = Field(default_factory=ImportConfig, description="Import configuration")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
