"""
Constants and enums for the ecosystem vault.

This module centralizes the magic strings used throughout the package
to ensure consistency and maintainability.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    ENCRYPTION_KEY = "VAULT_ENCRYPTION_KEY"
    AUDIT_QUEUE_NAME = "VAULT_AUDIT_QUEUE"


class UserRole(str, Enum):
    """Roles an authenticated actor can hold."""

    ADMIN = "admin"
    USER = "user"


class CredentialField(str, Enum):
    """Platform fields whose changes are recorded in the history ledger."""

    USERNAME = "username"
    PASSWORD = "password"
    PROFILE_ID = "profile_id"

    @property
    def encrypted(self) -> bool:
        """Whether the field is stored as ciphertext."""
        return self in (CredentialField.USERNAME, CredentialField.PASSWORD)


class ImportKind(str, Enum):
    """Supported bulk import targets."""

    USERS = "users"
    ECOSYSTEMS = "ecosystems"
    PLATFORMS = "platforms"
    USER_ASSIGNMENTS = "user-assignments"


# Columns that must be present in the CSV header for each import kind
REQUIRED_COLUMNS = {
    ImportKind.USERS: ("email", "name"),
    ImportKind.ECOSYSTEMS: ("name", "theme"),
    ImportKind.PLATFORMS: ("ecosystem_name", "platform_name", "platform_type"),
    ImportKind.USER_ASSIGNMENTS: ("user_email", "ecosystem_name"),
}

TRUTHY_VALUES = frozenset({"true", "1", "yes"})

# Keys whose values must never reach a log sink in clear text
SENSITIVE_LOG_KEYS = frozenset(
    {
        "username",
        "password",
        "totp_secret",
        "seed",
        "secret",
        "code",
        "test_code",
        "token",
        "encryption_key",
        "old_value",
        "new_value",
    }
)

REDACTED = "***"
