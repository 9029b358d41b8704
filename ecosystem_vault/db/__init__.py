"""
SQLAlchemy models and database configuration.

This module provides a common entry point for all models.
"""

from .db_base import TimestampMixin, UUIDMixin, new_id, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    get_db_manager,
    import_all_models,
    initialize_db,
    set_db_manager,
)
from .db_ecosystem_models import Ecosystem
from .db_platform_models import CredentialHistory, PlatformCredential
from .db_user_models import User, UserEcosystem

__all__ = [
    # Base definitions
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "new_id",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "close_db",
    "get_db_manager",
    "import_all_models",
    "initialize_db",
    "set_db_manager",
    # Models
    "CredentialHistory",
    "Ecosystem",
    "PlatformCredential",
    "User",
    "UserEcosystem",
]
