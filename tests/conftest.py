"""
Test fixtures for the ecosystem vault.

This module provides shared test fixtures including database setup,
an encryption codec, configuration and actor cleanup.
"""

import pytest
from sqlalchemy.orm import Session

from ecosystem_vault.config import AppConfig, SecurityConfig, reset_config, set_config
from ecosystem_vault.context.actor_context import ActorContext
from ecosystem_vault.db import DatabaseConfig, DatabaseManager, import_all_models
from ecosystem_vault.db.db_config import Base, initialize_db
from ecosystem_vault.exceptions import clear_correlation_id
from ecosystem_vault.utils.encryption_utils import SecretCodec, generate_key
from tests.fixtures.factories import configure_factories


@pytest.fixture(scope="session")
def encryption_key() -> str:
    """One key for the whole run, urlsafe base64 encoded."""
    return generate_key()


@pytest.fixture(autouse=True)
def app_config(encryption_key: str) -> AppConfig:
    """Install a known configuration for every test."""
    config = AppConfig(security=SecurityConfig(encryption_key=encryption_key))
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(autouse=True)
def clean_context():
    """Make sure no actor or correlation id leaks between tests."""
    yield
    ActorContext.clear_current_actor()
    clear_correlation_id()


@pytest.fixture
def codec(encryption_key: str) -> SecretCodec:
    return SecretCodec(encryption_key)


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig.sqlite(":memory:")


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    manager = initialize_db(db_config)
    yield manager
    manager.close()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so each test
    starts from an empty schema.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.get_session()
    configure_factories(session)

    yield session

    session.rollback()
    db_manager.close_session()
    Base.metadata.drop_all(db_manager.engine)
