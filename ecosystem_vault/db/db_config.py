"""
Engine and session management for the vault database.

Production runs on PostgreSQL through psycopg; tests and local development
run on SQLite. Either way the engine must support SAVEPOINTs, because every
credential mutation and every imported row is a nested transaction.
"""

import os
from typing import Any, Optional

from pydantic import BaseModel, Field, SecretStr
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker

from ..constants import EnvironmentVariable
from ..exceptions import ConfigurationError, ErrorCode, ValidationError
from ..utils.logger import get_logger

# Base class for all SQLAlchemy models
Base: Any = declarative_base()

SUPPORTED_DB_TYPES = ("postgres", "sqlite")


class DatabaseConfig(BaseModel):
    """
    Where the vault database lives.

    Either ``url`` is given (as ``DATABASE_URL`` usually is) or the parts are
    assembled into one. The password is a SecretStr and never appears in the
    repr or in logs.
    """

    db_type: str = "postgres"
    url: Optional[SecretStr] = None
    database: str = "ecosystem_vault"
    host: Optional[str] = None
    port: str = "5432"
    username: Optional[str] = None
    password: Optional[SecretStr] = None
    pool_size: int = Field(default=5, gt=0)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, gt=0)
    echo: bool = False
    development_mode: bool = False

    @classmethod
    def sqlite(cls, path: str = ":memory:", **kwargs) -> "DatabaseConfig":
        return cls(db_type="sqlite", database=path, development_mode=True, **kwargs)

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """
        Build the configuration from the environment.

        ``DATABASE_URL`` wins when set; otherwise the ``DB_*`` variables
        describe a PostgreSQL server.
        """
        echo = os.environ.get("DB_ECHO", "false").lower() == "true"
        url = os.environ.get(EnvironmentVariable.DATABASE_URL.value)
        if url:
            db_type = "sqlite" if url.startswith("sqlite") else "postgres"
            return cls(db_type=db_type, url=SecretStr(url), echo=echo)

        password = os.environ.get("DB_PASSWORD")
        return cls(
            db_type="postgres",
            host=os.environ.get("DB_HOST", "localhost"),
            port=os.environ.get("DB_PORT", "5432"),
            database=os.environ.get("DB_NAME", "ecosystem_vault"),
            username=os.environ.get("DB_USER", "postgres"),
            password=SecretStr(password) if password else None,
            pool_size=int(os.environ.get("DB_POOL_SIZE", "5")),
            max_overflow=int(os.environ.get("DB_MAX_OVERFLOW", "10")),
            pool_timeout=int(os.environ.get("DB_POOL_TIMEOUT", "30")),
            echo=echo,
        )

    @property
    def is_sqlite(self) -> bool:
        return self.db_type.lower() == "sqlite"

    def get_connection_string(self) -> str:
        db_type = self.db_type.lower()
        if db_type not in SUPPORTED_DB_TYPES:
            raise ValidationError(
                f"Unsupported database type: {self.db_type}",
                error_code=ErrorCode.INVALID_FORMAT,
                field="db_type",
                db_type=self.db_type,
            )
        if self.url is not None:
            return self.url.get_secret_value()
        if db_type == "sqlite":
            return f"sqlite:///{self.database}"
        if not all([self.host, self.database, self.username, self.password]):
            raise ValidationError(
                "Missing required Postgres configuration parameters",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="database_config",
                host=self.host,
                database=self.database,
                username=self.username,
            )
        return (
            f"postgresql+psycopg://{self.username}:{self.password.get_secret_value()}@"
            f"{self.host}:{self.port}/{self.database}"
        )

    def safe_description(self) -> str:
        """Connection target with credentials hidden, for logs."""
        if self.url is not None:
            return make_url(self.url.get_secret_value()).render_as_string(hide_password=True)
        if self.is_sqlite:
            return f"sqlite:///{self.database}"
        return f"postgresql://{self.username}@{self.host}:{self.port}/{self.database}"

    def __repr__(self) -> str:
        return f"DatabaseConfig(db_type='{self.db_type}', target='{self.safe_description()}')"


def _enable_sqlite_transactions(engine: Engine) -> None:
    """
    Make pysqlite honour SAVEPOINT and foreign keys.

    pysqlite starts transactions lazily on its own, which breaks nested
    transactions; take over BEGIN and switch on FK enforcement so ecosystem
    deletes cascade.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Owns the engine and the thread-scoped session registry."""

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self.engine = self._create_engine()
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    def _create_engine(self) -> Engine:
        connection_string = self.config.get_connection_string()
        if self.config.is_sqlite:
            engine = create_engine(
                connection_string,
                echo=self.config.echo,
                hide_parameters=True,
                connect_args={"check_same_thread": False},
            )
            _enable_sqlite_transactions(engine)
            return engine
        return create_engine(
            connection_string,
            echo=self.config.echo,
            hide_parameters=True,
            pool_size=self.config.pool_size,
            max_overflow=self.config.max_overflow,
            pool_timeout=self.config.pool_timeout,
            pool_pre_ping=True,
        )

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """Drop every vault table; refused outside development mode."""
        if not self.config.development_mode:
            raise ConfigurationError(
                "Cannot drop tables: not in development mode",
                operation="drop_tables",
            )
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close_session(self, session: Optional[Session] = None) -> None:
        if session:
            session.close()
        else:
            self.scoped_session.remove()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def import_all_models():
    """Register every vault model with the metadata and configure mappers."""
    from sqlalchemy.orm import configure_mappers

    from .db_ecosystem_models import Ecosystem  # noqa
    from .db_platform_models import CredentialHistory, PlatformCredential  # noqa
    from .db_user_models import User, UserEcosystem  # noqa

    configure_mappers()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Get the global database manager instance.

    Raises:
        ConfigurationError: If no database manager has been initialized
    """
    if _db_manager is None:
        raise ConfigurationError(
            "Database manager not initialized. Call initialize_db() first.",
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    """Install (or with None, forget) the global manager."""
    global _db_manager
    _db_manager = manager


def initialize_db(config: Optional[DatabaseConfig] = None) -> DatabaseManager:
    """
    Create the global database manager and make sure the tables exist.

    Args:
        config: Connection settings; read from the environment when omitted
    """
    global _db_manager

    config = config or DatabaseConfig.from_env()
    get_logger().info(
        "Initializing database",
        extra={"db_type": config.db_type, "target": config.safe_description()},
    )
    _db_manager = DatabaseManager(config)

    import_all_models()
    _db_manager.create_tables()

    return _db_manager


def close_db() -> None:
    global _db_manager
    if _db_manager:
        _db_manager.close()
        _db_manager = None
