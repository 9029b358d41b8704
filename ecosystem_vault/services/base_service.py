"""
Base service implementation with common functionality for all services.

Services work directly against a SQLAlchemy session. A service either borrows
the caller's session (the request scope owns commit/close) or opens its own
from the global DatabaseManager and commits after each unit of work.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, NoReturn, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..db.db_config import get_db_manager
from ..exceptions import BaseError, ConflictError, PersistenceError
from ..utils.logger import get_logger


class SessionManagedService:
    """Service that uses a caller-supplied session or owns one."""

    def __init__(self, session: Optional[Session] = None, logger: Optional[logging.Logger] = None):
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = get_db_manager().get_session()
            self._owns_session = True
        self.logger = logger or get_logger()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Run a unit of work inside a savepoint.

        Everything staged inside the block is applied together or not at all.
        The outer transaction is committed only when the service owns the
        session; a borrowed session is left for the caller to commit.

        Usage:
            with service.transaction():
                record.password = ciphertext
                ledger.stage(...)
        """
        try:
            with self.session.begin_nested():
                yield self.session
            if self._owns_session:
                self.session.commit()
        except Exception:
            if self._owns_session:
                self.session.rollback()
            raise

    def _handle_service_exception(
        self, operation: str, exception: Exception, entity_id: Optional[str] = None  # noqa
    ) -> NoReturn:
        """
        Translate a failure inside a unit of work into the vault's error types.

        Raises:
            The original exception if it is already a BaseError, a ConflictError
            for a lost optimistic-concurrency race, otherwise PersistenceError.
        """
        if isinstance(exception, BaseError):
            raise exception
        if isinstance(exception, StaleDataError):
            raise ConflictError(
                "Record was modified concurrently; reload and retry",
                cause=exception,
                operation=operation,
                entity_id=entity_id,
            ) from exception
        raise PersistenceError(
            f"Failed to persist changes in {operation}",
            cause=exception,
            operation=operation,
            entity_id=entity_id,
            error_type=type(exception).__name__,
        ) from exception

    @staticmethod
    def paginate_results(
        results: List[Any], total_count: int, page: int, page_size: int
    ) -> Dict[str, Any]:
        """
        Create a standardized pagination response.

        Args:
            results: Results for current page
            total_count: Total number of records
            page: Current page number
            page_size: Size of each page
        """
        total_pages = (total_count + page_size - 1) // page_size if page_size > 0 else 0

        return {
            "data": results,
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total_count": total_count,
                "total_pages": total_pages,
                "has_previous": page > 1,
                "has_next": page < total_pages,
            },
        }

    def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._owns_session:
            if exc_type:
                self.session.rollback()
            else:
                self.session.commit()
        self.close()
