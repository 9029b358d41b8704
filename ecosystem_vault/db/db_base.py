"""
Column helpers shared by the vault tables.

Identifiers are UUID strings and timestamps are timezone-aware UTC so the
same models run on SQLite in tests and PostgreSQL in production.
"""

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String


def utc_now() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    """Primary key for a new row."""
    return str(uuid.uuid4())


class TimestampMixin:
    """created_at/updated_at pair; ``touch`` marks the row as modified."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def touch(self, at: Optional[datetime] = None) -> datetime:
        self.updated_at = at or utc_now()
        return self.updated_at


class UUIDMixin:
    id = Column(String(36), primary_key=True, default=new_id)
