"""
Ecosystem model.

Just the data structure - no business logic.
"""

from sqlalchemy import Boolean, Column, Index, String, Text, func
from sqlalchemy.orm import relationship

from .db_base import TimestampMixin, UUIDMixin
from .db_config import Base


class Ecosystem(Base, UUIDMixin, TimestampMixin):
    """Organisational unit owning a set of platform credentials."""

    __tablename__ = "ecosystem"

    name = Column(String(200), nullable=False)
    theme = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    # Soft deactivation; ecosystems are not hard-deleted by normal flows
    active_status = Column(Boolean, nullable=False, default=True)

    platforms = relationship(
        "PlatformCredential",
        back_populates="ecosystem",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    user_assignments = relationship(
        "UserEcosystem",
        back_populates="ecosystem",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


# Natural key is case-insensitive
Index("uq_ecosystem_name_ci", func.lower(Ecosystem.name), unique=True)
