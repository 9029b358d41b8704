"""
User and ecosystem assignment models.

Just the data structure - no business logic.
"""

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from ..constants import UserRole
from .db_base import TimestampMixin, UUIDMixin, utc_now
from .db_config import Base


class User(Base, UUIDMixin, TimestampMixin):
    """Person who can be assigned to ecosystems and attributed in the history ledger."""

    __tablename__ = "app_user"

    # Stored lower-cased; the importer normalizes before writing
    email = Column(String(320), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    ecitizen_id = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.USER.value)

    ecosystem_assignments = relationship(
        "UserEcosystem",
        back_populates="user",
        foreign_keys="UserEcosystem.user_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class UserEcosystem(Base, UUIDMixin):
    """Grants a user access to one ecosystem."""

    __tablename__ = "user_ecosystem"

    user_id = Column(String(36), ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False)
    ecosystem_id = Column(
        String(36), ForeignKey("ecosystem.id", ondelete="CASCADE"), nullable=False, index=True
    )
    assigned_by = Column(String(36), ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True)
    assigned_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user = relationship("User", back_populates="ecosystem_assignments", foreign_keys=[user_id])
    ecosystem = relationship("Ecosystem", back_populates="user_assignments")

    __table_args__ = (UniqueConstraint("user_id", "ecosystem_id", name="uq_user_ecosystem"),)
