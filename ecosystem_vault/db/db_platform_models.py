"""
Platform credential and credential history models.

Secret columns hold SecretCodec ciphertext (or NULL for "no secret"); the
history table is append-only and guarded at the ORM layer.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import relationship

from ..exceptions import ImmutableHistoryError
from .db_base import TimestampMixin, UUIDMixin, utc_now
from .db_config import Base


class PlatformCredential(Base, UUIDMixin, TimestampMixin):
    """One external social-media account belonging to an ecosystem."""

    __tablename__ = "platform_credential"

    ecosystem_id = Column(
        String(36), ForeignKey("ecosystem.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platform_name = Column(String(200), nullable=False)
    platform_type = Column(String(100), nullable=False)

    # Ciphertext or NULL
    username = Column(Text, nullable=True)
    password = Column(Text, nullable=True)
    totp_secret = Column(Text, nullable=True)

    # Plaintext external references
    profile_id = Column(String(255), nullable=True)
    profile_url = Column(Text, nullable=True)

    totp_enabled = Column(Boolean, nullable=False, default=False)

    # Optimistic concurrency counter, bumped on every UPDATE
    version = Column(Integer, nullable=False)

    ecosystem = relationship("Ecosystem", back_populates="platforms")
    history = relationship(
        "CredentialHistory",
        back_populates="platform",
        order_by="CredentialHistory.id",
        passive_deletes="all",
    )

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        UniqueConstraint(
            "ecosystem_id", "platform_name", "platform_type", name="uq_platform_natural_key"
        ),
    )


class CredentialHistory(Base):
    """Immutable record of one field change on a platform credential."""

    __tablename__ = "credential_history"

    # Integer key doubles as insertion order; changed_at ties are common
    id = Column(Integer, primary_key=True, autoincrement=True)
    platform_id = Column(
        String(36), ForeignKey("platform_credential.id", ondelete="CASCADE"), nullable=False
    )
    field_name = Column(String(20), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    changed_by = Column(String(36), ForeignKey("app_user.id", ondelete="SET NULL"), nullable=True)
    changed_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    platform = relationship("PlatformCredential", back_populates="history")

    __table_args__ = (Index("ix_credential_history_platform", "platform_id", "changed_at"),)


@event.listens_for(CredentialHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise ImmutableHistoryError(history_id=target.id, attempted="update")


@event.listens_for(CredentialHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise ImmutableHistoryError(history_id=target.id, attempted="delete")
