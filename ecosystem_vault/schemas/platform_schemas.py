"""
Pydantic schemas for platform credentials and their history.

Write schemas are closed field sets (unknown keys are rejected). Secret
values are never stripped or otherwise normalized, and are hidden from repr.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import CredentialField

if TYPE_CHECKING:
    from ..db.db_platform_models import PlatformCredential
    from ..utils.encryption_utils import SecretCodec


class BasePlatformSchema(BaseModel):
    """Base schema for platform write models."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class PlatformCreate(BasePlatformSchema):
    """Schema for registering a platform on an ecosystem."""

    platform_name: str = Field(..., min_length=1, max_length=200)
    platform_type: str = Field(..., min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, repr=False)
    password: Optional[str] = Field(default=None, repr=False)
    profile_id: Optional[str] = Field(default=None, max_length=255)
    profile_url: Optional[str] = Field(default=None)


class PlatformCredentialUpdate(BasePlatformSchema):
    """
    Proposed changes to a platform credential.

    Only fields explicitly supplied are considered; ``None`` or ``""`` for a
    secret means "clear it".
    """

    username: Optional[str] = Field(default=None, repr=False)
    password: Optional[str] = Field(default=None, repr=False)
    profile_id: Optional[str] = Field(default=None, max_length=255)
    profile_url: Optional[str] = Field(default=None)
    platform_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    platform_type: Optional[str] = Field(default=None, min_length=1, max_length=100)

    def audited_changes(self) -> dict:
        """Supplied auditable fields, keyed by CredentialField."""
        return {
            field: getattr(self, field.value)
            for field in CredentialField
            if field.value in self.model_fields_set
        }

    def plain_changes(self) -> dict:
        """Supplied fields that are applied without a history entry."""
        audited = {field.value for field in CredentialField}
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name not in audited
        }


class PlatformCredentialRead(BaseModel):
    """Platform credential with secrets decrypted for the immediate caller."""

    id: str
    ecosystem_id: str
    platform_name: str
    platform_type: str
    username: str = Field(default="", repr=False)
    password: str = Field(default="", repr=False)
    profile_id: Optional[str] = None
    profile_url: Optional[str] = None
    totp_enabled: bool = False
    has_totp_secret: bool = False
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(
        cls, record: "PlatformCredential", codec: "SecretCodec"
    ) -> "PlatformCredentialRead":
        return cls(
            id=record.id,
            ecosystem_id=record.ecosystem_id,
            platform_name=record.platform_name,
            platform_type=record.platform_type,
            username=codec.decrypt_optional(record.username),
            password=codec.decrypt_optional(record.password),
            profile_id=record.profile_id,
            profile_url=record.profile_url,
            totp_enabled=record.totp_enabled,
            has_totp_secret=bool(record.totp_secret),
            version=record.version,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class CredentialHistoryRead(BaseModel):
    """One ledger entry. Values keep the field's storage form (ciphertext for secrets)."""

    id: int
    platform_id: str
    field_name: CredentialField
    old_value: Optional[str] = Field(default=None, repr=False)
    new_value: Optional[str] = Field(default=None, repr=False)
    changed_by: Optional[str] = None
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)
