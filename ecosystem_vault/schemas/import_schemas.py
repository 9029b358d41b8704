"""
Pydantic schemas for bulk imports.

Each import kind has its own closed row model; ``ImportRow`` is the tagged
union discriminated by ``kind``. Blank cells are dropped before validation,
so a blank required cell reads as missing and a blank optional cell as not
supplied.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from ..constants import TRUTHY_VALUES, ImportKind, UserRole


def parse_flag(value: Optional[str]) -> Optional[bool]:
    """Read a CSV cell as a boolean; blank means not supplied."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return None
    return text in TRUTHY_VALUES


class BaseImportRow(BaseModel):
    """Base schema for import rows."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="before")
    @classmethod
    def drop_blank_cells(cls, data):
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if not (value is None or (isinstance(value, str) and not value.strip()))
            }
        return data


class UserImportRow(BaseImportRow):
    kind: Literal["users"] = ImportKind.USERS.value
    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(..., min_length=1, max_length=200)
    ecitizen_id: Optional[str] = None
    role: UserRole = UserRole.USER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v):
        if v is None:
            return UserRole.USER
        if isinstance(v, str):
            value = v.strip().lower()
            if value not in {role.value for role in UserRole}:
                raise ValueError(f"Invalid role '{v}'. Must be 'admin' or 'user'")
            return value
        return v


class EcosystemImportRow(BaseImportRow):
    kind: Literal["ecosystems"] = ImportKind.ECOSYSTEMS.value
    name: str = Field(..., min_length=1, max_length=200)
    theme: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    active_status: bool = True

    @field_validator("name", "theme")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("active_status", mode="before")
    @classmethod
    def read_active_status(cls, v):
        flag = parse_flag(v)
        return True if flag is None else flag


class PlatformImportRow(BaseImportRow):
    kind: Literal["platforms"] = ImportKind.PLATFORMS.value
    ecosystem_name: str = Field(..., min_length=1)
    platform_name: str = Field(..., min_length=1, max_length=200)
    platform_type: str = Field(..., min_length=1, max_length=100)
    username: Optional[str] = Field(default=None, repr=False)
    password: Optional[str] = Field(default=None, repr=False)
    profile_url: Optional[str] = None
    profile_id: Optional[str] = None
    totp_enabled: Optional[bool] = None

    @field_validator("totp_enabled", mode="before")
    @classmethod
    def read_totp_enabled(cls, v):
        return parse_flag(v)


class UserAssignmentImportRow(BaseImportRow):
    kind: Literal["user-assignments"] = ImportKind.USER_ASSIGNMENTS.value
    user_email: str = Field(..., min_length=3)
    ecosystem_name: str = Field(..., min_length=1)
    assigned_by_email: Optional[str] = None

    @field_validator("user_email", "assigned_by_email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v else v


ImportRow = Annotated[
    Union[UserImportRow, EcosystemImportRow, PlatformImportRow, UserAssignmentImportRow],
    Field(discriminator="kind"),
]

import_row_adapter: TypeAdapter = TypeAdapter(ImportRow)


def columns_for(kind: ImportKind) -> frozenset:
    """All columns a CSV for ``kind`` may carry."""
    model = {
        ImportKind.USERS: UserImportRow,
        ImportKind.ECOSYSTEMS: EcosystemImportRow,
        ImportKind.PLATFORMS: PlatformImportRow,
        ImportKind.USER_ASSIGNMENTS: UserAssignmentImportRow,
    }[kind]
    return frozenset(name for name in model.model_fields if name != "kind")


class ImportResult(BaseModel):
    """Outcome of one import batch."""

    kind: ImportKind
    imported: int = 0
    errors: List[str] = Field(default_factory=list)
    max_display_errors: int = Field(default=10, exclude=True)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def display_errors(self) -> List[str]:
        """Errors trimmed for display; ``errors`` always holds the full list."""
        return self.errors[: self.max_display_errors]

    @property
    def message(self) -> str:
        if self.errors:
            return (
                f"Import completed with errors. {self.imported} records imported successfully."
            )
        return f"Successfully imported {self.imported} {self.kind.value}"

    def to_response(self) -> dict:
        """Shape returned to the web layer."""
        response = {
            "success": self.success,
            "message": self.message,
            "imported": self.imported,
        }
        if self.errors:
            response["errors"] = self.display_errors
            response["total_errors"] = len(self.errors)
        return response
