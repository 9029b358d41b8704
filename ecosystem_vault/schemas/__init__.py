"""Pydantic schemas for validation and serialization."""

from .import_schemas import (
    EcosystemImportRow,
    ImportResult,
    ImportRow,
    PlatformImportRow,
    UserAssignmentImportRow,
    UserImportRow,
    columns_for,
    import_row_adapter,
    parse_flag,
)
from .platform_schemas import (
    CredentialHistoryRead,
    PlatformCreate,
    PlatformCredentialRead,
    PlatformCredentialUpdate,
)
from .reconciliation_schemas import (
    ExternalProfile,
    MatchedPair,
    ReconciliationOutcome,
    UnmatchedExternal,
    UnmatchedLocal,
)

__all__ = [
    # Platform schemas
    "CredentialHistoryRead",
    "PlatformCreate",
    "PlatformCredentialRead",
    "PlatformCredentialUpdate",
    # Import schemas
    "EcosystemImportRow",
    "ImportResult",
    "ImportRow",
    "PlatformImportRow",
    "UserAssignmentImportRow",
    "UserImportRow",
    "columns_for",
    "import_row_adapter",
    "parse_flag",
    # Reconciliation schemas
    "ExternalProfile",
    "MatchedPair",
    "ReconciliationOutcome",
    "UnmatchedExternal",
    "UnmatchedLocal",
]
