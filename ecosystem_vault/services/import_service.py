"""
Bulk import of users, ecosystems, platforms and ecosystem assignments.

Rows are processed in file order, each in its own transaction. A failing row
is reported with its line number and never stops the batch. Foreign keys are
resolved through NameIndex lookups that are loaded once per batch and grow as
rows create new entities, so later rows can reference earlier ones.
"""

from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

import pydantic
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..constants import REQUIRED_COLUMNS, ImportKind
from ..context.actor_context import require_admin, resolve_actor_id
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_ecosystem_models import Ecosystem
from ..db.db_user_models import User, UserEcosystem
from ..exceptions import (
    BaseError,
    DuplicateError,
    ErrorCode,
    NotFoundError,
    ValidationError,
    describe_validation_errors,
)
from ..schemas.import_schemas import (
    EcosystemImportRow,
    ImportResult,
    PlatformImportRow,
    UserAssignmentImportRow,
    UserImportRow,
    columns_for,
    import_row_adapter,
)
from ..utils.csv_utils import parse_csv
from ..utils.lookup_index import NameIndex
from .base_service import SessionManagedService
from .credential_store import CredentialStore

_PLATFORM_CREDENTIAL_FIELDS = ("username", "password", "profile_id", "profile_url")


class BulkImportService(SessionManagedService):
    """Imports CSV batches; only admins may import."""

    def __init__(
        self,
        session: Optional[Session] = None,
        credential_store: Optional[CredentialStore] = None,
        config: Optional[AppConfig] = None,
    ):
        super().__init__(session=session)
        self.config = config or get_config()
        self.credential_store = credential_store or CredentialStore(
            self.session, config=self.config
        )
        self._users: NameIndex[User] = NameIndex(key=lambda user: user.email)
        self._ecosystems: NameIndex[Ecosystem] = NameIndex(key=lambda eco: eco.name)
        self._handlers: Dict[ImportKind, Callable] = {
            ImportKind.USERS: self._import_user,
            ImportKind.ECOSYSTEMS: self._import_ecosystem,
            ImportKind.PLATFORMS: self._import_platform,
            ImportKind.USER_ASSIGNMENTS: self._import_assignment,
        }

    @require_admin("import")
    @operation()
    def import_csv(
        self, kind: Union[ImportKind, str], text: str, actor_id: Optional[str] = None
    ) -> ImportResult:
        """Parse CSV text and import its rows (see import_batch)."""
        kind = self._resolve_kind(kind)
        parsed = parse_csv(text)
        return self._run_batch(kind, parsed.headers, parsed.rows, actor_id, parsed.line_numbers)

    @require_admin("import")
    @operation()
    def import_batch(
        self,
        kind: Union[ImportKind, str],
        rows: Iterable[Mapping[str, Optional[str]]],
        actor_id: Optional[str] = None,
    ) -> ImportResult:
        """
        Import already-split rows keyed by column name.

        Args:
            kind: Entity kind the rows describe
            rows: One mapping per data row, in file order
            actor_id: User credited with assignments and credential changes

        Returns:
            ImportResult with the success count and every row error

        Raises:
            PermissionDeniedError: If the actor in context is not an admin
            ValidationError: If the batch is empty or its columns do not
                match the kind; no row is processed in that case
        """
        kind = self._resolve_kind(kind)
        normalized = [
            {str(key).strip().lower(): value for key, value in row.items()} for row in rows
        ]
        if not normalized:
            raise ValidationError(
                "No rows to import", field="rows", error_code=ErrorCode.MISSING_REQUIRED
            )
        headers: List[str] = []
        for row in normalized:
            headers.extend(key for key in row if key not in headers)
        return self._run_batch(kind, headers, normalized, actor_id)

    # ==================== BATCH DRIVER ====================

    @staticmethod
    def _resolve_kind(kind: Union[ImportKind, str]) -> ImportKind:
        try:
            return ImportKind(kind)
        except ValueError:
            raise ValidationError(
                "Invalid import type",
                field="kind",
                error_code=ErrorCode.INVALID_FORMAT,
                kind=str(kind),
            ) from None

    @staticmethod
    def _check_columns(kind: ImportKind, headers: List[str]) -> None:
        required = REQUIRED_COLUMNS[kind]
        if any(column not in headers for column in required):
            raise ValidationError(
                f"CSV must contain {' and '.join(required)} columns",
                field="headers",
                error_code=ErrorCode.MISSING_REQUIRED,
                kind=kind.value,
            )
        unknown = [column for column in headers if column not in columns_for(kind)]
        if unknown:
            raise ValidationError(
                f"Unknown columns for {kind.value}: {', '.join(unknown)}",
                field="headers",
                error_code=ErrorCode.INVALID_FORMAT,
                kind=kind.value,
            )

    def _load_indexes(self) -> None:
        self._users = NameIndex(
            self.session.scalars(select(User).order_by(User.created_at)),
            key=lambda user: user.email,
        )
        self._ecosystems = NameIndex(
            self.session.scalars(select(Ecosystem).order_by(Ecosystem.created_at)),
            key=lambda eco: eco.name,
        )

    def _run_batch(
        self,
        kind: ImportKind,
        headers: List[str],
        rows: List[Mapping[str, Optional[str]]],
        actor_id: Optional[str],
        line_numbers: Optional[List[int]] = None,
    ) -> ImportResult:
        headers = [header for header in headers if header]
        self._check_columns(kind, headers)
        self._load_indexes()
        actor_id = resolve_actor_id(actor_id)
        handler = self._handlers[kind]

        result = ImportResult(
            kind=kind, max_display_errors=self.config.imports.max_display_errors
        )
        for index, raw in enumerate(rows):
            # Line 1 is the header
            row_number = line_numbers[index] if line_numbers else index + 2
            try:
                row = self._parse_row(kind, {key: value for key, value in raw.items() if key})
                try:
                    with self.transaction():
                        handler(row, actor_id)
                except Exception as e:
                    self._handle_service_exception(f"import_{kind.value}", e)
                result.imported += 1
            except BaseError as e:
                result.errors.append(f"Row {row_number}: {e.message}")

        self.logger.info(
            "Import completed",
            extra={
                "kind": kind.value,
                "imported": result.imported,
                "error_count": len(result.errors),
                "actor_id": actor_id,
            },
        )
        return result

    @staticmethod
    def _parse_row(kind: ImportKind, raw: Mapping[str, Optional[str]]):
        try:
            return import_row_adapter.validate_python({**raw, "kind": kind.value})
        except pydantic.ValidationError as e:
            raise ValidationError(
                "; ".join(describe_validation_errors(e, tag=kind.value)), kind=kind.value
            ) from None

    # ==================== ROW HANDLERS ====================

    def _require_ecosystem(self, name: str) -> Ecosystem:
        ecosystem = self._ecosystems.get(name)
        if ecosystem is None:
            raise NotFoundError(f"Ecosystem '{name}' not found", resource_type="Ecosystem")
        return ecosystem

    def _import_user(self, row: UserImportRow, actor_id: Optional[str]) -> None:
        now = utc_now()
        user = self._users.get(row.email)
        if user is None:
            user = User(
                email=row.email,
                name=row.name,
                ecitizen_id=row.ecitizen_id,
                role=row.role.value,
                created_at=now,
                updated_at=now,
            )
            self.session.add(user)
            self.session.flush()
            self._users.add(user)
            return

        changes = {"name": row.name}
        if "ecitizen_id" in row.model_fields_set:
            changes["ecitizen_id"] = row.ecitizen_id
        if "role" in row.model_fields_set:
            changes["role"] = row.role.value
        if self._apply(user, changes):
            user.touch(now)
            self.session.flush()

    def _import_ecosystem(self, row: EcosystemImportRow, actor_id: Optional[str]) -> None:
        now = utc_now()
        ecosystem = self._ecosystems.get(row.name)
        if ecosystem is None:
            ecosystem = Ecosystem(
                name=row.name,
                theme=row.theme,
                description=row.description,
                active_status=row.active_status,
                created_at=now,
                updated_at=now,
            )
            self.session.add(ecosystem)
            self.session.flush()
            self._ecosystems.add(ecosystem)
            return

        changes = {"theme": row.theme}
        if "description" in row.model_fields_set:
            changes["description"] = row.description
        if "active_status" in row.model_fields_set:
            changes["active_status"] = row.active_status
        if self._apply(ecosystem, changes):
            ecosystem.touch(now)
            self.session.flush()

    def _import_platform(self, row: PlatformImportRow, actor_id: Optional[str]) -> None:
        ecosystem = self._require_ecosystem(row.ecosystem_name)
        supplied = {
            name: getattr(row, name)
            for name in _PLATFORM_CREDENTIAL_FIELDS
            if name in row.model_fields_set
        }

        existing = self.credential_store.find_platform(
            ecosystem.id, row.platform_name, row.platform_type
        )
        if existing is None:
            self.credential_store.register_platform(
                ecosystem.id,
                {"platform_name": row.platform_name, "platform_type": row.platform_type, **supplied},
                actor_id=actor_id,
            )
            # A new platform has no seed, so TOTP stays off whatever the cell says
            return

        if supplied:
            self.credential_store.update_credential(existing.id, supplied, actor_id=actor_id)
        if row.totp_enabled is not None:
            if self.credential_store.set_totp_enabled(existing, row.totp_enabled):
                self.session.flush()

    def _import_assignment(self, row: UserAssignmentImportRow, actor_id: Optional[str]) -> None:
        user = self._users.get(row.user_email)
        if user is None:
            raise NotFoundError(f"User '{row.user_email}' not found", resource_type="User")
        ecosystem = self._require_ecosystem(row.ecosystem_name)

        assigned_by = actor_id
        if row.assigned_by_email:
            assigner = self._users.get(row.assigned_by_email)
            if assigner is not None:
                assigned_by = assigner.id

        existing = self.session.scalar(
            select(UserEcosystem.id).where(
                UserEcosystem.user_id == user.id, UserEcosystem.ecosystem_id == ecosystem.id
            )
        )
        if existing is not None:
            raise DuplicateError(
                f"User '{row.user_email}' is already assigned to ecosystem '{row.ecosystem_name}'",
                resource_type="UserEcosystem",
            )

        self.session.add(
            UserEcosystem(
                user_id=user.id,
                ecosystem_id=ecosystem.id,
                assigned_by=assigned_by,
                assigned_at=utc_now(),
            )
        )
        self.session.flush()

    @staticmethod
    def _apply(entity, changes: Dict[str, object]) -> bool:
        """Set attributes that differ; returns whether anything changed."""
        changed = False
        for attr, value in changes.items():
            if getattr(entity, attr) != value:
                setattr(entity, attr, value)
                changed = True
        return changed
