"""
Service owning every mutation of a platform credential.

All writes go through here so that secrets are encrypted at rest and every
change to an audited field lands in the history ledger in the same
transaction as the record update.
"""

from typing import Any, Dict, List, Optional, Union

import pydantic
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..context.actor_context import ActorContext, resolve_actor_id
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_ecosystem_models import Ecosystem
from ..db.db_platform_models import PlatformCredential
from ..db.db_user_models import UserEcosystem
from ..exceptions import (
    ConflictError,
    EmptySeedError,
    InvalidCodeError,
    duplicate,
    not_found,
    permission_denied,
    validation_error_from,
)
from ..schemas.platform_schemas import (
    CredentialHistoryRead,
    PlatformCreate,
    PlatformCredentialRead,
    PlatformCredentialUpdate,
)
from ..utils.encryption_utils import SecretCodec
from ..utils.totp_utils import generate_totp, validate_seed, verify_totp
from .base_service import SessionManagedService
from .history_ledger import HistoryLedger

# Name and type are part of the natural key and cannot be cleared
_REQUIRED_PLAIN_FIELDS = frozenset({"platform_name", "platform_type"})


class CredentialStore(SessionManagedService):
    """
    Encrypted storage and audited mutation of platform credentials.

    The codec is supplied once at construction; the store never looks up key
    material on its own.
    """

    def __init__(
        self,
        session: Optional[Session] = None,
        codec: Optional[SecretCodec] = None,
        config: Optional[AppConfig] = None,
    ):
        super().__init__(session=session)
        self.config = config or get_config()
        self.codec = codec or SecretCodec.from_config(self.config.security)
        self.ledger = HistoryLedger(self.session)

    # ==================== LOOKUPS ====================

    def _get_record(self, platform_id: str) -> PlatformCredential:
        record = self.session.get(PlatformCredential, platform_id)
        if record is None:
            raise not_found("Platform", platform_id=platform_id)
        return record

    def _check_ecosystem_access(self, ecosystem_id: str, action: str, **identifiers) -> None:
        """Admins may touch any ecosystem; users only those they are assigned to."""
        actor = ActorContext.get_current_actor()
        if actor is None or actor.is_admin:
            return
        assigned = self.session.scalar(
            select(UserEcosystem.id).where(
                UserEcosystem.user_id == actor.user_id,
                UserEcosystem.ecosystem_id == ecosystem_id,
            )
        )
        if assigned is None:
            raise permission_denied(
                action,
                "platform",
                ecosystem_id=ecosystem_id,
                actor_id=actor.user_id,
                **identifiers,
            )

    def _check_access(self, record: PlatformCredential, action: str) -> None:
        self._check_ecosystem_access(record.ecosystem_id, action, platform_id=record.id)

    @operation()
    def get_platform(self, platform_id: str) -> PlatformCredentialRead:
        """Return the platform with its secrets decrypted."""
        record = self._get_record(platform_id)
        self._check_access(record, "view_platform")
        return PlatformCredentialRead.from_record(record, self.codec)

    def find_platform(
        self, ecosystem_id: str, platform_name: str, platform_type: str
    ) -> Optional[PlatformCredential]:
        """Look a platform up by its natural key, ignoring case."""
        stmt = select(PlatformCredential).where(
            PlatformCredential.ecosystem_id == ecosystem_id,
            func.lower(PlatformCredential.platform_name) == platform_name.strip().lower(),
            func.lower(PlatformCredential.platform_type) == platform_type.strip().lower(),
        )
        return self.session.scalars(stmt).first()

    @operation()
    def list_platforms(
        self,
        ecosystem_id: str,
        page: int = 1,
        limit: int = 12,
        search: Optional[str] = None,
        platform_type: Optional[str] = None,
        totp_enabled: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Page through an ecosystem's platforms ordered by name.

        Args:
            ecosystem_id: Ecosystem whose platforms to list
            page: 1-based page number
            limit: Page size
            search: Case-insensitive match on name, type or profile URL
            platform_type: Exact type filter
            totp_enabled: Only platforms with (or without) TOTP
        """
        self._check_ecosystem_access(ecosystem_id, "list_platforms")
        page = max(page, 1)
        stmt = select(PlatformCredential).where(PlatformCredential.ecosystem_id == ecosystem_id)

        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(PlatformCredential.platform_name).like(pattern),
                    func.lower(PlatformCredential.platform_type).like(pattern),
                    func.lower(PlatformCredential.profile_url).like(pattern),
                )
            )
        if platform_type:
            stmt = stmt.where(PlatformCredential.platform_type == platform_type)
        if totp_enabled is not None:
            stmt = stmt.where(PlatformCredential.totp_enabled == totp_enabled)

        total = self.session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        records = self.session.scalars(
            stmt.order_by(PlatformCredential.platform_name, PlatformCredential.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        data = [PlatformCredentialRead.from_record(record, self.codec) for record in records]
        return self.paginate_results(data, total, page, limit)

    @operation()
    def history(self, platform_id: str) -> List[CredentialHistoryRead]:
        """Ledger entries for a platform, oldest first."""
        record = self._get_record(platform_id)
        self._check_access(record, "view_history")
        return self.ledger.entries_for(platform_id)

    # ==================== MUTATIONS ====================

    @operation()
    def register_platform(
        self, ecosystem_id: str, data: Union[PlatformCreate, dict], actor_id: Optional[str] = None
    ) -> PlatformCredentialRead:
        """
        Create a platform on an ecosystem, encrypting any supplied secrets.

        Raises:
            ValidationError: If ``data`` does not match PlatformCreate
            NotFoundError: If the ecosystem does not exist
            DuplicateError: If the natural key is already taken
        """
        if not isinstance(data, PlatformCreate):
            try:
                data = PlatformCreate.model_validate(data)
            except pydantic.ValidationError as e:
                raise validation_error_from(e, operation="register_platform") from None

        if self.session.get(Ecosystem, ecosystem_id) is None:
            raise not_found("Ecosystem", ecosystem_id=ecosystem_id)
        if self.find_platform(ecosystem_id, data.platform_name, data.platform_type):
            raise duplicate(
                "Platform",
                ecosystem_id=ecosystem_id,
                platform_name=data.platform_name,
                platform_type=data.platform_type,
            )

        now = utc_now()
        record = PlatformCredential(
            ecosystem_id=ecosystem_id,
            platform_name=data.platform_name.strip(),
            platform_type=data.platform_type.strip(),
            username=self.codec.encrypt_optional(data.username),
            password=self.codec.encrypt_optional(data.password),
            profile_id=data.profile_id or None,
            profile_url=data.profile_url or None,
            totp_enabled=False,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.transaction():
                self.session.add(record)
                self.session.flush()
        except IntegrityError as e:
            raise duplicate(
                "Platform",
                cause=e,
                ecosystem_id=ecosystem_id,
                platform_name=data.platform_name,
                platform_type=data.platform_type,
            ) from e
        except Exception as e:
            self._handle_service_exception("register_platform", e)

        self.logger.info(
            "Platform registered",
            extra={
                "platform_id": record.id,
                "ecosystem_id": ecosystem_id,
                "actor_id": resolve_actor_id(actor_id),
            },
        )
        return PlatformCredentialRead.from_record(record, self.codec)

    @operation()
    def update_credential(
        self,
        platform_id: str,
        fields: Union[PlatformCredentialUpdate, dict],
        actor_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> PlatformCredentialRead:
        """
        Apply proposed changes, writing one history entry per audited field that changed.

        Secret fields are compared against their decrypted current value (an
        absent secret compares as ``""``) and re-encrypted only when they
        differ. Nothing is written, and the version is not bumped, when no
        field changed.

        Args:
            platform_id: Platform to update
            fields: Proposed values; only keys present are considered
            actor_id: User recorded as the author of the change (defaults to
                the actor in context)
            expected_version: Version the caller last read, if it wants a
                stale-read check

        Returns:
            The platform after the update, with secrets decrypted

        Raises:
            ValidationError: If ``fields`` carries unknown or malformed keys
            NotFoundError: If the platform does not exist
            ConflictError: If the platform was modified concurrently
            PersistenceError: If the store failed; nothing was applied
        """
        if not isinstance(fields, PlatformCredentialUpdate):
            try:
                fields = PlatformCredentialUpdate.model_validate(fields)
            except pydantic.ValidationError as e:
                raise validation_error_from(
                    e, operation="update_credential", platform_id=platform_id
                ) from None

        record = self._get_record(platform_id)
        self._check_access(record, "update_credential")
        if expected_version is not None and record.version != expected_version:
            raise ConflictError(
                "Platform was modified since it was read; reload and retry",
                platform_id=platform_id,
                expected_version=expected_version,
                current_version=record.version,
            )

        actor_id = resolve_actor_id(actor_id)
        now = utc_now()
        changed: List[str] = []

        try:
            with self.transaction():
                for field, proposed in fields.audited_changes().items():
                    stored = getattr(record, field.value)
                    if field.encrypted:
                        proposed_plain = proposed or ""
                        if proposed_plain == self.codec.decrypt_optional(stored):
                            continue
                        new_stored = self.codec.encrypt_optional(proposed_plain)
                    else:
                        new_stored = proposed or None
                        if new_stored == (stored or None):
                            continue
                    setattr(record, field.value, new_stored)
                    self.ledger.stage(record.id, field, stored, new_stored, actor_id, now)
                    changed.append(field.value)

                for name, value in fields.plain_changes().items():
                    if name in _REQUIRED_PLAIN_FIELDS:
                        if not value or value.strip() == getattr(record, name):
                            continue
                        value = value.strip()
                    else:
                        value = value or None
                        if value == getattr(record, name):
                            continue
                    setattr(record, name, value)
                    changed.append(name)

                if changed:
                    record.touch(now)
                    self.session.flush()
        except Exception as e:
            self.session.expire(record)
            self._handle_service_exception("update_credential", e, platform_id)

        if changed:
            self.logger.info(
                "Platform credential updated",
                extra={
                    "platform_id": platform_id,
                    "changed_fields": changed,
                    "actor_id": actor_id,
                    "version": record.version,
                },
            )
        return PlatformCredentialRead.from_record(record, self.codec)

    @operation()
    def enroll_totp(
        self,
        platform_id: str,
        seed: str,
        test_code: Optional[str] = None,
        actor_id: Optional[str] = None,
    ) -> None:
        """
        Store an encrypted TOTP seed and switch TOTP on.

        When a test code is supplied it must verify against the new seed
        before anything is stored.

        Raises:
            EmptySeedError: If the seed is blank
            NotFoundError: If the platform does not exist
            PermissionDeniedError: If a non-admin actor is not assigned to the ecosystem
            InvalidSeedError: If the seed is not valid base32
            InvalidCodeError: If the test code does not verify
        """
        if seed is None or not seed.strip():
            raise EmptySeedError(platform_id=platform_id)

        record = self._get_record(platform_id)
        self._check_access(record, "enroll_totp")
        totp = self.config.totp
        normalized = validate_seed(seed, interval=totp.interval, digits=totp.digits)

        if test_code and test_code.strip():
            if not verify_totp(
                test_code, normalized, interval=totp.interval, valid_window=totp.valid_window
            ):
                raise InvalidCodeError(platform_id=platform_id)

        try:
            with self.transaction():
                record.totp_secret = self.codec.encrypt(normalized)
                record.totp_enabled = True
                record.touch()
                self.session.flush()
        except Exception as e:
            self.session.expire(record)
            self._handle_service_exception("enroll_totp", e, platform_id)

        # Seed changes are not ledgered; this entry is their audit trail
        self.logger.info(
            "TOTP enrolled",
            extra={"platform_id": platform_id, "actor_id": resolve_actor_id(actor_id)},
        )

    @operation()
    def disable_totp(self, platform_id: str, actor_id: Optional[str] = None) -> None:
        """Remove the stored seed and switch TOTP off."""
        record = self._get_record(platform_id)
        self._check_access(record, "disable_totp")
        if record.totp_secret is None and not record.totp_enabled:
            return

        try:
            with self.transaction():
                record.totp_secret = None
                record.totp_enabled = False
                record.touch()
                self.session.flush()
        except Exception as e:
            self.session.expire(record)
            self._handle_service_exception("disable_totp", e, platform_id)

        self.logger.info(
            "TOTP disabled",
            extra={"platform_id": platform_id, "actor_id": resolve_actor_id(actor_id)},
        )

    def set_totp_enabled(self, record: PlatformCredential, enabled: bool) -> bool:
        """
        Toggle the TOTP flag without touching the seed.

        The flag can only be switched on when a seed is stored. Must be called
        inside a transaction; returns whether the flag changed.
        """
        if enabled and not record.totp_secret:
            return False
        if record.totp_enabled == enabled:
            return False
        record.totp_enabled = enabled
        record.touch()
        return True

    def current_totp_code(self, platform_id: str) -> Optional[str]:
        """The code for the stored seed right now, or None without a seed."""
        record = self._get_record(platform_id)
        self._check_access(record, "view_totp_code")
        if not record.totp_secret:
            return None
        totp = self.config.totp
        return generate_totp(
            self.codec.decrypt(record.totp_secret), interval=totp.interval, digits=totp.digits
        )
