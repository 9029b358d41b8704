"""
Append-only ledger of credential field changes.

Entries are only ever staged inside a CredentialStore transaction so the
record update and its history commit or roll back together.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..constants import CredentialField
from ..db.db_base import utc_now
from ..db.db_platform_models import CredentialHistory
from ..schemas.platform_schemas import CredentialHistoryRead
from ..utils.logger import get_logger


class HistoryLedger:
    """Reads and stages CredentialHistory rows."""

    def __init__(self, session: Session):
        self.session = session
        self.logger = get_logger()

    def stage(
        self,
        platform_id: str,
        field: CredentialField,
        old_value: Optional[str],
        new_value: Optional[str],
        actor_id: Optional[str] = None,
        changed_at: Optional[datetime] = None,
    ) -> CredentialHistory:
        """
        Add an entry to the current transaction without committing it.

        ``old_value``/``new_value`` are in the field's storage form: ciphertext
        for secret fields, plaintext for profile_id.
        """
        entry = CredentialHistory(
            platform_id=platform_id,
            field_name=CredentialField(field).value,
            old_value=old_value,
            new_value=new_value,
            changed_by=actor_id,
            changed_at=changed_at or utc_now(),
        )
        self.session.add(entry)
        self.logger.debug(
            "Staged credential history entry",
            extra={"platform_id": platform_id, "field_name": entry.field_name},
        )
        return entry

    def entries_for(self, platform_id: str) -> List[CredentialHistoryRead]:
        """Entries for a platform, oldest first; insertion order breaks ties."""
        stmt = (
            select(CredentialHistory)
            .where(CredentialHistory.platform_id == platform_id)
            .order_by(CredentialHistory.changed_at, CredentialHistory.id)
        )
        return [
            CredentialHistoryRead.model_validate(entry) for entry in self.session.scalars(stmt)
        ]

    def count_for(self, platform_id: str) -> int:
        stmt = select(func.count(CredentialHistory.id)).where(
            CredentialHistory.platform_id == platform_id
        )
        return self.session.scalar(stmt) or 0
