"""
Matching local ecosystems against an external system's profiles.

The match is a single greedy pass over case-insensitive names; nothing is
persisted, so every sync recomputes it from scratch.
"""

from typing import Any, Callable, Iterable, List, Optional, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..db.db_ecosystem_models import Ecosystem
from ..exceptions import BaseError, ExternalServiceError
from ..schemas.reconciliation_schemas import (
    ExternalProfile,
    MatchedPair,
    ReconciliationOutcome,
    UnmatchedExternal,
    UnmatchedLocal,
)
from ..utils.lookup_index import NameIndex, natural_key
from .base_service import SessionManagedService


@runtime_checkable
class ProfileSource(Protocol):
    """Read-only client for the posting-statistics provider."""

    service_name: str

    def get_profiles(self) -> List[ExternalProfile]: ...


def _name_of(item: Any) -> str:
    return item if isinstance(item, str) else item.name


def _id_of(item: Any) -> str:
    return item if isinstance(item, str) else str(item.id)


def reconcile(
    local: Iterable[Any],
    external: Iterable[Any],
    *,
    local_key: Callable[[Any], str] = _name_of,
    external_key: Callable[[Any], str] = _name_of,
) -> ReconciliationOutcome:
    """
    Pair local entities with external ones whose names match ignoring case.

    Items are plain names or objects with ``id`` and ``name``. When a side
    holds two items with the same name only the first takes part. Items with
    a blank name can never match and are reported as unmatched.

    Args:
        local: Local entities, in the order they should be reported
        external: External entities
        local_key: Extracts the name of a local item
        external_key: Extracts the name of an external item

    Returns:
        Matched pairs, unmatched locals in input order, and the external
        items left over once every local has been tried
    """
    external = list(external)
    external_index = NameIndex(external, key=external_key)
    outcome = ReconciliationOutcome()
    seen = set()

    for item in local:
        name = local_key(item) or ""
        key = natural_key(name)
        if key:
            if key in seen:
                continue
            seen.add(key)
        match = external_index.pop(name)
        if match is not None:
            outcome.matched.append(
                MatchedPair(
                    local_id=_id_of(item),
                    local_name=name,
                    external_id=_id_of(match),
                    external_name=external_key(match),
                )
            )
        else:
            outcome.unmatched_local.append(UnmatchedLocal(local_id=_id_of(item), local_name=name))

    leftovers = [item for item in external if not natural_key(external_key(item))]
    outcome.unmatched_external.extend(
        UnmatchedExternal(external_id=_id_of(item), external_name=external_key(item) or "")
        for item in [*external_index, *leftovers]
    )
    return outcome


class ReconciliationService(SessionManagedService):
    """Proposes links between ecosystems and external profiles."""

    def __init__(self, session: Optional[Session] = None):
        super().__init__(session=session)

    @operation()
    def sync_ecosystems(self, profile_source: ProfileSource) -> ReconciliationOutcome:
        """
        Match every ecosystem against the provider's profiles.

        Raises:
            ExternalServiceError: If the provider could not be read
        """
        service_name = getattr(profile_source, "service_name", type(profile_source).__name__)
        try:
            profiles = [
                profile
                if isinstance(profile, ExternalProfile)
                else ExternalProfile.model_validate(profile, from_attributes=True)
                for profile in profile_source.get_profiles()
            ]
        except BaseError:
            raise
        except Exception as e:
            raise ExternalServiceError(
                f"Failed to fetch profiles from {service_name}",
                service_name=service_name,
                cause=e,
            ) from e

        ecosystems = self.session.scalars(
            select(Ecosystem).order_by(Ecosystem.created_at, Ecosystem.name)
        ).all()
        outcome = reconcile(ecosystems, profiles)

        self.logger.info(
            "Ecosystem sync computed",
            extra={"service_name": service_name, **outcome.summary},
        )
        return outcome
