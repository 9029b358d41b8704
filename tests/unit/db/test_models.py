"""Tests for constraints and cascades on the vault tables."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from ecosystem_vault.constants import CredentialField
from ecosystem_vault.db import CredentialHistory, Ecosystem, PlatformCredential, UserEcosystem
from tests.fixtures.factories import (
    EcosystemFactory,
    PlatformCredentialFactory,
    UserEcosystemFactory,
)


def count(db_session, model) -> int:
    return db_session.scalar(select(func.count()).select_from(model))


def test_ecosystem_names_are_unique_ignoring_case(db_session):
    EcosystemFactory.create(name="Green Valley")

    with pytest.raises(IntegrityError):
        EcosystemFactory.create(name="GREEN VALLEY")


def test_platform_natural_key_is_unique(db_session, ecosystem):
    PlatformCredentialFactory.create(
        ecosystem=ecosystem, platform_name="Page", platform_type="facebook"
    )

    with pytest.raises(IntegrityError):
        PlatformCredentialFactory.create(
            ecosystem=ecosystem, platform_name="Page", platform_type="facebook"
        )


def test_version_starts_at_one_and_bumps(db_session, platform):
    assert platform.version == 1

    platform.profile_url = "https://example.org/gv"
    db_session.flush()

    assert platform.version == 2


def test_touch_sets_updated_at(db_session, platform):
    stamp = platform.touch()

    assert platform.updated_at == stamp


def test_deleting_ecosystem_cascades(db_session, ecosystem, platform, history_ledger):
    UserEcosystemFactory.create(ecosystem=ecosystem)
    history_ledger.stage(platform.id, CredentialField.PROFILE_ID, None, "fb-100")
    db_session.flush()
    db_session.expunge_all()

    db_session.delete(db_session.get(Ecosystem, ecosystem.id))
    db_session.flush()

    assert count(db_session, PlatformCredential) == 0
    assert count(db_session, UserEcosystem) == 0
    assert count(db_session, CredentialHistory) == 0
