"""
Unit test conftest.py - Component-specific fixtures.

Services are built on the per-test session; external collaborators are
replaced with mocks only where they would reach outside the process.
"""

from unittest.mock import Mock

import pytest

from ecosystem_vault.constants import UserRole
from ecosystem_vault.schemas import ExternalProfile
from ecosystem_vault.services import (
    BulkImportService,
    CredentialStore,
    HistoryLedger,
    ReconciliationService,
)
from tests.fixtures.factories import (
    EcosystemFactory,
    PlatformCredentialFactory,
    UserEcosystemFactory,
    UserFactory,
)

# ==================== SERVICE FIXTURES ====================


@pytest.fixture(scope="function")
def credential_store(db_session, codec, app_config):
    """Credential store with test session."""
    return CredentialStore(db_session, codec, app_config)


@pytest.fixture(scope="function")
def history_ledger(db_session):
    return HistoryLedger(db_session)


@pytest.fixture(scope="function")
def import_service(db_session, credential_store, app_config):
    """Bulk import service sharing the credential store's session."""
    return BulkImportService(db_session, credential_store, app_config)


@pytest.fixture(scope="function")
def reconciliation_service(db_session):
    return ReconciliationService(db_session)


# ==================== DATA FIXTURES ====================


@pytest.fixture(scope="function")
def admin_user(db_session):
    return UserFactory.create(email="admin@example.org", name="Admin", role=UserRole.ADMIN.value)


@pytest.fixture(scope="function")
def ecosystem(db_session):
    return EcosystemFactory.create(name="Green Valley", theme="Agriculture")


@pytest.fixture(scope="function")
def platform(db_session, ecosystem, codec):
    """A platform with a username and password but no TOTP seed."""
    return PlatformCredentialFactory.create(
        ecosystem=ecosystem,
        platform_name="Green Valley Page",
        platform_type="facebook",
        username=codec.encrypt("greenvalley"),
        password=codec.encrypt("hunter2"),
        profile_id="fb-100",
    )


@pytest.fixture(scope="function")
def assigned_user(db_session, ecosystem):
    """A regular user assigned to the ecosystem fixture."""
    user = UserFactory.create(email="member@example.org", name="Member")
    UserEcosystemFactory.create(user=user, ecosystem=ecosystem)
    return user


# ==================== MOCK FIXTURES (ONLY WHEN NECESSARY) ====================


@pytest.fixture(scope="function")
def mock_queue_client():
    """Mock Azure Queue client for audit log shipping."""
    mock_client = Mock()
    mock_client.send_message.return_value = Mock(id="test_message_id")
    return mock_client


@pytest.fixture(scope="function")
def mock_profile_source():
    """Mock posting-statistics client returning a fixed profile list."""
    source = Mock()
    source.service_name = "getlate"
    source.get_profiles.return_value = [
        ExternalProfile(id="p-1", name="green valley"),
        ExternalProfile(id="p-2", name="Blue Harbour"),
    ]
    return source
