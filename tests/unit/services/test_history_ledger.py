"""Tests for the append-only credential history ledger."""

from datetime import timedelta

import pytest

from ecosystem_vault.constants import CredentialField
from ecosystem_vault.db import CredentialHistory
from ecosystem_vault.db.db_base import utc_now
from ecosystem_vault.exceptions import ImmutableHistoryError


@pytest.fixture
def staged_entry(history_ledger, platform, db_session):
    entry = history_ledger.stage(platform.id, CredentialField.PROFILE_ID, "fb-100", "fb-200")
    db_session.flush()
    return entry


def test_stage_only_adds_to_session(history_ledger, platform, db_session):
    entry = history_ledger.stage(platform.id, CredentialField.PASSWORD, None, "ciphertext")

    assert entry in db_session.new
    assert entry.id is None


def test_entries_are_ordered_by_time_then_insertion(history_ledger, platform, db_session):
    now = utc_now()
    history_ledger.stage(platform.id, CredentialField.USERNAME, "a", "b", changed_at=now)
    history_ledger.stage(platform.id, CredentialField.PASSWORD, "c", "d", changed_at=now)
    history_ledger.stage(
        platform.id, CredentialField.PROFILE_ID, "e", "f", changed_at=now - timedelta(minutes=5)
    )
    db_session.flush()

    fields = [entry.field_name for entry in history_ledger.entries_for(platform.id)]

    assert fields == [
        CredentialField.PROFILE_ID,
        CredentialField.USERNAME,
        CredentialField.PASSWORD,
    ]


def test_updating_an_entry_is_rejected(staged_entry, db_session):
    staged_entry.new_value = "rewritten"

    with pytest.raises(ImmutableHistoryError):
        db_session.flush()


def test_deleting_an_entry_is_rejected(staged_entry, db_session):
    db_session.delete(staged_entry)

    with pytest.raises(ImmutableHistoryError):
        db_session.flush()


def test_entry_is_attributed(history_ledger, platform, admin_user, db_session):
    history_ledger.stage(platform.id, CredentialField.PASSWORD, None, "x", actor_id=admin_user.id)
    db_session.flush()

    entry = db_session.query(CredentialHistory).one()
    assert entry.changed_by == admin_user.id
    assert entry.field_name == "password"
