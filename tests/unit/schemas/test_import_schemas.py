"""Tests for the bulk import row models."""

import pydantic
import pytest

from ecosystem_vault.constants import ImportKind, UserRole
from ecosystem_vault.exceptions import describe_validation_errors
from ecosystem_vault.schemas.import_schemas import (
    EcosystemImportRow,
    ImportResult,
    PlatformImportRow,
    UserImportRow,
    columns_for,
    import_row_adapter,
    parse_flag,
)


@pytest.mark.parametrize(
    "cell,expected",
    [("true", True), (" YES ", True), ("1", True), ("false", False), ("no", False), ("", None)],
)
def test_parse_flag(cell, expected):
    assert parse_flag(cell) is expected


def test_adapter_dispatches_on_kind():
    row = import_row_adapter.validate_python(
        {"kind": "platforms", "ecosystem_name": "Eco", "platform_name": "P", "platform_type": "x"}
    )

    assert isinstance(row, PlatformImportRow)


def test_blank_required_cell_reads_as_missing():
    with pytest.raises(pydantic.ValidationError) as exc_info:
        import_row_adapter.validate_python({"kind": "ecosystems", "name": "Eco", "theme": "  "})

    assert describe_validation_errors(exc_info.value, tag="ecosystems") == [
        "Missing required field 'theme'"
    ]


def test_blank_optional_cell_is_not_supplied():
    row = EcosystemImportRow(name="Eco", theme="Water", description="")

    assert "description" not in row.model_fields_set
    assert row.active_status is True


def test_user_row_normalizes_email_and_role():
    row = UserImportRow(email=" Jane@Example.ORG ", name="Jane", role="ADMIN")

    assert row.email == "jane@example.org"
    assert row.role is UserRole.ADMIN


def test_user_row_rejects_unknown_role():
    with pytest.raises(pydantic.ValidationError) as exc_info:
        UserImportRow(email="a@example.org", name="A", role="owner")

    assert describe_validation_errors(exc_info.value) == [
        "role: Invalid role 'owner'. Must be 'admin' or 'user'"
    ]


def test_rows_reject_unknown_fields():
    with pytest.raises(pydantic.ValidationError) as exc_info:
        EcosystemImportRow(name="Eco", theme="Water", colour="green")

    assert describe_validation_errors(exc_info.value) == ["Unknown field 'colour'"]


def test_platform_row_hides_secrets_from_repr():
    row = PlatformImportRow(
        ecosystem_name="Eco", platform_name="P", platform_type="x", password="hunter2"
    )

    assert "hunter2" not in repr(row)


def test_validation_errors_do_not_echo_input():
    with pytest.raises(pydantic.ValidationError) as exc_info:
        UserImportRow(email="no-at-sign-secret", name="X")

    assert all("no-at-sign-secret" not in line for line in describe_validation_errors(exc_info.value))


def test_columns_for_excludes_discriminator():
    assert columns_for(ImportKind.USER_ASSIGNMENTS) == {
        "user_email",
        "ecosystem_name",
        "assigned_by_email",
    }


def test_import_result_messages():
    clean = ImportResult(kind=ImportKind.USERS, imported=3)
    failed = ImportResult(kind=ImportKind.USERS, imported=1, errors=["Row 2: bad"])

    assert clean.to_response() == {
        "success": True,
        "message": "Successfully imported 3 users",
        "imported": 3,
    }
    assert failed.to_response()["errors"] == ["Row 2: bad"]
    assert failed.message == "Import completed with errors. 1 records imported successfully."
