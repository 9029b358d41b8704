"""Unit tests for JSON helpers used by the audit log sink."""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import SecretStr

from ecosystem_vault.constants import REDACTED, CredentialField
from ecosystem_vault.schemas import ExternalProfile
from ecosystem_vault.utils.json_utils import dumps, loads


def test_dumps_handles_rich_types():
    payload = {
        "when": datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        "amount": Decimal("1.5"),
        "field": CredentialField.PASSWORD,
        "tags": {"b", "a"},
        "profile": ExternalProfile(id="p-1", name="Alpha"),
        "id": UUID("12345678-1234-5678-1234-567812345678"),
    }

    assert loads(dumps(payload)) == {
        "when": "2026-01-02T03:04:05+00:00",
        "amount": 1.5,
        "field": "password",
        "tags": ["a", "b"],
        "profile": {"id": "p-1", "name": "Alpha"},
        "id": "12345678-1234-5678-1234-567812345678",
    }


def test_key_material_is_masked():
    encoded = dumps({"key": SecretStr("top-secret"), "raw": b"\x00\x01"})

    assert "top-secret" not in encoded
    assert loads(encoded) == {"key": REDACTED, "raw": REDACTED}


def test_exceptions_and_unknown_objects_fall_back_to_text():
    class Opaque:
        def __str__(self):
            return "opaque"

    decoded = loads(dumps({"value": Opaque(), "error": KeyError("x")}))

    assert decoded == {"value": "opaque", "error": "KeyError: 'x'"}


def test_dumps_is_compact():
    assert dumps({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'
