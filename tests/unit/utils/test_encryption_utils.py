"""
Unit tests for encryption utilities.

Covers the AES-GCM codec: round trips, nonce freshness, tamper detection
and key handling.
"""

import base64

import pytest

from ecosystem_vault.config import SecurityConfig
from ecosystem_vault.exceptions import ConfigurationError, DecryptionError
from ecosystem_vault.utils.encryption_utils import (
    KEY_SIZE,
    NONCE_SIZE,
    SecretCodec,
    generate_key,
)


class TestRoundTrip:
    @pytest.mark.parametrize(
        "plaintext",
        ["hunter2", "", "p@ss, with \"quotes\" and commas", "unicode_üîê_secret", "x" * 4096],
    )
    def test_decrypt_returns_original(self, codec, plaintext):
        assert codec.decrypt(codec.encrypt(plaintext)) == plaintext

    def test_same_plaintext_encrypts_differently(self, codec):
        first = codec.encrypt("same-secret")
        second = codec.encrypt("same-secret")

        assert first != second
        assert codec.decrypt(first) == codec.decrypt(second) == "same-secret"

    def test_ciphertext_is_text_with_nonce_prefix(self, codec):
        ciphertext = codec.encrypt("abc")

        assert isinstance(ciphertext, str)
        blob = base64.urlsafe_b64decode(ciphertext)
        # nonce + 3 bytes of ciphertext + 16 byte tag
        assert len(blob) == NONCE_SIZE + 3 + 16

    def test_ciphertext_does_not_contain_plaintext(self, codec):
        assert "greenvalley" not in codec.encrypt("greenvalley")


class TestOptionalValues:
    @pytest.mark.parametrize("value", [None, ""])
    def test_encrypt_optional_maps_empty_to_none(self, codec, value):
        assert codec.encrypt_optional(value) is None

    @pytest.mark.parametrize("value", [None, ""])
    def test_decrypt_optional_maps_absent_to_empty_string(self, codec, value):
        assert codec.decrypt_optional(value) == ""

    def test_optional_round_trip(self, codec):
        assert codec.decrypt_optional(codec.encrypt_optional("secret")) == "secret"


class TestDecryptionFailures:
    def test_tampered_ciphertext_is_rejected(self, codec):
        blob = bytearray(base64.urlsafe_b64decode(codec.encrypt("hunter2")))
        blob[-1] ^= 0x01
        tampered = base64.urlsafe_b64encode(bytes(blob)).decode("ascii")

        with pytest.raises(DecryptionError) as exc_info:
            codec.decrypt(tampered)
        assert "hunter2" not in str(exc_info.value)

    def test_truncated_ciphertext_is_rejected(self, codec):
        blob = base64.urlsafe_b64decode(codec.encrypt("hunter2"))
        truncated = base64.urlsafe_b64encode(blob[: NONCE_SIZE + 4]).decode("ascii")

        with pytest.raises(DecryptionError):
            codec.decrypt(truncated)

    def test_malformed_base64_is_rejected(self, codec):
        with pytest.raises(DecryptionError):
            codec.decrypt("abc")

    def test_wrong_key_is_rejected(self, codec):
        ciphertext = codec.encrypt("hunter2")
        other = SecretCodec(generate_key())

        with pytest.raises(DecryptionError):
            other.decrypt(ciphertext)


class TestKeyHandling:
    def test_generate_key_decodes_to_key_size(self):
        assert len(base64.urlsafe_b64decode(generate_key())) == KEY_SIZE

    def test_raw_bytes_key_is_accepted(self):
        codec = SecretCodec(b"k" * KEY_SIZE)
        assert codec.decrypt(codec.encrypt("value")) == "value"

    def test_short_key_is_rejected(self):
        with pytest.raises(ConfigurationError):
            SecretCodec(b"short")

    def test_non_base64_key_is_rejected(self):
        with pytest.raises(ConfigurationError):
            SecretCodec("not a key!")

    def test_from_config_requires_key(self):
        with pytest.raises(ConfigurationError):
            SecretCodec.from_config(SecurityConfig(encryption_key=None))

    def test_from_config_uses_configured_key(self, encryption_key, codec):
        configured = SecretCodec.from_config(SecurityConfig(encryption_key=encryption_key))
        assert configured.decrypt(codec.encrypt("shared")) == "shared"

    def test_repr_masks_key(self, encryption_key):
        codec = SecretCodec(encryption_key)
        assert encryption_key not in repr(codec)
        assert "***" in repr(codec)
