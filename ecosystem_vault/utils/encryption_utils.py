"""
Symmetric encryption for secrets stored at rest.

Secrets are sealed with AES-256-GCM. Each call draws a fresh 12-byte nonce
which is prefixed to the ciphertext and tag, and the result is urlsafe base64
text so it fits a plain TEXT column on every backend.
"""

import base64
import binascii
import os
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import SecurityConfig, get_config
from ..exceptions import ConfigurationError, DecryptionError

NONCE_SIZE = 12
KEY_SIZE = 32
TAG_SIZE = 16


def generate_key() -> str:
    """Return a new random key, urlsafe base64 encoded, for VAULT_ENCRYPTION_KEY."""
    return base64.urlsafe_b64encode(AESGCM.generate_key(bit_length=KEY_SIZE * 8)).decode("ascii")


def _decode_key(encoded: str) -> bytes:
    try:
        key = base64.urlsafe_b64decode(encoded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise ConfigurationError(
            "Encryption key is not valid base64", operation="load_encryption_key"
        ) from e
    if len(key) != KEY_SIZE:
        raise ConfigurationError(
            f"Encryption key must decode to {KEY_SIZE} bytes",
            operation="load_encryption_key",
            key_length=len(key),
        )
    return key


class SecretCodec:
    """
    Reversible encryption of secret strings with one process-wide key.

    Empty or missing secrets are represented as ``None`` ("no ciphertext")
    rather than as an encrypted empty string.
    """

    def __init__(self, key: Union[bytes, str]):
        if isinstance(key, str):
            key = _decode_key(key)
        if len(key) != KEY_SIZE:
            raise ConfigurationError(
                f"Encryption key must be {KEY_SIZE} bytes",
                operation="load_encryption_key",
                key_length=len(key),
            )
        self._aead = AESGCM(key)

    @classmethod
    def from_config(cls, security: Optional[SecurityConfig] = None) -> "SecretCodec":
        """Build a codec from SecurityConfig (defaults to the global configuration)."""
        security = security or get_config().security
        if security.encryption_key is None:
            raise ConfigurationError(
                "No encryption key configured; set VAULT_ENCRYPTION_KEY",
                operation="load_encryption_key",
            )
        return cls(security.encryption_key.get_secret_value())

    def __repr__(self) -> str:
        return "SecretCodec(key='***')"

    def encrypt(self, plaintext: str) -> str:
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        return base64.urlsafe_b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a value produced by encrypt().

        Raises:
            DecryptionError: If the payload is malformed or fails authentication
        """
        try:
            blob = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError, AttributeError) as e:
            raise DecryptionError("Stored secret is not valid base64") from e

        if len(blob) < NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Stored secret is truncated", payload_length=len(blob))

        nonce, sealed = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
        try:
            plaintext = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag as e:
            raise DecryptionError("Stored secret failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError("Stored secret is not valid UTF-8") from e

    def encrypt_optional(self, plaintext: Optional[str]) -> Optional[str]:
        """Encrypt a value, mapping None and "" to no ciphertext."""
        if not plaintext:
            return None
        return self.encrypt(plaintext)

    def decrypt_optional(self, ciphertext: Optional[str]) -> str:
        """Decrypt a value, treating absent ciphertext as the empty string."""
        if not ciphertext:
            return ""
        return self.decrypt(ciphertext)
