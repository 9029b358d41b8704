"""Unit tests for configuration management."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from ecosystem_vault.config import (
    AppConfig,
    LoggingConfig,
    SecurityConfig,
    TotpConfig,
    get_config,
    reset_config,
    set_config,
)


class TestFromEnvironment:
    def test_values_are_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("VAULT_ENCRYPTION_KEY", "a2V5")
        monkeypatch.setenv("VAULT_AUDIT_QUEUE", "audit-events")

        config = AppConfig.from_env()

        assert config.environment == "production"
        assert config.logging.level == "WARNING"
        assert config.security.encryption_key.get_secret_value() == "a2V5"
        assert config.queue.audit_queue_name == "audit-events"

    def test_missing_key_is_none(self, monkeypatch):
        monkeypatch.delenv("VAULT_ENCRYPTION_KEY", raising=False)
        assert SecurityConfig().encryption_key is None

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        config = AppConfig()

        assert config.totp.interval == 30
        assert config.totp.digits == 6
        assert config.totp.valid_window == 1
        assert config.imports.max_display_errors == 10
        assert config.logging.level == "INFO"


class TestValidation:
    def test_invalid_log_level_is_rejected(self):
        with pytest.raises(PydanticValidationError):
            LoggingConfig(level="CHATTY")

    @pytest.mark.parametrize("digits", [5, 9])
    def test_totp_digits_are_bounded(self, digits):
        with pytest.raises(PydanticValidationError):
            TotpConfig(digits=digits)

    def test_key_is_masked_in_repr(self):
        security = SecurityConfig(encryption_key="c2VjcmV0")
        assert "c2VjcmV0" not in repr(security)


class TestGlobalConfig:
    def test_set_and_reset(self):
        custom = AppConfig(environment="staging")
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
