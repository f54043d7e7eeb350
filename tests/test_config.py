"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from cipherdesk.config import Settings, get_settings


class TestDefaults:
    """Tests for default values."""

    def test_defaults(self):
        settings = get_settings()

        assert settings.debounce_ms == 300
        assert settings.debounce_seconds == 0.3
        assert settings.default_aes_key_size == 256
        assert settings.default_aes_mode == "GCM"
        assert settings.default_rsa_key_size == 2048
        assert settings.surface_errors_while_typing is False
        assert not settings.is_production

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()


class TestEnvironmentOverrides:
    """Tests for CIPHERDESK_* environment variables."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CIPHERDESK_DEBOUNCE_MS", "50")
        monkeypatch.setenv("CIPHERDESK_ENVIRONMENT", "production")
        monkeypatch.setenv("CIPHERDESK_SURFACE_ERRORS_WHILE_TYPING", "true")

        settings = get_settings()

        assert settings.debounce_ms == 50
        assert settings.is_production
        assert settings.surface_errors_while_typing is True

    def test_values_are_normalized(self, monkeypatch):
        monkeypatch.setenv("CIPHERDESK_LOG_LEVEL", "debug")
        monkeypatch.setenv("CIPHERDESK_DEFAULT_AES_MODE", "cbc")

        settings = get_settings()

        assert settings.log_level == "DEBUG"
        assert settings.default_aes_mode == "CBC"


class TestValidation:
    """Tests for rejected values."""

    @pytest.mark.parametrize("field,value", [
        ("default_aes_key_size", 100),
        ("default_rsa_key_size", 1024),
        ("default_aes_mode", "ECB"),
        ("debounce_ms", -1),
        ("log_level", "LOUD"),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})
