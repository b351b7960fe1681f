"""
Configuration Tests
===================
"""

import base64

import pytest

from hmacauth_core.config import DEFAULT_PUBLIC_PATHS, HmacAuthConfig, decode_secret
from hmacauth_core.exceptions import ConfigurationError


class TestHmacAuthConfig:
    """Construction-time validation."""

    def test_defaults(self):
        config = HmacAuthConfig(secret_key=b"secret")

        assert config.scheme == "hmacauth"
        assert config.window_seconds == 300
        assert config.max_future_skew_seconds is None
        assert config.replay_key_mode == "concatenated"
        assert config.public_paths == DEFAULT_PUBLIC_PATHS

    def test_secret_hidden_from_repr(self):
        assert "secret" not in repr(HmacAuthConfig(secret_key=b"secret"))

    @pytest.mark.parametrize("kwargs", [
        {"secret_key": b""},
        {"secret_key": b"s", "scheme": ""},
        {"secret_key": b"s", "scheme": "two words"},
        {"secret_key": b"s", "window_seconds": 0},
        {"secret_key": b"s", "max_future_skew_seconds": -1},
        {"secret_key": b"s", "replay_key_mode": "tuple"},
        {"secret_key": "not-bytes"},
    ])
    def test_invalid_values_raise(self, kwargs):
        with pytest.raises(ConfigurationError):
            HmacAuthConfig(**kwargs)

    def test_is_immutable(self):
        config = HmacAuthConfig(secret_key=b"secret")
        with pytest.raises(AttributeError):
            config.window_seconds = 10


class TestFromEnv:
    """Loading from environment variables."""

    def test_reads_all_settings(self, monkeypatch):
        monkeypatch.setenv("HMAC_AUTH_SECRET", "n9waAyo4xDsdVKi1")
        monkeypatch.setenv("HMAC_AUTH_SCHEME", "TestAuthScheme")
        monkeypatch.setenv("HMAC_AUTH_WINDOW_SECONDS", "60")
        monkeypatch.setenv("HMAC_AUTH_MAX_FUTURE_SKEW_SECONDS", "30")
        monkeypatch.setenv("HMAC_AUTH_REPLAY_KEY_MODE", "structured")
        monkeypatch.setenv("HMAC_AUTH_PUBLIC_PATHS", "/health, /status")

        config = HmacAuthConfig.from_env()

        assert config.secret_key == b"n9waAyo4xDsdVKi1"
        assert config.scheme == "TestAuthScheme"
        assert config.window_seconds == 60
        assert config.max_future_skew_seconds == 30
        assert config.replay_key_mode == "structured"
        assert config.public_paths == frozenset({"/health", "/status"})

    def test_missing_secret_is_fatal(self, monkeypatch):
        monkeypatch.delenv("HMAC_AUTH_SECRET", raising=False)
        with pytest.raises(ConfigurationError):
            HmacAuthConfig.from_env()

    def test_bad_window_is_fatal(self, monkeypatch):
        monkeypatch.setenv("HMAC_AUTH_SECRET", "secret")
        monkeypatch.setenv("HMAC_AUTH_WINDOW_SECONDS", "five")
        with pytest.raises(ConfigurationError):
            HmacAuthConfig.from_env()

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("ITEMS_SECRET", "secret")
        assert HmacAuthConfig.from_env(prefix="ITEMS_").secret_key == b"secret"


class TestDecodeSecret:
    """Secret encodings."""

    def test_raw_uses_utf8_bytes_of_base64_text(self):
        """A base64-looking secret is used as text in raw mode."""
        assert decode_secret("YWJj", "raw") == b"YWJj"

    def test_base64_decodes(self):
        assert decode_secret(base64.b64encode(b"\x00\x01key").decode(), "base64") == b"\x00\x01key"

    def test_invalid_base64(self):
        with pytest.raises(ConfigurationError):
            decode_secret("not base64!", "base64")

    def test_unknown_encoding(self):
        with pytest.raises(ConfigurationError):
            decode_secret("secret", "hex")
