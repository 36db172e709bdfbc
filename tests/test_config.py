"""Tests for service configuration."""

from pathlib import Path
from unittest.mock import patch

import pytest

from policy_intake.config import (
    DEFAULT_FALLBACK_RECIPIENT,
    DEFAULT_MAX_UPLOAD_BYTES,
    Settings,
    parse_duration,
    parse_float,
    parse_int,
    parse_size,
)


class TestParsers:
    """Tests for size and duration parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("10M", 10 * 1024 * 1024), ("500k", 500 * 1024), ("1G", 1024**3), ("2048", 2048)],
    )
    def test_parse_size(self, value, expected):
        """Sizes accept K/M/G suffixes and plain bytes."""
        assert parse_size(value, 1) == expected

    def test_parse_size_invalid(self):
        """Invalid sizes fall back to the default."""
        assert parse_size("lots", 7) == 7
        assert parse_size(None, 7) == 7

    @pytest.mark.parametrize(
        "value,expected",
        [("24h", 86400), ("30m", 1800), ("7d", 604800), ("45s", 45), ("3600", 3600)],
    )
    def test_parse_duration(self, value, expected):
        """Durations accept s/m/h/d suffixes and plain seconds."""
        assert parse_duration(value, 1) == expected

    def test_parse_duration_invalid(self):
        """Invalid durations fall back to the default."""
        assert parse_duration("forever", 99) == 99

    def test_parse_numbers(self):
        """Plain integers and decimals are accepted."""
        assert parse_int("2525", 587) == 2525
        assert parse_float("2.5", 10.0) == 2.5

    def test_parse_numbers_invalid(self, caplog):
        """Malformed numbers warn and fall back to the default."""
        with caplog.at_level("WARNING", logger="policy_intake.config"):
            assert parse_int("smtp", 587) == 587
            assert parse_float("ten", 10.0) == 10.0
        assert parse_int(None, 587) == 587
        assert len(caplog.records) == 2


class TestSettings:
    """Tests for Settings."""

    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        """An empty environment yields safe defaults."""
        settings = Settings.from_env()

        assert settings.upload_api_key is None
        assert settings.admin_api_key is None
        assert settings.upload_dir == Path("uploads/coverzy")
        assert settings.max_upload_bytes == DEFAULT_MAX_UPLOAD_BYTES
        assert settings.recipient_fallback == DEFAULT_FALLBACK_RECIPIENT
        assert settings.recipient_cache_ttl_seconds == 300
        assert settings.mail.port == 587
        assert settings.mail.from_name == "LEXSHIP"
        assert settings.cors_origins == ["*"]
        assert settings.jwt_expiry_seconds == 86400

    @patch.dict(
        "os.environ",
        {
            "X_API_KEY": "up",
            "ADMIN_API_KEY": "adm",
            "UPLOAD_DIR": "/srv/uploads",
            "PUBLIC_BASE_URL": "https://upload.example.com/",
            "MAX_UPLOAD_SIZE": "5M",
            "MAIL_HOST": "smtp.example.com",
            "MAIL_PORT": "465",
            "MAIL_ENCRYPTION": "SSL",
            "EMAIL_LEX_API": "https://dir.example.com",
            "BEARER_TOKEN": "tok",
            "PDF_UPLOAD_LEX_API": "https://api.example.com",
            "JWT_EXPIRY": "30m",
            "CORS_ORIGINS": "https://a.example.com, https://b.example.com",
            "LOG_LEVEL": "debug",
        },
        clear=True,
    )
    def test_from_env(self):
        """Environment variables map onto settings fields."""
        settings = Settings.from_env()

        assert settings.upload_api_key == "up"
        assert settings.admin_api_key == "adm"
        assert settings.upload_dir == Path("/srv/uploads")
        assert settings.public_base_url == "https://upload.example.com"
        assert settings.max_upload_bytes == 5 * 1024 * 1024
        assert settings.mail.port == 465
        assert settings.mail.encryption == "ssl"
        assert settings.recipient_api_url == "https://dir.example.com"
        assert settings.external_api_url == "https://api.example.com"
        assert settings.jwt_expiry_seconds == 1800
        assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]
        assert settings.log_level == "DEBUG"

    @patch.dict(
        "os.environ",
        {"MAIL_PORT": "five-eight-seven", "RECIPIENT_CACHE_TTL": "5min", "NOTIFY_TIMEOUT": "slow"},
        clear=True,
    )
    def test_malformed_numbers_use_defaults(self):
        """Bad numeric settings do not stop startup."""
        settings = Settings.from_env()

        assert settings.mail.port == 587
        assert settings.recipient_cache_ttl_seconds == 300
        assert settings.notify_timeout_seconds == 10

    def test_download_url(self):
        """Retrieval URLs join the public base and the policy ID."""
        settings = Settings(public_base_url="https://files.example.com/")
        assert settings.download_url("AB12") == "https://files.example.com/api/download-pdf/AB12"

    def test_missing_settings(self):
        """Unset integrations are listed by environment name."""
        missing = Settings().missing_settings()
        assert "X_API_KEY" in missing
        assert "ADMIN_API_KEY" in missing
        assert "PDF_UPLOAD_LEX_API" in missing

    def test_missing_settings_complete(self, settings):
        """A fully configured service reports nothing missing."""
        assert settings.missing_settings() == []
