"""
Service configuration.

All settings are assembled once at startup from environment variables
and passed by reference into each component constructor.
"""

import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# Default upload ceiling (10 MiB)
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024

DEFAULT_FALLBACK_RECIPIENT = "intern.tech@logilinkscs.com"

_SIZE_MULTIPLIERS = {
    "K": 1024,
    "M": 1024 * 1024,
    "G": 1024 * 1024 * 1024,
}

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_size(value: str | None, default: int) -> int:
    """
    Parse a byte size with an optional K/M/G suffix.

    Args:
        value: Raw value such as "10M", "500K" or "1048576"
        default: Value returned when unset or invalid

    Returns:
        Size in bytes
    """
    if not value:
        return default

    try:
        normalized = value.strip().upper()
        for suffix, multiplier in _SIZE_MULTIPLIERS.items():
            if normalized.endswith(suffix):
                return int(normalized[:-1]) * multiplier
        return int(normalized)
    except (ValueError, AttributeError):
        logger.warning(f"Invalid size value: {value}, using default {default}")
        return default


def parse_duration(value: str | None, default: int) -> int:
    """
    Parse a duration such as "24h", "30m", "7d" or "3600" into seconds.

    Returns ``default`` when the value is unset or malformed.
    """
    if not value:
        return default
    match = _DURATION_PATTERN.match(value)
    if not match:
        logger.warning(f"Invalid duration value: {value}, using default {default}s")
        return default
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit.lower()]


def parse_int(value: str | None, default: int) -> int:
    """Parse an integer, falling back to ``default`` when unset or malformed."""
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Invalid integer value: {value}, using default {default}")
        return default


def parse_float(value: str | None, default: float) -> float:
    """Parse a number, falling back to ``default`` when unset or malformed."""
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Invalid number value: {value}, using default {default}")
        return default


def _env(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


class MailSettings(BaseModel):
    """SMTP transport settings."""

    host: str | None = None
    port: int = 587
    encryption: str = "tls"  # "tls", "ssl" or "none"
    username: str | None = None
    password: str | None = None
    from_address: str | None = None
    from_name: str = "LEXSHIP"

    @field_validator("encryption", mode="before")
    @classmethod
    def normalize_encryption(cls, v):
        """Lower-case the encryption mode."""
        return (v or "tls").lower()

    def is_configured(self) -> bool:
        """Return True when host and credentials are all present."""
        return bool(self.host and self.username and self.password)


class Settings(BaseModel):
    """Top-level configuration for the upload service."""

    # Shared secrets (Access Gate)
    upload_api_key: str | None = Field(default=None, description="Upload endpoint secret")
    admin_api_key: str | None = Field(default=None, description="Admin endpoint secret")

    # Storage
    upload_dir: Path = Field(default=Path("uploads/coverzy"))
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)
    public_base_url: str = Field(default="http://localhost:3000")

    # Notifications
    mail: MailSettings = Field(default_factory=MailSettings)
    recipient_api_url: str | None = None
    recipient_api_token: str | None = None
    recipient_fallback: str = DEFAULT_FALLBACK_RECIPIENT
    recipient_cache_ttl_seconds: float = Field(default=300.0, gt=0)
    external_api_url: str | None = None
    external_api_token: str | None = None
    notify_timeout_seconds: float = Field(default=10.0, gt=0)

    # Session layer
    jwt_secret: str | None = None
    jwt_expiry_seconds: int = Field(default=24 * 3600, gt=0)
    admin_username: str | None = None
    admin_password: str | None = None

    # HTTP
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Public URLs are joined with absolute paths."""
        return v.rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Returns:
            Settings instance
        """
        mail = MailSettings(
            host=_env("MAIL_HOST"),
            port=parse_int(_env("MAIL_PORT"), 587),
            encryption=_env("MAIL_ENCRYPTION") or "tls",
            username=_env("MAIL_USERNAME"),
            password=_env("MAIL_PASSWORD"),
            from_address=_env("MAIL_FROM_ADDRESS"),
            from_name=_env("MAIL_FROM_NAME") or "LEXSHIP",
        )

        cors = _env("CORS_ORIGINS")
        cors_origins = [o.strip() for o in cors.split(",") if o.strip()] if cors else ["*"]

        return cls(
            upload_api_key=_env("X_API_KEY"),
            admin_api_key=_env("ADMIN_API_KEY"),
            upload_dir=Path(_env("UPLOAD_DIR") or "uploads/coverzy"),
            max_upload_bytes=parse_size(_env("MAX_UPLOAD_SIZE"), DEFAULT_MAX_UPLOAD_BYTES),
            public_base_url=_env("PUBLIC_BASE_URL") or "http://localhost:3000",
            mail=mail,
            recipient_api_url=_env("EMAIL_LEX_API"),
            recipient_api_token=_env("BEARER_TOKEN"),
            recipient_fallback=_env("RECIPIENT_FALLBACK_EMAIL") or DEFAULT_FALLBACK_RECIPIENT,
            recipient_cache_ttl_seconds=parse_float(_env("RECIPIENT_CACHE_TTL"), 300.0),
            external_api_url=_env("PDF_UPLOAD_LEX_API"),
            external_api_token=_env("PDF_UPLOAD_LEX_API_KEY"),
            notify_timeout_seconds=parse_float(_env("NOTIFY_TIMEOUT"), 10.0),
            jwt_secret=_env("JWT_SECRET"),
            jwt_expiry_seconds=parse_duration(_env("JWT_EXPIRY"), 24 * 3600),
            admin_username=_env("ADMIN_USERNAME"),
            admin_password=_env("ADMIN_PASSWORD"),
            cors_origins=cors_origins,
            log_level=(_env("LOG_LEVEL") or "INFO").upper(),
        )

    def download_url(self, policy_id: str) -> str:
        """Public retrieval URL for the latest artifact of a policy ID."""
        return f"{self.public_base_url}/api/download-pdf/{policy_id}"

    def missing_settings(self) -> list[str]:
        """
        List environment variables that are unset but affect behavior.

        Used for the startup warning and the status endpoint.
        """
        missing = []
        if not self.upload_api_key:
            missing.append("X_API_KEY")
        if not self.admin_api_key:
            missing.append("ADMIN_API_KEY")
        if not self.mail.is_configured():
            missing.append("MAIL_HOST/MAIL_USERNAME/MAIL_PASSWORD")
        if not (self.recipient_api_url and self.recipient_api_token):
            missing.append("EMAIL_LEX_API/BEARER_TOKEN")
        if not self.external_api_url:
            missing.append("PDF_UPLOAD_LEX_API")
        if not self.jwt_secret:
            missing.append("JWT_SECRET")
        return missing
