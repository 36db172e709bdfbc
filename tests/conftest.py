"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest

from policy_intake.artifacts.keys import MillisClock
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.config import MailSettings, Settings
from policy_intake.notifications.channels import BaseChannel
from policy_intake.notifications.models import DeliveryResult

UPLOAD_KEY = "upload-secret"
ADMIN_KEY = "admin-secret"


class FakeClock:
    """Manually advanced wall clock, in seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_channel(channel_type: str, success: bool = True, **result_fields) -> MagicMock:
    """Build a channel double whose deliver() returns a fixed result."""
    channel = MagicMock(spec=BaseChannel)
    channel.channel_type = channel_type
    channel.validate_config.return_value = True
    channel.deliver.side_effect = lambda notification: DeliveryResult(
        success=success,
        channel=channel_type,
        notification_id=notification.notification_id,
        **result_fields,
    )
    return channel


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Provide a controllable clock."""
    return FakeClock()


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Fully configured settings pointing at a temporary upload directory."""
    return Settings(
        upload_api_key=UPLOAD_KEY,
        admin_api_key=ADMIN_KEY,
        upload_dir=temp_dir / "uploads" / "coverzy",
        public_base_url="https://files.example.com/",
        mail=MailSettings(
            host="smtp.example.com",
            port=587,
            username="mailer@example.com",
            password="mail-password",
            from_address="mailer@example.com",
        ),
        recipient_api_url="https://directory.example.com/admins",
        recipient_api_token="directory-token",
        recipient_fallback="fallback@example.com",
        external_api_url="https://policies.example.com/api/pdf",
        external_api_token="external-token",
        jwt_secret="test-jwt-secret",
        jwt_expiry_seconds=3600,
        admin_username="admin",
        admin_password="correct-horse",
    )


@pytest.fixture
def store(settings: Settings) -> ArtifactStore:
    """Artifact store rooted in the temporary upload directory."""
    return ArtifactStore(settings.upload_dir)


@pytest.fixture
def ticking_store(settings: Settings, fake_clock: FakeClock) -> ArtifactStore:
    """Artifact store whose timestamps come from the fake clock."""
    return ArtifactStore(settings.upload_dir, clock=MillisClock(fake_clock))
