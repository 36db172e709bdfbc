"""
Notification data models for Policy Intake.

Defines what the dispatcher hands to each channel and what it reports
back to the upload endpoint.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class NotificationChannelType(Enum):
    """Downstream systems informed of a completed upload."""

    EMAIL = "email"
    EXTERNAL_API = "external_api"


@dataclass
class DeliveryResult:
    """Result of one delivery attempt on one channel."""

    success: bool
    channel: str
    notification_id: str
    error_message: str | None = None
    status_code: int | None = None
    response_body: str | None = None
    delivered_at: str = field(default_factory=lambda: _iso_timestamp())
    # Failure the downstream system signals as a normal condition
    expected: bool = False


class NotificationTemplate(BaseModel):
    """Template for notification messages."""

    name: str = Field(description="Template identifier")
    title_template: str = Field(description="Title template with {{vars}}")
    body_template: str = Field(description="Body template with {{vars}}")
    required_vars: list[str] = Field(default_factory=list, description="Variables that must be provided")

    def render(self, variables: dict[str, Any]) -> tuple[str, str]:
        """
        Render the template with provided variables.

        Returns:
            Tuple of (rendered_title, rendered_body)
        """
        missing = [v for v in self.required_vars if v not in variables]
        if missing:
            raise ValueError(f"Missing required template variables: {missing}")

        return (
            self._render_template(self.title_template, variables),
            self._render_template(self.body_template, variables),
        )

    @staticmethod
    def _render_template(template: str, variables: dict[str, Any]) -> str:
        """Replace {{var}} placeholders with values."""
        result = template
        for key, value in variables.items():
            placeholder = f"{{{{{key}}}}}"
            result = result.replace(placeholder, str(value))
        return result


class UploadNotification(BaseModel):
    """A completed upload, as seen by the notification channels."""

    notification_id: str = Field(
        default_factory=lambda: f"notif-{uuid.uuid4().hex[:16]}",
        description="Unique notification identifier",
    )
    policy_id: str = Field(description="Sanitized policy ID")
    file_name: str = Field(description="Storage key of the uploaded artifact")
    file_path: Path = Field(description="Artifact location on disk")
    mime_type: str | None = Field(default=None, description="Declared MIME type")
    download_url: str = Field(description="Public retrieval URL for the policy ID")
    recipients: list[str] = Field(default_factory=list, description="Email recipients")
    created_at: str = Field(default_factory=lambda: _iso_timestamp())


class NotificationOutcome(BaseModel):
    """Per-upload notification result, returned in the upload response."""

    email_sent: bool = False
    external_api_notified: bool = False
    email_recipients: list[str] = Field(default_factory=list)
    download_url: str


def _iso_timestamp() -> str:
    """Return current ISO8601 timestamp in UTC."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
