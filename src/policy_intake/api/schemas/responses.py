"""
Pydantic response schemas for API endpoints.

All API responses conform to these schemas for consistent output.
"""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from policy_intake.artifacts.models import Artifact

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Success wrapper shared by every endpoint."""

    success: bool = True
    message: str
    data: T


class UploadResult(BaseModel):
    """Outcome of an accepted upload."""

    file_name: str = Field(description="Storage key assigned to the upload")
    policy_id: str = Field(description="Sanitized policy ID")
    file_size: int = Field(description="Size in bytes")
    file_size_mb: str = Field(description="Size in megabytes, two decimals")
    upload_time: str = Field(description="ISO 8601 upload time")
    email_sent: bool = Field(description="Whether the email notification went out")
    email_recipients: list[str] = Field(default_factory=list)
    external_api_notified: bool = Field(description="Whether the external API accepted the call")
    download_url: str = Field(description="Public retrieval URL for the policy ID")


class FileInfo(BaseModel):
    """Metadata of one stored artifact."""

    filename: str
    policy_id: str
    file_size: int
    file_size_mb: str
    upload_date: str
    modified_date: str | None = None
    file_type: str
    download_url: str
    file_exists: bool | None = None

    @classmethod
    def from_artifact(
        cls, artifact: Artifact, download_url: str, *, include_exists: bool = False
    ) -> "FileInfo":
        """Build the wire representation of an artifact."""
        return cls(
            filename=artifact.storage_key,
            policy_id=artifact.policy_id,
            file_size=artifact.size_bytes,
            file_size_mb=artifact.size_mb,
            upload_date=iso_timestamp(artifact.created_at),
            modified_date=iso_timestamp(artifact.modified_at) if artifact.modified_at else None,
            file_type=artifact.extension,
            download_url=download_url,
            file_exists=True if include_exists else None,
        )


class FileList(BaseModel):
    """All stored artifacts, newest first."""

    files: list[FileInfo] = Field(default_factory=list)
    count: int = 0
    total_size_mb: str = "0.00"


class DeleteResult(BaseModel):
    """Confirmation of a deleted artifact."""

    filename: str


class UploadStatus(BaseModel):
    """Service and configuration snapshot."""

    service_status: str = "active"
    timestamp: str
    upload_directory: str
    directory_exists: bool
    max_file_size: str
    allowed_types: list[str]
    api_version: str
    channels: dict[str, bool] = Field(default_factory=dict)
    missing_settings: list[str] = Field(default_factory=list)
    notifications: dict[str, int | str] = Field(default_factory=dict)


class SessionUser(BaseModel):
    """Identity carried by a session token."""

    username: str
    role: str = "admin"


class LoginRequest(BaseModel):
    """Credentials for the session login."""

    username: str | None = None
    password: str | None = None


class LoginResult(BaseModel):
    """Issued session token."""

    token: str
    user: SessionUser
    expiresIn: str


class TokenStatus(BaseModel):
    """Validated session token details."""

    user: SessionUser
    tokenValid: bool = True
    expiresAt: str


class CurrentUser(BaseModel):
    """Identity of the authenticated caller."""

    user: SessionUser


def iso_timestamp(value: datetime | None = None) -> str:
    """Return an ISO 8601 UTC timestamp with millisecond precision."""
    value = value or datetime.now(timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
