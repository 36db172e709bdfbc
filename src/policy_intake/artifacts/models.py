"""
Pydantic models for stored artifacts.
"""

from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field

BYTES_PER_MB = 1024 * 1024


def format_megabytes(size_bytes: int) -> str:
    """Format a byte count as megabytes with two decimals (e.g. "2.00")."""
    return f"{size_bytes / BYTES_PER_MB:.2f}"


class Artifact(BaseModel):
    """A single stored upload and its derived metadata."""

    storage_key: str = Field(description="File name inside the artifact root")
    policy_id: str = Field(description="Sanitized policy ID")
    created_at_millis: int = Field(description="Upload instant in epoch milliseconds")
    extension: str = Field(description="Lower-cased extension including the dot")
    size_bytes: int = Field(ge=0, description="Size in bytes")
    mime_type: str | None = Field(default=None, description="Declared or derived MIME type")
    path: Path = Field(description="Absolute or root-relative filesystem path")
    modified_at: datetime | None = Field(
        default=None, description="Filesystem modification time"
    )

    @property
    def created_at(self) -> datetime:
        """Upload instant as an aware UTC datetime."""
        return datetime.fromtimestamp(self.created_at_millis / 1000, tz=timezone.utc)

    @property
    def size_mb(self) -> str:
        """Size in megabytes, two decimals."""
        return format_megabytes(self.size_bytes)
