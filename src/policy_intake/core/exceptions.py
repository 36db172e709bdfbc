"""
Policy Intake Exception Hierarchy.

Defines the domain exceptions raised by the storage, validation and
configuration layers. The API layer translates them into HTTP errors.
"""

from typing import Any


class PolicyIntakeError(Exception):
    """
    Base exception for all Policy Intake errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize a PolicyIntakeError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base


class ConfigurationError(PolicyIntakeError):
    """
    Raised when required configuration is missing or invalid.

    Used for secrets and credentials that must be set server-side
    before an endpoint can be served.
    """

    def __init__(self, message: str, *, setting: str | None = None, **kwargs):
        details = kwargs.pop("details", {}) or {}
        if setting:
            details["setting"] = setting
        super().__init__(message, details=details)
        self.setting = setting


class StorageUnavailableError(PolicyIntakeError):
    """
    Raised when the artifact root cannot be created, read or written.

    Covers disk full, permission and other I/O failures.
    """

    def __init__(self, message: str, *, path: str | None = None, **kwargs):
        details = kwargs.pop("details", {}) or {}
        if path:
            details["path"] = path
        super().__init__(message, details=details)
        self.path = path


class ArtifactNotFoundError(PolicyIntakeError):
    """Raised when a storage key or policy ID has no stored artifact."""

    def __init__(
        self,
        message: str,
        *,
        storage_key: str | None = None,
        policy_id: str | None = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {}) or {}
        if storage_key:
            details["storage_key"] = storage_key
        if policy_id:
            details["policy_id"] = policy_id
        super().__init__(message, details=details)
        self.storage_key = storage_key
        self.policy_id = policy_id


class UploadRejectedError(PolicyIntakeError):
    """
    Raised when an upload fails the content gate.

    Carries a machine-readable hint for the client.
    """

    def __init__(self, message: str, *, hint: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.hint = hint


class UploadTooLargeError(UploadRejectedError):
    """Raised when an uploaded file exceeds the size ceiling."""

    def __init__(self, message: str, *, size_bytes: int, limit_bytes: int, **kwargs):
        details = kwargs.pop("details", {}) or {}
        details["size_bytes"] = size_bytes
        details["limit_bytes"] = limit_bytes
        super().__init__(message, details=details, **kwargs)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes
