"""
Policy Intake Core Module.

Provides the exception hierarchy shared by all components.
"""

__all__ = [
    "PolicyIntakeError",
    "ConfigurationError",
    "StorageUnavailableError",
    "ArtifactNotFoundError",
    "UploadRejectedError",
    "UploadTooLargeError",
]

from policy_intake.core.exceptions import (
    ArtifactNotFoundError,
    ConfigurationError,
    PolicyIntakeError,
    StorageUnavailableError,
    UploadRejectedError,
    UploadTooLargeError,
)
