"""
Exception classes for API error handling.
"""

from policy_intake.core.exceptions import (
    ArtifactNotFoundError,
    ConfigurationError,
    PolicyIntakeError,
    StorageUnavailableError,
    UploadRejectedError,
    UploadTooLargeError,
)


class APIException(Exception):
    """
    Base exception for API errors.

    All API exceptions should inherit from this class to ensure
    consistent error response formatting.
    """

    status_code: int = 500
    error_type: str = "api_error"
    message: str = "An error occurred"
    detail: str | None = None
    hint: str | None = None

    def __init__(
        self,
        message: str | None = None,
        detail: str | None = None,
        status_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        self.message = message or self.message
        self.detail = detail
        self.hint = hint
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_content(self) -> dict[str, object]:
        """Error envelope returned to the client."""
        return {
            "success": False,
            "error": {
                "type": self.error_type,
                "message": self.message,
                "detail": self.detail,
                "hint": self.hint,
            },
        }


class BadRequestError(APIException):
    """Exception raised when a request is missing or has invalid input."""

    status_code = 400
    error_type = "bad_request"
    message = "Bad request"


class UnauthorizedError(APIException):
    """Exception raised when a shared secret or session token is rejected."""

    status_code = 401
    error_type = "unauthorized"
    message = "Unauthorized"


class NotFoundError(APIException):
    """Exception raised when a requested resource is not found."""

    status_code = 404
    error_type = "not_found"
    message = "Resource not found"


class PayloadTooLargeError(APIException):
    """Exception raised when an upload exceeds the size ceiling."""

    status_code = 413
    error_type = "payload_too_large"
    message = "Request body exceeds maximum allowed size"


class MisconfiguredError(APIException):
    """Exception raised when required server configuration is missing."""

    status_code = 500
    error_type = "configuration_error"
    message = "Server configuration error"


class StorageError(APIException):
    """Exception raised when the artifact root cannot be used."""

    status_code = 500
    error_type = "storage_unavailable"
    message = "Storage unavailable"


class InternalError(APIException):
    """Exception raised for internal server errors."""

    status_code = 500
    error_type = "internal_error"
    message = "Internal server error"


def from_domain_error(exc: PolicyIntakeError) -> APIException:
    """
    Translate a domain exception into its API counterpart.

    Args:
        exc: Exception raised by the storage, validation or config layer

    Returns:
        APIException carrying the HTTP status and error type
    """
    if isinstance(exc, UploadTooLargeError):
        return PayloadTooLargeError(exc.message, hint=exc.hint)
    if isinstance(exc, UploadRejectedError):
        return BadRequestError(exc.message, hint=exc.hint)
    if isinstance(exc, ArtifactNotFoundError):
        return NotFoundError(exc.message, detail=exc.storage_key or exc.policy_id)
    if isinstance(exc, ConfigurationError):
        return MisconfiguredError(exc.message, detail=exc.setting)
    if isinstance(exc, StorageUnavailableError):
        return StorageError(exc.message)
    return InternalError(exc.message)
