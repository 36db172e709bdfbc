"""
Pydantic schemas for API request/response validation.

This module exports all request and response schemas used by the API.
"""

from policy_intake.api.schemas.exceptions import (
    APIException,
    BadRequestError,
    InternalError,
    MisconfiguredError,
    NotFoundError,
    PayloadTooLargeError,
    StorageError,
    UnauthorizedError,
    from_domain_error,
)
from policy_intake.api.schemas.responses import (
    CurrentUser,
    DeleteResult,
    Envelope,
    FileInfo,
    FileList,
    LoginRequest,
    LoginResult,
    SessionUser,
    TokenStatus,
    UploadResult,
    UploadStatus,
    iso_timestamp,
)

__all__ = [
    # Exceptions
    "APIException",
    "BadRequestError",
    "InternalError",
    "MisconfiguredError",
    "NotFoundError",
    "PayloadTooLargeError",
    "StorageError",
    "UnauthorizedError",
    "from_domain_error",
    # Responses
    "CurrentUser",
    "DeleteResult",
    "Envelope",
    "FileInfo",
    "FileList",
    "LoginRequest",
    "LoginResult",
    "SessionUser",
    "TokenStatus",
    "UploadResult",
    "UploadStatus",
    "iso_timestamp",
]
