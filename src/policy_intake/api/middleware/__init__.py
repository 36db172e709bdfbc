"""
Middleware for the Policy Intake API.

This module contains all middleware components for request/response processing.
"""

from policy_intake.api.middleware.auth import (
    SessionMiddleware,
    get_optional_session,
    require_admin_key,
    require_session,
    require_upload_key,
)
from policy_intake.api.middleware.cors import add_cors_middleware
from policy_intake.api.middleware.logging import RequestLoggingMiddleware
from policy_intake.api.middleware.size_limit import SizeLimitMiddleware, format_size, get_client_ip

__all__ = [
    "SessionMiddleware",
    "get_optional_session",
    "require_admin_key",
    "require_session",
    "require_upload_key",
    "add_cors_middleware",
    "RequestLoggingMiddleware",
    "SizeLimitMiddleware",
    "format_size",
    "get_client_ip",
]
