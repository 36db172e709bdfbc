"""
Authentication module for the Policy Intake API.

Provides session token generation/validation and shared-secret checks.
"""

from policy_intake.api.auth.jwt import (
    DEFAULT_ROLE,
    ExpiredTokenError,
    InvalidTokenError,
    TokenError,
    TokenPayload,
    create_access_token,
    decode_token,
    extract_token_from_header,
    resolve_secret,
    secrets_match,
    validate_token,
)

__all__ = [
    "DEFAULT_ROLE",
    "ExpiredTokenError",
    "InvalidTokenError",
    "TokenError",
    "TokenPayload",
    "create_access_token",
    "decode_token",
    "extract_token_from_header",
    "resolve_secret",
    "secrets_match",
    "validate_token",
]
