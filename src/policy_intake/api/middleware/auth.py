"""
Authentication middleware and access gate dependencies.

Two kinds of credentials are checked:
- shared secrets in the ``x-api-key`` header, one for uploads and one
  for the management endpoints
- session tokens (JWT Bearer) for the ``/api/auth`` routes
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from policy_intake.api.auth import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenPayload,
    decode_token,
    extract_token_from_header,
    secrets_match,
)
from policy_intake.api.dependencies import get_settings
from policy_intake.api.schemas.exceptions import MisconfiguredError, UnauthorizedError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-api-key"

# Values of request.state.session_error
SESSION_MISSING = "missing"
SESSION_EXPIRED = "expired"
SESSION_INVALID = "invalid"


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Middleware that validates session tokens.

    The decoded token (or the reason it was rejected) is stored on
    ``request.state`` and enforced by ``require_session`` on the routes
    that need it. Requests are never rejected here, since exceptions
    raised inside ``BaseHTTPMiddleware`` bypass the exception handlers.
    """

    def __init__(self, app: ASGIApp, *, secret: str | None = None) -> None:
        """
        Initialize session middleware.

        Args:
            app: ASGI application
            secret: JWT signing secret (development key if unset)
        """
        super().__init__(app)
        self._secret = secret

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Decode the Bearer token, if any, and continue."""
        session, error = self._authenticate(request)
        request.state.session = session
        request.state.session_error = error

        if session:
            logger.debug(f"Authenticated session for {session.sub} on {request.url.path}")

        return await call_next(request)

    def _authenticate(self, request: Request) -> tuple[TokenPayload | None, str | None]:
        """
        Decode the session token from the Authorization header.

        Returns:
            Tuple of (payload, error) where error is one of the
            SESSION_* values or None
        """
        token = extract_token_from_header(request.headers.get("authorization"))
        if not token:
            return None, SESSION_MISSING

        try:
            return decode_token(token, self._secret), None
        except ExpiredTokenError as e:
            logger.debug(f"Session token expired: {e}")
            return None, SESSION_EXPIRED
        except InvalidTokenError as e:
            logger.debug(f"Session token rejected: {e}")
            return None, SESSION_INVALID


def _check_shared_secret(request: Request, expected: str | None, *, setting: str, label: str) -> None:
    """
    Enforce one shared secret.

    Raises:
        MisconfiguredError: If the secret is not configured
        UnauthorizedError: If the header is missing or does not match
    """
    if not expected:
        logger.error(
            f"{setting} is not configured, refusing {request.url.path}",
            extra={"event": "secret_not_configured", "setting": setting},
        )
        raise MisconfiguredError(
            message=f"Server configuration error. {label.capitalize()} API key not configured.",
            detail=setting,
        )

    if not secrets_match(request.headers.get(API_KEY_HEADER), expected):
        logger.warning(
            f"Rejected {label} API key on {request.url.path}",
            extra={"event": "api_key_rejected", "path": request.url.path, "scope": label},
        )
        raise UnauthorizedError(
            message=f"Unauthorized. Invalid or missing {label} API key.",
            hint=f"Send the {label} API key in the '{API_KEY_HEADER}' header",
        )


async def require_upload_key(request: Request) -> None:
    """Gate for the ingestion endpoint."""
    _check_shared_secret(
        request, get_settings(request).upload_api_key, setting="X_API_KEY", label="upload"
    )


async def require_admin_key(request: Request) -> None:
    """Gate for the management endpoints."""
    _check_shared_secret(
        request, get_settings(request).admin_api_key, setting="ADMIN_API_KEY", label="admin"
    )


async def get_optional_session(request: Request) -> TokenPayload | None:
    """
    Get the validated session from request state if present.

    Args:
        request: Current request

    Returns:
        TokenPayload or None
    """
    return getattr(request.state, "session", None)


async def require_session(request: Request) -> TokenPayload:
    """
    Get the validated session, raising if it is missing or rejected.

    Raises:
        UnauthorizedError: With distinct messages for missing, expired
            and invalid tokens
    """
    session = await get_optional_session(request)
    if session:
        return session

    error = getattr(request.state, "session_error", SESSION_MISSING)
    if error == SESSION_EXPIRED:
        raise UnauthorizedError(
            message="Token has expired",
            hint="Please login again to get a new token",
        )
    if error == SESSION_INVALID:
        raise UnauthorizedError(
            message="Invalid token",
            hint="Please provide a valid JWT token",
        )
    raise UnauthorizedError(
        message="Access denied. No token provided.",
        hint="Include Authorization header with Bearer token",
    )
