"""
Session routes for the admin UI.

Login against the configured admin credentials and inspect the
resulting JWT session.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from policy_intake.api.auth import TokenPayload, create_access_token, secrets_match
from policy_intake.api.dependencies import get_settings
from policy_intake.api.middleware.auth import require_session
from policy_intake.api.schemas.exceptions import BadRequestError, UnauthorizedError
from policy_intake.api.schemas.responses import (
    CurrentUser,
    Envelope,
    LoginRequest,
    LoginResult,
    SessionUser,
    TokenStatus,
    iso_timestamp,
)
from policy_intake.config import Settings
from policy_intake.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

router = APIRouter()


def format_expiry(seconds: int) -> str:
    """Render a token lifetime the way it is configured, e.g. "24h"."""
    for suffix, unit in (("h", 3600), ("m", 60)):
        if seconds % unit == 0:
            return f"{seconds // unit}{suffix}"
    return f"{seconds}s"


def _session_user(payload: TokenPayload) -> SessionUser:
    return SessionUser(username=payload.sub, role=payload.role)


@router.post("/login", response_model=Envelope[LoginResult])
async def login(
    credentials: LoginRequest,
    settings: Settings = Depends(get_settings),
) -> Envelope[LoginResult]:
    """
    Exchange the admin username and password for a session token.

    Raises:
        BadRequestError: If username or password is missing
        UnauthorizedError: If the credentials do not match
        ConfigurationError: If admin credentials are not configured
    """
    if not credentials.username or not credentials.password:
        raise BadRequestError(
            "Username and password are required",
            hint="Provide both username and password in request body",
        )

    if not settings.admin_username or not settings.admin_password:
        logger.error(
            "Login attempted but admin credentials are not configured",
            extra={"event": "login_misconfigured"},
        )
        raise ConfigurationError(
            "Admin credentials not configured",
            setting="ADMIN_USERNAME/ADMIN_PASSWORD",
        )

    # Evaluate both comparisons so timing does not reveal which one failed
    username_ok = secrets_match(credentials.username, settings.admin_username)
    password_ok = secrets_match(credentials.password, settings.admin_password)
    if not (username_ok and password_ok):
        logger.warning("Failed login attempt", extra={"event": "login_failed"})
        raise UnauthorizedError("Invalid credentials", hint="Check your username and password")

    token = create_access_token(
        credentials.username,
        expiration_seconds=settings.jwt_expiry_seconds,
        secret=settings.jwt_secret,
    )
    logger.info(f"Login successful for {credentials.username}", extra={"event": "login_succeeded"})

    return Envelope[LoginResult](
        message="Login successful",
        data=LoginResult(
            token=token,
            user=SessionUser(username=credentials.username),
            expiresIn=format_expiry(settings.jwt_expiry_seconds),
        ),
    )


@router.get("/verify-token", response_model=Envelope[TokenStatus])
async def verify_token(session: TokenPayload = Depends(require_session)) -> Envelope[TokenStatus]:
    """Check a session token and report when it expires."""
    expires_at = datetime.fromtimestamp(session.exp, tz=timezone.utc)
    return Envelope[TokenStatus](
        message="Token is valid",
        data=TokenStatus(user=_session_user(session), expiresAt=iso_timestamp(expires_at)),
    )


@router.get("/me", response_model=Envelope[CurrentUser])
async def current_user(session: TokenPayload = Depends(require_session)) -> Envelope[CurrentUser]:
    """Return the identity of the authenticated session."""
    return Envelope[CurrentUser](
        message="User information retrieved successfully",
        data=CurrentUser(user=_session_user(session)),
    )


@router.get("/health")
async def auth_health() -> dict[str, object]:
    """Liveness of the session routes."""
    return {
        "success": True,
        "message": "Authentication service is running",
        "timestamp": iso_timestamp(),
    }
