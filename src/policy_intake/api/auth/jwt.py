"""
JWT session tokens for the Policy Intake API.

HS256 tokens are created at login and validated on protected session
routes. Shared-secret comparison for the upload and admin keys lives
here too so every credential check is constant-time.
"""

import base64
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

logger = logging.getLogger(__name__)

# Default JWT expiration time (24 hours)
DEFAULT_EXPIRATION_SECONDS = int(timedelta(hours=24).total_seconds())

# JWT algorithm
JWT_ALGORITHM = "HS256"

DEFAULT_ROLE = "admin"

_DEV_SECRET = "change-this-secret-in-production"


class TokenError(Exception):
    """Base exception for token-related errors."""

    pass


class InvalidTokenError(TokenError):
    """Exception raised when a token is invalid or malformed."""

    pass


class ExpiredTokenError(TokenError):
    """Exception raised when a token has expired."""

    pass


@dataclass
class TokenPayload:
    """
    JWT token payload data.

    Attributes:
        sub: Subject (admin username)
        exp: Expiration timestamp (Unix epoch)
        iat: Issued at timestamp (Unix epoch)
        role: Role granted by the token
    """

    sub: str
    exp: int
    iat: int
    role: str = DEFAULT_ROLE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from dictionary."""
        return cls(
            sub=str(data["sub"]),
            exp=int(data["exp"]),
            iat=int(data.get("iat", 0)),
            role=str(data.get("role") or DEFAULT_ROLE),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert TokenPayload to dictionary."""
        return {
            "sub": self.sub,
            "exp": self.exp,
            "iat": self.iat,
            "role": self.role,
        }


def resolve_secret(secret: str | None) -> str:
    """
    Return the signing secret, falling back to an insecure development key.

    Args:
        secret: Configured JWT_SECRET value, possibly unset

    Returns:
        Secret used to sign and verify tokens
    """
    # Unset JWT_SECRET is reported once at startup
    return secret or _DEV_SECRET


def _base64url_encode(data: bytes) -> str:
    """Encode bytes to base64url format."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _base64url_decode(data: str) -> bytes:
    """Decode base64url string to bytes."""
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def _base64url_encode_json(data: dict[str, Any]) -> str:
    json_bytes = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return _base64url_encode(json_bytes)


def _base64url_decode_json(data: str) -> dict[str, Any]:
    return json.loads(_base64url_decode(data).decode("utf-8"))


def _sign_hmac(data: str, secret: str) -> str:
    """Create HMAC-SHA256 signature."""
    digest = hmac.new(secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256).digest()
    return _base64url_encode(digest)


def _verify_hmac(data: str, signature: str, secret: str) -> bool:
    """Verify HMAC-SHA256 signature."""
    return hmac.compare_digest(_sign_hmac(data, secret), signature)


def create_access_token(
    subject: str,
    expiration_seconds: int = DEFAULT_EXPIRATION_SECONDS,
    role: str = DEFAULT_ROLE,
    secret: str | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        subject: Admin username (the 'sub' claim)
        expiration_seconds: Token lifetime in seconds (default: 24 hours)
        role: Role claim
        secret: Signing secret (development key if unset)

    Returns:
        JWT token string

    Raises:
        ValueError: If subject is empty
    """
    if not subject:
        raise ValueError("Subject cannot be empty")

    secret = resolve_secret(secret)

    now = int(time.time())
    payload = TokenPayload(sub=subject, exp=now + expiration_seconds, iat=now, role=role)

    header_b64 = _base64url_encode_json({"alg": JWT_ALGORITHM, "typ": "JWT"})
    payload_b64 = _base64url_encode_json(payload.to_dict())
    signing_input = f"{header_b64}.{payload_b64}"

    logger.debug(f"Created JWT token for subject={subject}, expires={payload.exp}")
    return f"{signing_input}.{_sign_hmac(signing_input, secret)}"


def decode_token(token: str, secret: str | None = None) -> TokenPayload:
    """
    Decode and validate a session token.

    Args:
        token: JWT token string
        secret: Signing secret (development key if unset)

    Returns:
        TokenPayload object

    Raises:
        InvalidTokenError: If token is malformed or signature is invalid
        ExpiredTokenError: If token has expired
    """
    if not token:
        raise InvalidTokenError("Token cannot be empty")

    secret = resolve_secret(secret)

    parts = token.split(".")
    if len(parts) != 3:
        raise InvalidTokenError("Invalid token format")

    header_b64, payload_b64, signature = parts
    signing_input = f"{header_b64}.{payload_b64}"
    if not _verify_hmac(signing_input, signature, secret):
        raise InvalidTokenError("Invalid token signature")

    try:
        payload_data = _base64url_decode_json(payload_b64)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidTokenError(f"Cannot decode token payload: {e}") from e

    exp = payload_data.get("exp")
    if exp is None:
        raise InvalidTokenError("Token missing expiration claim")
    if int(time.time()) >= exp:
        raise ExpiredTokenError(f"Token expired at {exp}")
    if "sub" not in payload_data:
        raise InvalidTokenError("Token missing subject claim")

    return TokenPayload.from_dict(payload_data)


def validate_token(token: str, secret: str | None = None) -> tuple[bool, TokenPayload | None, str | None]:
    """
    Validate a session token and return the result.

    Returns:
        Tuple of (is_valid, payload, error_message)
    """
    try:
        return True, decode_token(token, secret), None
    except TokenError as e:
        return False, None, str(e)


def secrets_match(provided: str | None, expected: str | None) -> bool:
    """
    Compare a caller-supplied secret with the configured one in constant time.

    Returns False when either side is missing.
    """
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def extract_token_from_header(auth_header: str | None) -> str | None:
    """
    Extract JWT token from Authorization header.

    Args:
        auth_header: The Authorization header value

    Returns:
        The token string or None if invalid format
    """
    if not auth_header:
        return None

    parts = auth_header.split()
    if len(parts) != 2:
        return None

    scheme, token = parts
    if scheme.lower() != "bearer":
        return None

    return token
