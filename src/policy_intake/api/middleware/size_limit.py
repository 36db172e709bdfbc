"""
Request size limit middleware.

Rejects request bodies that cannot possibly hold an acceptable upload
before any of the body is read.
"""

import logging
from typing import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from policy_intake.api.schemas.exceptions import PayloadTooLargeError
from policy_intake.artifacts.models import BYTES_PER_MB
from policy_intake.config import DEFAULT_MAX_UPLOAD_BYTES

logger = logging.getLogger(__name__)

# Multipart boundaries, headers and the policy_id field on top of the file
MULTIPART_ENVELOPE_ALLOWANCE = 64 * 1024


def format_size(size_bytes: int) -> str:
    """
    Format byte size as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "10.0 MB")
    """
    for unit, divisor in [("GB", 1024**3), ("MB", 1024**2), ("KB", 1024)]:
        if size_bytes >= divisor:
            return f"{size_bytes / divisor:.1f} {unit}"
    return f"{size_bytes} bytes"


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks forwarded headers for proxied requests.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


class SizeLimitMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce the request body ceiling.

    The ceiling is the upload limit plus a multipart envelope allowance;
    the upload route measures the file itself and applies the exact
    limit. Requests without a ``Content-Length`` pass through.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_upload_size: int = DEFAULT_MAX_UPLOAD_BYTES,
        envelope_allowance: int = MULTIPART_ENVELOPE_ALLOWANCE,
    ) -> None:
        """
        Initialize the size limit middleware.

        Args:
            app: ASGI application
            max_upload_size: Largest accepted file in bytes
            envelope_allowance: Extra bytes tolerated for multipart framing
        """
        super().__init__(app)
        self._max_upload_size = max_upload_size
        self._max_request_size = max_upload_size + envelope_allowance

        logger.info(
            "SizeLimitMiddleware initialized",
            extra={
                "max_request_size": self._max_request_size,
                "max_request_size_formatted": format_size(self._max_request_size),
            },
        )

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """
        Process request and enforce the size limit.

        Returns:
            Response from downstream handlers or a 413 error
        """
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                request_size = int(content_length)
            except ValueError:
                # Malformed header, the server will reject the body itself
                request_size = 0

            if request_size > self._max_request_size:
                logger.warning(
                    "Request size limit exceeded",
                    extra={
                        "event": "request_size_exceeded",
                        "path": request.url.path,
                        "method": request.method,
                        "client_ip": get_client_ip(request),
                        "content_length": request_size,
                        "max_size": self._max_request_size,
                    },
                )
                error = PayloadTooLargeError(
                    message=f"File too large. Maximum size is {self._max_upload_size / BYTES_PER_MB:g}MB.",
                    detail=(
                        f"Request size ({format_size(request_size)}) "
                        f"exceeds maximum allowed ({format_size(self._max_request_size)})"
                    ),
                )
                return JSONResponse(status_code=error.status_code, content=error.to_content())

        return await call_next(request)
