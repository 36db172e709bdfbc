"""
Request logging middleware.

Logs every HTTP request with timing information.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from policy_intake.api.middleware.size_limit import get_client_ip

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log HTTP requests with timing information.

    Logs method, path, client IP, request ID, status code and duration,
    and echoes ``X-Request-ID`` and ``X-Process-Time`` on the response.
    Upload bodies and credentials are never logged.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        logger_instance: logging.Logger | None = None,
        skip_paths: set[str] | None = None,
    ) -> None:
        """
        Initialize the logging middleware.

        Args:
            app: ASGI application
            logger_instance: Custom logger instance
            skip_paths: Paths to skip logging for
        """
        super().__init__(app)
        self._logger = logger_instance or logger
        self._skip_paths = skip_paths or {"/api/auth/health"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log details."""
        if request.url.path in self._skip_paths:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = request.url.path
        client_ip = get_client_ip(request)
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]

        self._logger.info(
            f"{method} {path}",
            extra={
                "event": "request_started",
                "method": method,
                "path": path,
                "client_ip": client_ip,
                "request_id": request_id,
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            self._logger.error(
                f"{method} {path} failed",
                extra={
                    "event": "request_failed",
                    "method": method,
                    "path": path,
                    "client_ip": client_ip,
                    "request_id": request_id,
                    "error": str(e),
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        self._logger.info(
            f"{method} {path} -> {response.status_code} ({duration_ms:.0f} ms)",
            extra={
                "event": "request_completed",
                "method": method,
                "path": path,
                "client_ip": client_ip,
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        response.headers["X-Request-ID"] = request_id
        return response
