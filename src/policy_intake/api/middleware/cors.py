"""
CORS (Cross-Origin Resource Sharing) middleware configuration.

The upload page and the admin UI are served from other origins, so
browsers need CORS headers on every API response.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

DEFAULT_ALLOW_METHODS: list[str] = [
    "GET",
    "POST",
    "PUT",
    "DELETE",
    "OPTIONS",
]

DEFAULT_ALLOW_HEADERS: list[str] = [
    "accept",
    "content-type",
    "authorization",
    "x-api-key",
    "x-request-id",
]

EXPOSE_HEADERS: list[str] = [
    "content-disposition",
    "x-process-time",
    "x-request-id",
]


def add_cors_middleware(
    app: FastAPI,
    *,
    allow_origins: list[str] | None = None,
    allow_methods: list[str] | None = None,
    allow_headers: list[str] | None = None,
    max_age: int = 600,
) -> None:
    """
    Add CORS middleware to the FastAPI application.

    Args:
        app: FastAPI application instance
        allow_origins: Allowed origins, ``["*"]`` for all (default)
        allow_methods: Allowed HTTP methods
        allow_headers: Allowed request headers
        max_age: Cache time for preflight requests (seconds)
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins or ["*"],
        # Credentials travel in headers, never in cookies
        allow_credentials=False,
        allow_methods=allow_methods or DEFAULT_ALLOW_METHODS,
        allow_headers=allow_headers or DEFAULT_ALLOW_HEADERS,
        expose_headers=EXPOSE_HEADERS,
        max_age=max_age,
    )
