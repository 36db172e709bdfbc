"""
FastAPI Application Setup.

Main application factory for the Policy Intake REST API.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from policy_intake.api.middleware.auth import SessionMiddleware
from policy_intake.api.middleware.cors import add_cors_middleware
from policy_intake.api.middleware.logging import RequestLoggingMiddleware
from policy_intake.api.middleware.size_limit import SizeLimitMiddleware
from policy_intake.api.routes import admin, auth, uploads
from policy_intake.api.schemas.exceptions import (
    APIException,
    BadRequestError,
    InternalError,
    from_domain_error,
)
from policy_intake.api.schemas.responses import iso_timestamp
from policy_intake.artifacts.storage import ArtifactStore
from policy_intake.config import Settings
from policy_intake.core.exceptions import PolicyIntakeError, StorageUnavailableError
from policy_intake.notifications.dispatcher import NotificationDispatcher
from policy_intake.recipients.resolver import RecipientResolver
from policy_intake.version import __version__

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.

    Creates the upload directory and reports missing configuration on
    startup; closes the notification channels on shutdown.
    """
    settings: Settings = app.state.settings
    store: ArtifactStore = app.state.store

    logger.info("Policy Intake API starting up...")
    logger.info(f"Version: {__version__}")

    try:
        store.ensure_root()
        logger.info(f"Upload directory ready: {store.root}")
    except StorageUnavailableError as e:
        # Uploads retry creating the directory and report the failure per request
        logger.error(f"Upload directory unavailable: {e}")

    missing = settings.missing_settings()
    if missing:
        logger.warning(
            f"Missing configuration: {', '.join(missing)}",
            extra={"event": "config_incomplete", "missing": missing},
        )

    yield

    logger.info("Policy Intake API shutting down...")
    app.state.dispatcher.shutdown()
    app.state.resolver.close()


def create_app(
    settings: Settings | None = None,
    *,
    store: ArtifactStore | None = None,
    resolver: RecipientResolver | None = None,
    dispatcher: NotificationDispatcher | None = None,
    title: str = "Policy Intake API",
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Service settings (default: read from the environment)
        store: Artifact store (default: rooted at ``settings.upload_dir``)
        resolver: Recipient resolver (default: built from settings)
        dispatcher: Notification dispatcher (default: built from settings)
        title: Application title for OpenAPI docs

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or Settings.from_env()

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    store = store or ArtifactStore(settings.upload_dir)
    resolver = resolver or RecipientResolver(settings)
    dispatcher = dispatcher or NotificationDispatcher(settings, resolver)

    app = FastAPI(
        title=title,
        description="Policy document upload, retrieval and notification service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.resolver = resolver
    app.state.dispatcher = dispatcher

    # Middleware, innermost first
    app.add_middleware(SessionMiddleware, secret=settings.jwt_secret)
    app.add_middleware(SizeLimitMiddleware, max_upload_size=settings.max_upload_bytes)
    app.add_middleware(RequestLoggingMiddleware)
    add_cors_middleware(app, allow_origins=settings.cors_origins)

    # Include routers
    app.include_router(uploads.router, prefix="/api", tags=["Uploads"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])
    app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])

    # Exception handlers
    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
        """Handle API exceptions with proper error responses."""
        return JSONResponse(status_code=exc.status_code, content=exc.to_content())

    @app.exception_handler(PolicyIntakeError)
    async def domain_exception_handler(request: Request, exc: PolicyIntakeError) -> JSONResponse:
        """Translate domain errors raised below the route layer."""
        error = from_domain_error(exc)
        if error.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc}")
        return JSONResponse(status_code=error.status_code, content=error.to_content())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests as 400 with the offending fields."""
        fields = {
            ".".join(str(part) for part in err.get("loc", ())): err.get("msg", "")
            for err in exc.errors()
        }
        error = BadRequestError(
            "Request validation failed",
            detail="; ".join(f"{k}: {v}" for k, v in fields.items()) or None,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_content())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception(f"Unhandled exception: {exc}")
        error = InternalError(
            "Something went wrong!",
            detail=str(exc) if logger.isEnabledFor(logging.DEBUG) else None,
        )
        return JSONResponse(status_code=error.status_code, content=error.to_content())

    # Root endpoint
    @app.get("/", tags=["Root"])
    async def root() -> dict[str, object]:
        """Root endpoint with service information."""
        return {
            "message": "Policy Intake backend is running!",
            "timestamp": iso_timestamp(),
            "version": __version__,
            "docs": "/docs",
        }

    return app
