"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from distportal import __version__
from distportal.api.middleware import (
    AuthenticationMiddleware,
    ErrorHandlingMiddleware,
    RequestContextMiddleware,
    RequestLoggingMiddleware,
    request_validation_handler,
)
from distportal.api.routers import health_router, v1_router
from distportal.config.settings import Settings, get_settings
from distportal.config.validation import get_configuration_summary, validate_or_raise
from distportal.core.logging import setup_logging
from distportal.db.config import close_db, init_db
from distportal.notifications.email import EmailClient, build_email_client

logger = structlog.get_logger("distportal.api")


def create_app(
    settings: Settings | None = None,
    *,
    email_client: EmailClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (useful for testing)
        email_client: Optional email client override; built from settings otherwise

    Example:
        # Production
        uvicorn distportal.api.app:create_app --factory

        # Testing
        app = create_app(Settings(DEBUG=True), email_client=FakeEmailClient())
    """
    if settings is None:
        settings = get_settings()

    setup_logging(log_level=settings.log_level)

    app = FastAPI(
        title="Distributor Portal API",
        description="Content sharing, device registry and release notifications",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=_lifespan,
    )

    app.state.settings = settings
    app.state.email_client = email_client or build_email_client(settings)

    app.add_exception_handler(RequestValidationError, request_validation_handler)
    _configure_middleware(app, settings)
    _configure_routers(app)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Verify configuration and the database on startup; release resources on shutdown."""
    settings: Settings = app.state.settings
    validate_or_raise(settings)
    logger.info("api_starting", version=__version__, **get_configuration_summary(settings))

    try:
        await init_db()
        logger.info("database_ready")
    except (SQLAlchemyError, OSError) as e:
        logger.warning("database_init_skipped", error=str(e))

    yield

    logger.info("api_stopping")
    await app.state.email_client.aclose()
    await close_db()


def _configure_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure middleware stack.

    Middleware order (outermost to innermost execution):
    1. RequestLoggingMiddleware - Logs all requests
    2. ErrorHandlingMiddleware - Converts exceptions to HTTP responses
    3. CORSMiddleware - Handles CORS (if configured)
    4. AuthenticationMiddleware - Validates Bearer token and X-User-ID
    5. RequestContextMiddleware - Sets ContextVar for request context

    Starlette runs middleware from last-added to first-added, so they are
    added in reverse order.
    """
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(AuthenticationMiddleware)

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)


def _configure_routers(app: FastAPI) -> None:
    # Health check endpoints (no prefix - at root level)
    app.include_router(health_router)
    app.include_router(v1_router)
