"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from psycopg_pool import ConnectionPool
from starlette.middleware.sessions import SessionMiddleware

from shoecreatify.adapters.oauth import build_google_client
from shoecreatify.adapters.repository import PostgresSessionStore, run_migrations
from shoecreatify.adapters.smtp import (
    ConsoleEmailSender,
    EmailRenderer,
    NotificationDispatcher,
    SmtpEmailSender,
)
from shoecreatify.api.errors import register_error_handlers
from shoecreatify.api.limiter import RateLimiter
from shoecreatify.api.v1 import router as v1_router
from shoecreatify.config.settings import Settings, get_settings
from shoecreatify.domain.ports import EmailSender

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Registration, email OTP verification, login and password reset",
    },
    {
        "name": "oauth",
        "description": "Google sign-in (browser redirects)",
    },
]


def build_email_sender(settings: Settings) -> EmailSender:
    """SMTP when a host is configured, console logging otherwise."""
    if not settings.smtp_host:
        logger.info("No SMTP host configured; emails are logged to the console")
        return ConsoleEmailSender()
    return SmtpEmailSender(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        sender=settings.smtp_sender,
        use_tls=settings.smtp_use_tls,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings (tests); defaults to the cached
            environment settings
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Manages application startup and shutdown:
        - Creates database connection pool on startup
        - Runs migrations and drops expired sessions on startup
        - Closes connection pool on shutdown
        """
        logger.info("Starting application (%s)...", settings.environment)

        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        purged = PostgresSessionStore(pool).purge_expired()
        logger.info("Purged %d expired sessions", purged)

        app.state.pool = pool
        logger.info("Application startup complete")

        yield

        logger.info("Shutting down application...")
        pool.close()
        logger.info("Database connection pool closed")

    app = FastAPI(
        title="shoecreatify",
        description="Identity backend - registration, email OTP verification, "
        "login with lockout, password reset and Google sign-in",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(enabled=settings.rate_limit_enabled)
    app.state.dispatcher = NotificationDispatcher(
        sender=build_email_sender(settings),
        renderer=EmailRenderer(
            frontend_url=settings.frontend_url,
            otp_minutes=settings.otp_ttl_seconds // 60,
        ),
    )
    app.state.google_client = (
        build_google_client(settings.google_client_id, settings.google_client_secret)
        if settings.google_oauth_enabled
        else None
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Holds the OAuth state between /google and /google/callback only
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.secret_key,
        session_cookie="oauth_state",
        same_site="lax",
        https_only=settings.cookie_secure,
    )

    register_error_handlers(app, expose_details=not settings.is_production)
    app.include_router(v1_router, prefix="/v1/auth")

    @app.get("/health", tags=["health"])
    def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        pool = request.app.state.pool
        with pool.connection() as conn:
            conn.execute("SELECT 1")

        return {"status": "healthy"}

    return app


app = create_app()
