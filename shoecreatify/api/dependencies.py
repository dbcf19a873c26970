"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import BackgroundTasks, Depends, Request
from psycopg_pool import ConnectionPool

from shoecreatify.adapters.repository import PostgresAccountRepository, PostgresSessionStore
from shoecreatify.adapters.smtp import NotificationDispatcher
from shoecreatify.config.settings import Settings
from shoecreatify.domain.account import AccountProfile
from shoecreatify.domain.guard import LoginGuard
from shoecreatify.domain.identity import IdentityService

from .notifications import BackgroundNotificationQueue


def client_ip(request: Request) -> str:
    """
    Resolve the caller's IP for rate limiting and audit fields.

    The socket address is used unless ``trusted_proxy_count`` is set. With
    N trusted proxies the address is read from ``X-Forwarded-For``, N entries
    from the right; entries to the left of it were sent by the client and
    are ignored.
    """
    peer = request.client.host if request.client else ""
    settings = getattr(request.app.state, "settings", None)
    hops = settings.trusted_proxy_count if settings is not None else 0
    if hops <= 0:
        return peer

    forwarded = [
        entry.strip()
        for entry in request.headers.get("X-Forwarded-For", "").split(",")
        if entry.strip()
    ]
    if not forwarded:
        return peer
    return forwarded[-hops] if len(forwarded) >= hops else forwarded[0]


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresAccountRepository:
    """Create repository with connection pool from app state."""
    return PostgresAccountRepository(get_pool(request))


def get_session_store(request: Request) -> PostgresSessionStore:
    return PostgresSessionStore(get_pool(request))


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Application-wide dispatcher (renderer + configured email sender)."""
    return request.app.state.dispatcher


def get_identity_service(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_app_settings),
) -> IdentityService:
    """
    Create identity service with injected dependencies.

    Notifications are bound to this request's background tasks so they
    are delivered after the response is sent.
    """
    return IdentityService(
        repository=get_repository(request),
        sessions=get_session_store(request),
        notifications=BackgroundNotificationQueue(background_tasks, get_dispatcher(request)),
        guard=LoginGuard(
            max_attempts=settings.max_failed_logins,
            lockout=timedelta(minutes=settings.lockout_minutes),
        ),
        otp_ttl=timedelta(seconds=settings.otp_ttl_seconds),
        session_ttl=timedelta(hours=settings.session_ttl_hours),
        remember_me_ttl=timedelta(days=settings.remember_me_days),
        bcrypt_cost=settings.bcrypt_cost,
    )


def get_session_token(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> str | None:
    """Raw session token from the session cookie, if any."""
    return request.cookies.get(settings.session_cookie_name)


def require_account(
    token: str | None = Depends(get_session_token),
    service: IdentityService = Depends(get_identity_service),
) -> AccountProfile:
    """
    Resolve the authenticated account or fail.

    Raises:
        NotAuthenticated: Missing, unknown or expired session cookie
    """
    return service.current_account(token)
