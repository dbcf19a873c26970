"""
Shared fixtures for adversarial tests.

Provides an API client with rate limiting switched on, and an
IdentityService backed by PostgreSQL for the race condition tests.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from psycopg_pool import ConnectionPool

from shoecreatify.adapters.repository import PostgresAccountRepository, PostgresSessionStore
from shoecreatify.api.dependencies import get_identity_service
from shoecreatify.api.main import create_app
from shoecreatify.config.settings import Settings
from shoecreatify.domain.identity import IdentityService


@pytest.fixture
def limited_app(service: IdentityService) -> FastAPI:
    """Application with the default rate limits behind one trusted proxy."""
    app = create_app(
        Settings(_env_file=None, rate_limit_enabled=True, smtp_host="", trusted_proxy_count=1)
    )
    app.dependency_overrides[get_identity_service] = lambda: service
    return app


@pytest.fixture
def attacker(limited_app: FastAPI) -> TestClient:
    """Client whose requests all come from the same address."""
    return TestClient(limited_app)


@pytest.fixture
def pg_service(pg_pool: ConnectionPool, clean_tables, notifications) -> IdentityService:
    """IdentityService over PostgreSQL with a cheap bcrypt cost."""
    return IdentityService(
        repository=PostgresAccountRepository(pg_pool),
        sessions=PostgresSessionStore(pg_pool),
        notifications=notifications,
        bcrypt_cost=4,
    )
