"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory implementations of the domain ports
- A controllable clock
- An IdentityService wired to the fakes with a cheap bcrypt cost
- A migrated PostgreSQL pool for integration and adversarial tests
  (skipped when the database is unreachable)
"""

import dataclasses
import uuid
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from shoecreatify.adapters.repository import run_migrations
from shoecreatify.config.settings import get_settings
from shoecreatify.domain.account import (
    AccountCredentials,
    AccountProfile,
    AccountType,
    ExternalIdentity,
    NewAccount,
    Preferences,
    RegistrationStatus,
)
from shoecreatify.domain.exceptions import EmailAlreadyRegistered
from shoecreatify.domain.identity import IdentityService
from shoecreatify.domain.ports import Notification, NotificationKind

TEST_BCRYPT_COST = 4


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryAccountRepository:
    """
    Dict-backed AccountRepository.

    Credentials are handed out as copies, so changes only land through
    save_credentials, as with the PostgreSQL adapter.
    """

    def __init__(self) -> None:
        self.credentials: dict[str, AccountCredentials] = {}
        self.profiles: dict[str, dict] = {}

    # Helpers for assertions

    def by_email(self, email: str) -> AccountCredentials | None:
        for credentials in self.credentials.values():
            if credentials.email == email:
                return credentials
        return None

    # Port implementation

    def create(self, account: NewAccount) -> str:
        if self.by_email(account.email) is not None:
            raise EmailAlreadyRegistered()
        account_id = str(uuid.uuid4())
        self.credentials[account_id] = AccountCredentials(
            id=account_id,
            email=account.email,
            account_type=AccountType.LOCAL,
            registration_status=RegistrationStatus.PENDING_VERIFICATION,
            is_email_verified=False,
            password_hash=account.password_hash,
            verification_otp_hash=account.verification_otp_hash,
            verification_otp_expires_at=account.verification_otp_expires_at,
        )
        self.profiles[account_id] = {
            "first_name": account.first_name,
            "last_name": account.last_name,
            "profile_image": None,
            "google_id": None,
            "preferences": Preferences(),
            "last_login_at": None,
            "last_login_ip": None,
            "registration_ip": account.registration_ip,
        }
        return account_id

    def create_external(self, identity: ExternalIdentity, now: datetime) -> str:
        if self.by_email(identity.email) is not None:
            raise EmailAlreadyRegistered()
        account_id = str(uuid.uuid4())
        self.credentials[account_id] = AccountCredentials(
            id=account_id,
            email=identity.email,
            account_type=identity.provider,
            registration_status=RegistrationStatus.COMPLETED,
            is_email_verified=True,
            email_verified_at=now,
        )
        self.profiles[account_id] = {
            "first_name": identity.first_name or None,
            "last_name": identity.last_name or None,
            "profile_image": identity.picture or None,
            "google_id": identity.provider_user_id,
            "preferences": Preferences(),
            "last_login_at": None,
            "last_login_ip": None,
        }
        return account_id

    def find_profile_by_id(self, account_id: str) -> AccountProfile | None:
        credentials = self.credentials.get(account_id)
        if credentials is None:
            return None
        extra = self.profiles[account_id]
        return AccountProfile(
            id=account_id,
            email=credentials.email,
            first_name=extra["first_name"],
            last_name=extra["last_name"],
            account_type=credentials.account_type,
            registration_status=credentials.registration_status,
            is_email_verified=credentials.is_email_verified,
            email_verified_at=credentials.email_verified_at,
            profile_image=extra["profile_image"],
            preferences=extra["preferences"],
        )

    def find_profile_by_email(self, email: str) -> AccountProfile | None:
        credentials = self.by_email(email)
        return self.find_profile_by_id(credentials.id) if credentials else None

    def find_profile_by_provider_id(self, provider_user_id: str) -> AccountProfile | None:
        for account_id, extra in self.profiles.items():
            if extra["google_id"] == provider_user_id:
                return self.find_profile_by_id(account_id)
        return None

    def find_credentials_by_email(
        self, email: str, status: RegistrationStatus | None = None
    ) -> AccountCredentials | None:
        credentials = self.by_email(email)
        if credentials is None:
            return None
        if status is not None and credentials.registration_status != status:
            return None
        return dataclasses.replace(credentials)

    def save_credentials(self, credentials: AccountCredentials) -> None:
        self.credentials[credentials.id] = dataclasses.replace(credentials)

    def record_login(self, account_id: str, ip: str | None, at: datetime) -> None:
        self.profiles[account_id]["last_login_at"] = at
        self.profiles[account_id]["last_login_ip"] = ip

    def delete_pending(self, account_id: str) -> bool:
        credentials = self.credentials.get(account_id)
        if credentials is None or not credentials.is_pending or credentials.is_email_verified:
            return False
        del self.credentials[account_id]
        del self.profiles[account_id]
        return True

    def link_provider(self, account_id: str, identity: ExternalIdentity) -> AccountProfile:
        extra = self.profiles[account_id]
        extra["google_id"] = extra["google_id"] or identity.provider_user_id
        extra["first_name"] = extra["first_name"] or identity.first_name or None
        extra["last_name"] = extra["last_name"] or identity.last_name or None
        extra["profile_image"] = extra["profile_image"] or identity.picture or None
        return self.find_profile_by_id(account_id)

    def update_profile(
        self,
        account_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image: str | None = None,
    ) -> AccountProfile | None:
        extra = self.profiles.get(account_id)
        if extra is None:
            return None
        if first_name is not None:
            extra["first_name"] = first_name
        if last_name is not None:
            extra["last_name"] = last_name
        if profile_image is not None:
            extra["profile_image"] = profile_image
        return self.find_profile_by_id(account_id)


class InMemorySessionStore:
    """SessionStore keyed by raw token, expiring against the fake clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.sessions: dict[str, tuple[str, datetime]] = {}

    def create(self, account_id: str, ttl: timedelta) -> str:
        token = uuid.uuid4().hex
        self.sessions[token] = (account_id, self.clock() + ttl)
        return token

    def resolve(self, token: str) -> str | None:
        entry = self.sessions.get(token)
        if entry is None or entry[1] <= self.clock():
            return None
        return entry[0]

    def destroy(self, token: str) -> None:
        self.sessions.pop(token, None)


class RecordingNotificationQueue:
    """NotificationQueue that keeps everything it was given."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def enqueue(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def of_kind(self, kind: NotificationKind) -> list[Notification]:
        return [n for n in self.notifications if n.kind == kind]

    def last_otp(self, kind: NotificationKind = NotificationKind.VERIFICATION_OTP) -> str:
        return self.of_kind(kind)[-1].context["otp"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def sessions(clock: FakeClock) -> InMemorySessionStore:
    return InMemorySessionStore(clock)


@pytest.fixture
def notifications() -> RecordingNotificationQueue:
    return RecordingNotificationQueue()


@pytest.fixture
def service(
    repository: InMemoryAccountRepository,
    sessions: InMemorySessionStore,
    notifications: RecordingNotificationQueue,
    clock: FakeClock,
) -> IdentityService:
    """IdentityService wired to in-memory fakes."""
    return IdentityService(
        repository=repository,
        sessions=sessions,
        notifications=notifications,
        bcrypt_cost=TEST_BCRYPT_COST,
        clock=clock,
    )


@pytest.fixture
def make_verified(service: IdentityService, notifications: RecordingNotificationQueue):
    """Factory registering and verifying a local account; returns its id."""

    def _make(
        email: str = "ann@example.com",
        password: str = "secret1",
        first_name: str = "Ann",
        last_name: str = "Lee",
    ) -> str:
        receipt = service.register(first_name, last_name, email, password)
        service.verify_registration_otp(email, notifications.last_otp())
        return receipt.account_id

    return _make


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """Migrated connection pool against DATABASE_URL; skips when Postgres is down."""
    pool = ConnectionPool(
        conninfo=get_settings().database_url,
        min_size=1,
        max_size=10,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_tables(pg_pool: ConnectionPool) -> None:
    """Empty sessions and accounts before a database test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM sessions")
        conn.execute("DELETE FROM accounts")
        conn.commit()
