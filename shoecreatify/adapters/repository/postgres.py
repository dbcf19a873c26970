"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Projections
-----------
Queries select one of two explicit column lists:

- _PROFILE_COLUMNS: the public view (AccountProfile). Never includes the
  password hash, OTP/token digests or login-failure counters.
- _CREDENTIAL_COLUMNS: the credential-check view (AccountCredentials).
  Only the identity lifecycle asks for it.

Every credential write is a single UPDATE of the whole mutable field set,
so concurrent requests never observe a half-written OTP or lockout state.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

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

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = """
    id, email, first_name, last_name, account_type, registration_status,
    is_email_verified, email_verified_at, profile_image,
    email_notifications, two_factor_enabled, login_alerts, created_at
"""

_CREDENTIAL_COLUMNS = """
    id, email, account_type, registration_status, is_email_verified,
    password_hash, email_verified_at,
    verification_otp_hash, verification_otp_expires_at,
    reset_otp_hash, reset_otp_expires_at,
    email_verification_token_hash, email_verification_token_expires_at,
    reset_password_token_hash, reset_password_token_expires_at,
    failed_login_attempts, locked_until, last_password_change_at
"""


def _to_profile(row: dict[str, Any]) -> AccountProfile:
    return AccountProfile(
        id=str(row["id"]),
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        account_type=AccountType(row["account_type"]),
        registration_status=RegistrationStatus(row["registration_status"]),
        is_email_verified=row["is_email_verified"],
        email_verified_at=row["email_verified_at"],
        profile_image=row["profile_image"],
        preferences=Preferences(
            email_notifications=row["email_notifications"],
            two_factor_enabled=row["two_factor_enabled"],
            login_alerts=row["login_alerts"],
        ),
        created_at=row["created_at"],
    )


def _to_credentials(row: dict[str, Any]) -> AccountCredentials:
    return AccountCredentials(
        id=str(row["id"]),
        email=row["email"],
        account_type=AccountType(row["account_type"]),
        registration_status=RegistrationStatus(row["registration_status"]),
        is_email_verified=row["is_email_verified"],
        password_hash=row["password_hash"],
        email_verified_at=row["email_verified_at"],
        verification_otp_hash=row["verification_otp_hash"],
        verification_otp_expires_at=row["verification_otp_expires_at"],
        reset_otp_hash=row["reset_otp_hash"],
        reset_otp_expires_at=row["reset_otp_expires_at"],
        email_verification_token_hash=row["email_verification_token_hash"],
        email_verification_token_expires_at=row["email_verification_token_expires_at"],
        reset_password_token_hash=row["reset_password_token_hash"],
        reset_password_token_expires_at=row["reset_password_token_expires_at"],
        failed_login_attempts=row["failed_login_attempts"],
        locked_until=row["locked_until"],
        last_password_change_at=row["last_password_change_at"],
    )


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, account: NewAccount) -> str:
        """
        Insert a pending local account.

        The UNIQUE constraint on email arbitrates concurrent registrations
        for the same address: the loser gets EmailAlreadyRegistered.
        """
        sql = """
            INSERT INTO accounts (
                email, first_name, last_name, password_hash, account_type,
                registration_status, is_email_verified,
                verification_otp_hash, verification_otp_expires_at,
                registration_ip, user_agent, last_password_change_at
            )
            VALUES (%s, %s, %s, %s, 'local', 'pending_verification', FALSE, %s, %s, %s, %s, NOW())
            RETURNING id
        """
        params = (
            account.email,
            account.first_name,
            account.last_name,
            account.password_hash,
            account.verification_otp_hash,
            account.verification_otp_expires_at,
            account.registration_ip,
            account.user_agent,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation:
            raise EmailAlreadyRegistered() from None
        return str(row[0])

    def create_external(self, identity: ExternalIdentity, now: datetime) -> str:
        sql = """
            INSERT INTO accounts (
                email, google_id, first_name, last_name, profile_image, account_type,
                registration_status, is_email_verified, email_verified_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, 'completed', TRUE, %s)
            RETURNING id
        """
        params = (
            identity.email.strip().lower(),
            identity.provider_user_id,
            identity.first_name or None,
            identity.last_name or None,
            identity.picture or None,
            identity.provider.value,
            now,
        )
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation:
            raise EmailAlreadyRegistered() from None
        return str(row[0])

    def find_profile_by_id(self, account_id: str) -> AccountProfile | None:
        return self._fetch_profile("id = %s", (account_id,))

    def find_profile_by_email(self, email: str) -> AccountProfile | None:
        return self._fetch_profile("email = %s", (email,))

    def find_profile_by_provider_id(self, provider_user_id: str) -> AccountProfile | None:
        return self._fetch_profile("google_id = %s", (provider_user_id,))

    def find_credentials_by_email(
        self, email: str, status: RegistrationStatus | None = None
    ) -> AccountCredentials | None:
        sql = f"SELECT {_CREDENTIAL_COLUMNS} FROM accounts WHERE email = %s"
        params: tuple[Any, ...] = (email,)
        if status is not None:
            sql += " AND registration_status = %s"
            params = (email, status.value)

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _to_credentials(row) if row is not None else None

    def save_credentials(self, credentials: AccountCredentials) -> None:
        sql = """
            UPDATE accounts
            SET registration_status = %s,
                is_email_verified = %s,
                email_verified_at = %s,
                password_hash = %s,
                verification_otp_hash = %s,
                verification_otp_expires_at = %s,
                reset_otp_hash = %s,
                reset_otp_expires_at = %s,
                email_verification_token_hash = %s,
                email_verification_token_expires_at = %s,
                reset_password_token_hash = %s,
                reset_password_token_expires_at = %s,
                failed_login_attempts = %s,
                locked_until = %s,
                last_password_change_at = %s,
                updated_at = NOW()
            WHERE id = %s
        """
        params = (
            credentials.registration_status.value,
            credentials.is_email_verified,
            credentials.email_verified_at,
            credentials.password_hash,
            credentials.verification_otp_hash,
            credentials.verification_otp_expires_at,
            credentials.reset_otp_hash,
            credentials.reset_otp_expires_at,
            credentials.email_verification_token_hash,
            credentials.email_verification_token_expires_at,
            credentials.reset_password_token_hash,
            credentials.reset_password_token_expires_at,
            credentials.failed_login_attempts,
            credentials.locked_until,
            credentials.last_password_change_at,
            credentials.id,
        )
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()

    def record_login(self, account_id: str, ip: str | None, at: datetime) -> None:
        sql = """
            UPDATE accounts
            SET last_login_at = %s, last_login_ip = %s, updated_at = NOW()
            WHERE id = %s
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (at, ip, account_id))
            conn.commit()

    def delete_pending(self, account_id: str) -> bool:
        """
        Delete an account only while it is still pending and unverified.

        The state predicate lives in the WHERE clause, so a record that was
        verified in the meantime survives.
        """
        sql = """
            DELETE FROM accounts
            WHERE id = %s
              AND registration_status = 'pending_verification'
              AND is_email_verified = FALSE
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (account_id,))
            conn.commit()
            return cursor.rowcount == 1

    def link_provider(self, account_id: str, identity: ExternalIdentity) -> AccountProfile:
        sql = f"""
            UPDATE accounts
            SET google_id = COALESCE(google_id, %s),
                first_name = COALESCE(NULLIF(first_name, ''), %s),
                last_name = COALESCE(NULLIF(last_name, ''), %s),
                profile_image = COALESCE(profile_image, %s),
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_PROFILE_COLUMNS}
        """
        params = (
            identity.provider_user_id,
            identity.first_name or None,
            identity.last_name or None,
            identity.picture or None,
            account_id,
        )
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()
        return _to_profile(row)

    def update_profile(
        self,
        account_id: str,
        first_name: str | None = None,
        last_name: str | None = None,
        profile_image: str | None = None,
    ) -> AccountProfile | None:
        sql = f"""
            UPDATE accounts
            SET first_name = COALESCE(%s, first_name),
                last_name = COALESCE(%s, last_name),
                profile_image = COALESCE(%s, profile_image),
                updated_at = NOW()
            WHERE id = %s
            RETURNING {_PROFILE_COLUMNS}
        """
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, (first_name, last_name, profile_image, account_id))
            row = cursor.fetchone()
            conn.commit()
        return _to_profile(row) if row is not None else None

    def _fetch_profile(self, predicate: str, params: tuple[Any, ...]) -> AccountProfile | None:
        sql = f"SELECT {_PROFILE_COLUMNS} FROM accounts WHERE {predicate}"
        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return _to_profile(row) if row is not None else None


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: shoecreatify/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
