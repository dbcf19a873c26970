"""
PostgreSQL session store - Implements SessionStore protocol.

The client holds a random token in a cookie; the table stores only its
SHA-256 so a leaked table cannot be replayed as cookies.
"""

import hashlib
import secrets
from datetime import timedelta

from psycopg_pool import ConnectionPool


def _token_hash(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class PostgresSessionStore:
    """Server-side sessions keyed by account id."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, account_id: str, ttl: timedelta) -> str:
        token = secrets.token_urlsafe(32)
        sql = """
            INSERT INTO sessions (token_hash, account_id, expires_at)
            VALUES (%s, %s, NOW() + %s)
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (_token_hash(token), account_id, ttl))
            conn.commit()
        return token

    def resolve(self, token: str) -> str | None:
        sql = """
            SELECT account_id FROM sessions
            WHERE token_hash = %s AND expires_at > NOW()
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (_token_hash(token),))
            row = cursor.fetchone()
        return str(row[0]) if row is not None else None

    def destroy(self, token: str) -> None:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM sessions WHERE token_hash = %s", (_token_hash(token),))
            conn.commit()

    def purge_expired(self) -> int:
        """Delete expired sessions; returns how many were removed."""
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("DELETE FROM sessions WHERE expires_at <= NOW()")
            conn.commit()
            return cursor.rowcount
