"""Repository adapters - Database implementations."""

from .postgres import PostgresAccountRepository, run_migrations
from .sessions import PostgresSessionStore

__all__ = ["PostgresAccountRepository", "PostgresSessionStore", "run_migrations"]
