"""Account store adapters - In-memory and PostgreSQL implementations."""

from .memory import InMemoryAccountStore
from .postgres import PostgresAccountStore, run_migrations

__all__ = ["InMemoryAccountStore", "PostgresAccountStore", "run_migrations"]
