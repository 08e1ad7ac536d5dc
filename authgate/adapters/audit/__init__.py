"""Security log adapters - In-memory and PostgreSQL implementations."""

from .memory import InMemorySecurityLogStore
from .postgres import PostgresSecurityLogStore

__all__ = ["InMemorySecurityLogStore", "PostgresSecurityLogStore"]
