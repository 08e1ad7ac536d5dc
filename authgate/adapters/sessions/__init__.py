"""Session revocation adapters."""

from .memory import InMemoryRevocationStore

__all__ = ["InMemoryRevocationStore"]
