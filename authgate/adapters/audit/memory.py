"""
In-memory security log store - Implements SecurityLogStore protocol.

Entries are kept in insertion order and never modified or removed. The list
lives as long as the process does.
"""

import threading

from authgate.domain.models import SecurityLogEntry


class InMemorySecurityLogStore:
    """
    Implements SecurityLogStore protocol with an append-only list.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[SecurityLogEntry] = []

    def append(self, entry: SecurityLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    def by_account(self, account_id: str, limit: int) -> list[SecurityLogEntry]:
        return self._latest(lambda entry: entry.account_id == account_id, limit)

    def by_action(self, action: str, limit: int) -> list[SecurityLogEntry]:
        return self._latest(lambda entry: entry.action == action, limit)

    def all(self) -> list[SecurityLogEntry]:
        """Every entry, oldest first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _latest(self, predicate, limit: int) -> list[SecurityLogEntry]:
        with self._lock:
            snapshot = list(self._entries)
        matches = []
        for entry in reversed(snapshot):
            if predicate(entry):
                matches.append(entry)
                if len(matches) >= limit:
                    break
        return matches
