"""
In-memory revocation store - Implements RevocationStore protocol.

Maps revoked token ids to the time their token expires. Records are purged
once that time passes, since an expired token is rejected anyway.
"""

import threading
from datetime import datetime


class InMemoryRevocationStore:
    """
    Implements RevocationStore protocol with a dictionary.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._revoked: dict[str, datetime] = {}

    def revoke(self, token_id: str, expires_at: datetime) -> bool:
        with self._lock:
            if token_id in self._revoked:
                return False
            self._revoked[token_id] = expires_at
            return True

    def is_revoked(self, token_id: str) -> bool:
        with self._lock:
            return token_id in self._revoked

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            snapshot = list(self._revoked.items())
        expired = [token_id for token_id, expires_at in snapshot if expires_at <= now]
        with self._lock:
            for token_id in expired:
                self._revoked.pop(token_id, None)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)
