"""
In-memory account store - Implements AccountStore protocol.

Process-local storage for development and tests. Data is lost on restart.

Uniqueness: the email index is checked and written under one lock, so two
concurrent registrations for the same email cannot both succeed. Password
hashing happens before the lock is taken because bcrypt is deliberately
slow.
"""

import logging
import secrets
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from authgate.domain.exceptions import AccountNotFound, DuplicateEmail
from authgate.domain.models import PROFILE_FIELDS, Account, Profile
from authgate.domain.passwords import PasswordHasher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_account_id() -> str:
    """Opaque account id: millisecond timestamp plus 64 random bits."""
    return f"user_{int(time.time() * 1000):x}_{secrets.token_hex(8)}"


class InMemoryAccountStore:
    """
    Implements AccountStore protocol with dictionaries.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._hasher = hasher or PasswordHasher()
        self._clock = clock
        self._lock = threading.Lock()
        self._accounts: dict[str, Account] = {}
        self._by_email: dict[str, str] = {}
        self._profiles: dict[str, Profile] = {}

    def find_by_email(self, email: str) -> Account | None:
        with self._lock:
            account_id = self._by_email.get(email)
            return self._accounts.get(account_id) if account_id else None

    def get_by_id(self, account_id: str) -> Account | None:
        with self._lock:
            return self._accounts.get(account_id)

    def create(self, name: str, email: str, password: str) -> Account:
        """
        Atomically create an account.

        Raises:
            DuplicateEmail: If the email is already registered
        """
        password_hash = self._hasher.hash(password)
        account = Account(
            id=new_account_id(),
            name=name,
            email=email,
            password_hash=password_hash,
            created_at=self._clock(),
        )
        with self._lock:
            if email in self._by_email:
                raise DuplicateEmail(email)
            self._accounts[account.id] = account
            self._by_email[email] = account.id
        return account

    def verify(self, email: str, password: str) -> Account | None:
        """Check credentials; always runs one bcrypt comparison."""
        account = self.find_by_email(email)
        stored_hash = account.password_hash if account is not None else None
        if not self._hasher.check(password, stored_hash):
            return None
        return account

    def write_profile(self, account_id: str, fields: Mapping[str, Any]) -> Profile:
        """
        Create the profile on first write, otherwise shallow-merge ``fields``.

        Raises:
            AccountNotFound: If the account does not exist
        """
        updates = {key: value for key, value in fields.items() if key in PROFILE_FIELDS}
        now = self._clock()
        with self._lock:
            if account_id not in self._accounts:
                raise AccountNotFound(account_id)
            current = self._profiles.get(account_id)
            if current is None:
                profile = Profile(account_id=account_id, created_at=now, updated_at=now, **updates)
            else:
                profile = replace(current, updated_at=now, **updates)
            self._profiles[account_id] = profile
            return profile

    def get_profile(self, account_id: str) -> Profile | None:
        with self._lock:
            return self._profiles.get(account_id)

    def delete(self, account_id: str) -> bool:
        with self._lock:
            account = self._accounts.pop(account_id, None)
            if account is None:
                return False
            self._by_email.pop(account.email, None)
            self._profiles.pop(account_id, None)
        logger.info("Account deleted: %s", account_id)
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)
