"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the gateway requires from
infrastructure. Adapters implement these protocols structurally; none of
them inherit from the Protocol classes.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Protocol

from .models import Account, Profile, SecurityLogEntry


class AccountStore(Protocol):
    """Port interface for the external account/profile store.

    The gateway treats every method as fallible: timeouts and unexpected
    exceptions are mapped to a generic "service unavailable" outcome.
    """

    def find_by_email(self, email: str) -> Account | None:
        """Look up an account by normalized email."""
        ...

    def get_by_id(self, account_id: str) -> Account | None:
        """Look up an account by its opaque identifier."""
        ...

    def create(self, name: str, email: str, password: str) -> Account:
        """
        Create an account, hashing the password at this boundary.

        Uniqueness is enforced atomically by the store even when the caller
        has already checked ``find_by_email``.

        Args:
            name: Display name
            email: Normalized email address
            password: Plaintext password (hashed before storage)

        Returns:
            The created account

        Raises:
            DuplicateEmail: If an account with this email already exists
        """
        ...

    def verify(self, email: str, password: str) -> Account | None:
        """
        Check credentials with a constant-time password comparison.

        Implementations must run the password hash comparison even when the
        email is unknown, so response time does not reveal account existence.

        Returns:
            The account on success, None on any mismatch
        """
        ...

    def write_profile(self, account_id: str, fields: Mapping[str, Any]) -> Profile:
        """
        Upsert the account's profile.

        Creates the profile if absent, otherwise shallow-merges ``fields``
        into it. ``updated_at`` is always stamped.

        Raises:
            AccountNotFound: If the account does not exist
        """
        ...

    def get_profile(self, account_id: str) -> Profile | None:
        """Return the account's profile, if one was ever written."""
        ...

    def delete(self, account_id: str) -> bool:
        """Delete the account and its profile. Returns False if absent."""
        ...


class SecurityLogStore(Protocol):
    """Port interface for security event persistence (append-only)."""

    def append(self, entry: SecurityLogEntry) -> None:
        """Persist one entry. Existing entries are never modified."""
        ...

    def by_account(self, account_id: str, limit: int) -> list[SecurityLogEntry]:
        """Entries for one account, most recent first."""
        ...

    def by_action(self, action: str, limit: int) -> list[SecurityLogEntry]:
        """Entries with one action tag, most recent first."""
        ...


class AlertSink(Protocol):
    """Port interface for the out-of-band high-severity alert path."""

    def alert(self, entry: SecurityLogEntry) -> None:
        """Deliver an alert for a high-severity security event."""
        ...


class RevocationStore(Protocol):
    """Port interface for server-side session token revocation."""

    def revoke(self, token_id: str, expires_at: datetime) -> bool:
        """
        Mark a token id as revoked until it would have expired.

        Returns:
            True if this call revoked it, False if it was already revoked
        """
        ...

    def is_revoked(self, token_id: str) -> bool:
        """Return True if the token id has been revoked."""
        ...

    def purge_expired(self, now: datetime) -> int:
        """Forget revocations whose tokens have expired. Returns the count."""
        ...
