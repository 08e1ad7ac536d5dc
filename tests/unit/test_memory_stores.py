"""
Unit tests for the in-memory adapters and PasswordHasher.

Tests the account store (uniqueness, credential checks, profile upsert,
deletion), the revocation store and bcrypt hashing with timing
equalization.
"""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import bcrypt
import pytest

from authgate.adapters.repository.memory import InMemoryAccountStore, new_account_id
from authgate.adapters.sessions.memory import InMemoryRevocationStore
from authgate.domain.credentials import validate_password
from authgate.domain.exceptions import AccountNotFound, DuplicateEmail
from authgate.domain.passwords import PasswordHasher


class TestPasswordHasher:
    """Tests for bcrypt hashing."""

    def test_hash_is_bcrypt_with_configured_cost(self, hasher: PasswordHasher) -> None:
        """Hashes use the $2b$ scheme and the configured cost."""
        hashed = hasher.hash("testpass123")

        assert hashed.startswith("$2b$04$")

    def test_check_accepts_correct_password(self, hasher: PasswordHasher) -> None:
        """The right password matches."""
        hashed = hasher.hash("testpass123")

        assert hasher.check("testpass123", hashed)
        assert not hasher.check("wrongpass", hashed)

    def test_missing_hash_always_fails(self, hasher: PasswordHasher) -> None:
        """A None hash fails, even for the dummy password."""
        assert not hasher.check("authgate_timing_dummy", None)

    def test_missing_hash_still_runs_bcrypt(self, hasher: PasswordHasher) -> None:
        """An unknown account still costs one bcrypt comparison."""
        with patch("authgate.domain.passwords.bcrypt.checkpw", wraps=bcrypt.checkpw) as spy:
            hasher.check("whatever", None)

        assert spy.call_count == 1

    def test_long_passwords_truncated_consistently(self, hasher: PasswordHasher) -> None:
        """Input beyond 72 bytes is ignored identically on hash and check."""
        password = "x" * 100
        hashed = hasher.hash(password)

        assert hasher.check(password, hashed)
        assert hasher.check("x" * 72 + "different-tail", hashed)

    def test_multibyte_password_compared_on_first_72_bytes(
        self, hasher: PasswordHasher
    ) -> None:
        """A policy-valid multi-byte password only has its first 72 bytes checked."""
        password = "\u00e9" * 40
        assert validate_password(password, enforce_strength=False).ok
        assert len(password.encode("utf-8")) == 80

        hashed = hasher.hash(password)

        assert hasher.check("\u00e9" * 36 + "other-tail", hashed)
        assert not hasher.check("\u00e9" * 35 + "x", hashed)

    def test_corrupt_hash_fails_closed(self, hasher: PasswordHasher) -> None:
        """A malformed stored hash never matches."""
        assert not hasher.check("testpass123", "not-a-bcrypt-hash")


class TestAccountStore:
    """Tests for InMemoryAccountStore."""

    def test_create_and_find(self, accounts: InMemoryAccountStore) -> None:
        """A created account can be found by email and id."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")

        assert accounts.find_by_email("ann@example.com") == account
        assert accounts.get_by_id(account.id) == account
        assert account.password_hash != "testpass123"

    def test_account_id_format(self) -> None:
        """Account ids are opaque, prefixed and unique."""
        first, second = new_account_id(), new_account_id()

        assert re.fullmatch(r"user_[0-9a-f]+_[0-9a-f]{16}", first)
        assert first != second

    def test_duplicate_email_raises(self, accounts: InMemoryAccountStore) -> None:
        """Creating a second account with the same email raises DuplicateEmail."""
        accounts.create("Ann", "ann@example.com", "testpass123")

        with pytest.raises(DuplicateEmail):
            accounts.create("Other", "ann@example.com", "otherpass123")
        assert len(accounts) == 1

    def test_verify(self, accounts: InMemoryAccountStore) -> None:
        """verify returns the account only for matching credentials."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")

        assert accounts.verify("ann@example.com", "testpass123") == account
        assert accounts.verify("ann@example.com", "wrongpass") is None
        assert accounts.verify("nobody@example.com", "testpass123") is None

    def test_verify_unknown_email_runs_one_comparison(
        self, accounts: InMemoryAccountStore
    ) -> None:
        """Unknown emails cost exactly one bcrypt comparison."""
        with patch("authgate.domain.passwords.bcrypt.checkpw", wraps=bcrypt.checkpw) as spy:
            accounts.verify("nobody@example.com", "testpass123")

        assert spy.call_count == 1

    def test_write_profile_creates_then_merges(self, accounts: InMemoryAccountStore) -> None:
        """The first write creates the profile, later writes patch it."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")

        created = accounts.write_profile(account.id, {"display_name": "Ann", "city": "Oslo"})
        updated = accounts.write_profile(account.id, {"bio": "hello"})

        assert created.display_name == "Ann"
        assert updated.display_name == "Ann"
        assert updated.city == "Oslo"
        assert updated.bio == "hello"
        assert updated.created_at == created.created_at
        assert accounts.get_profile(account.id) == updated

    def test_write_profile_stamps_updated_at(self, hasher: PasswordHasher) -> None:
        """updated_at moves on every write."""
        times = iter(
            datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=i) for i in range(5)
        )
        store = InMemoryAccountStore(hasher, clock=lambda: next(times))
        account = store.create("Ann", "ann@example.com", "testpass123")

        first = store.write_profile(account.id, {"bio": "a"})
        second = store.write_profile(account.id, {"bio": "b"})

        assert second.updated_at > first.updated_at

    def test_write_profile_ignores_unknown_fields(self, accounts: InMemoryAccountStore) -> None:
        """Only known profile attributes are stored."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")

        profile = accounts.write_profile(account.id, {"bio": "x", "is_admin": True})

        assert "is_admin" not in profile.to_dict()

    def test_write_profile_unknown_account(self, accounts: InMemoryAccountStore) -> None:
        """Writing a profile for a missing account raises AccountNotFound."""
        with pytest.raises(AccountNotFound):
            accounts.write_profile("user_missing", {"bio": "x"})

    def test_delete_removes_account_and_profile(self, accounts: InMemoryAccountStore) -> None:
        """Deletion removes the account, its email index and its profile."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")
        accounts.write_profile(account.id, {"bio": "x"})

        assert accounts.delete(account.id) is True

        assert accounts.get_by_id(account.id) is None
        assert accounts.find_by_email("ann@example.com") is None
        assert accounts.get_profile(account.id) is None
        assert accounts.delete(account.id) is False

    def test_email_reusable_after_delete(self, accounts: InMemoryAccountStore) -> None:
        """A deleted account's email can register again."""
        account = accounts.create("Ann", "ann@example.com", "testpass123")
        accounts.delete(account.id)

        again = accounts.create("Ann", "ann@example.com", "testpass123")

        assert again.id != account.id


class TestRevocationStore:
    """Tests for InMemoryRevocationStore."""

    def test_revoke_and_check(self) -> None:
        """Revoked ids are reported as revoked."""
        store = InMemoryRevocationStore()
        expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

        assert store.revoke("jti-1", expires) is True
        assert store.revoke("jti-1", expires) is False

        assert store.is_revoked("jti-1")
        assert not store.is_revoked("jti-2")

    def test_purge_expired(self) -> None:
        """Only records past their expiry are purged."""
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store = InMemoryRevocationStore()
        store.revoke("old", now - timedelta(seconds=1))
        store.revoke("live", now + timedelta(hours=1))

        assert store.purge_expired(now) == 1
        assert not store.is_revoked("old")
        assert store.is_revoked("live")
