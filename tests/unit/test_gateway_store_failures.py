"""
Unit tests for AuthGateway behaviour when the account store misbehaves.

Tests with mocked ports to verify:
- Store exceptions and timeouts map to a generic 503
- Internal error detail never reaches the client
- Store errors are recorded in the security log
- A racing duplicate registration maps to 409
- A broken security log store does not fail the operation
"""

import json
import threading
from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest

from authgate.adapters.audit.memory import InMemorySecurityLogStore
from authgate.domain.exceptions import DuplicateEmail
from authgate.domain.gateway import AuthGateway, RequestContext
from authgate.domain.models import Account, Profile
from authgate.domain.ports import AccountStore
from authgate.domain.rate_limit import RateLimiter
from authgate.domain.security_log import STORE_ERROR, SecurityEventLog

UNAVAILABLE = {"success": False, "error": "Authentication service temporarily unavailable"}

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_account() -> Account:
    return Account(
        id="user_1",
        name="Test User",
        email="test@example.com",
        password_hash="$2b$04$notrealbutneverchecked",
        created_at=NOW,
    )


def register_body() -> bytes:
    return json.dumps(
        {"name": "Test User", "email": "test@example.com", "password": "testpass123"}
    ).encode()


def login_body() -> bytes:
    return json.dumps({"email": "test@example.com", "password": "testpass123"}).encode()


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock(spec=AccountStore)
    store.find_by_email.return_value = None
    return store


@pytest.fixture
def mocked_gateway(store, security_log, tokens, clock):
    gateway = AuthGateway(
        accounts=store,
        security_log=security_log,
        limiter=RateLimiter(clock=clock),
        tokens=tokens,
        store_timeout_seconds=0.2,
    )
    yield gateway
    gateway.close()


class TestStoreErrors:
    """Tests for unexpected store exceptions."""

    def test_create_exception_returns_503(self, mocked_gateway, store, context) -> None:
        """An exception from create maps to a generic 503."""
        store.create.side_effect = RuntimeError("connection reset by peer at 10.0.0.5")

        response = mocked_gateway.register(context, register_body())

        assert response.status_code == 503
        assert response.body == UNAVAILABLE

    def test_error_detail_kept_server_side(
        self, mocked_gateway, store, context, log_store
    ) -> None:
        """The exception text is recorded in the security log only."""
        store.create.side_effect = RuntimeError("connection reset by peer at 10.0.0.5")

        response = mocked_gateway.register(context, register_body())

        assert "10.0.0.5" not in json.dumps(response.body)
        [entry] = log_store.by_action(STORE_ERROR, 10)
        assert "10.0.0.5" in entry.error
        assert entry.metadata["operation"] == "registration"

    def test_verify_exception_returns_503(self, mocked_gateway, store, context) -> None:
        """A failing credential check is a 503, not a 401."""
        store.verify.side_effect = ConnectionError("db down")

        response = mocked_gateway.login(context, login_body())

        assert response.status_code == 503
        assert response.body == UNAVAILABLE

    def test_profile_seed_failure_returns_503(self, mocked_gateway, store, context) -> None:
        """Registration fails as a whole when the profile cannot be written."""
        store.create.return_value = make_account()
        store.write_profile.side_effect = RuntimeError("profiles table missing")

        response = mocked_gateway.register(context, register_body())

        assert response.status_code == 503

    def test_session_lookup_failure_returns_503(
        self, mocked_gateway, store, tokens
    ) -> None:
        """Account lookups behind a valid token map failures to 503."""
        store.get_by_id.side_effect = RuntimeError("boom")
        token = tokens.issue("user_1").access_token

        assert mocked_gateway.session(token).status_code == 503


class TestStoreTimeouts:
    """Tests for hung store calls."""

    def test_hung_verify_returns_503(self, mocked_gateway, store, context, log_store) -> None:
        """A store call exceeding the timeout yields 503 instead of hanging."""
        release = threading.Event()

        def hang(*args):
            release.wait(5)
            return None

        store.verify.side_effect = hang
        try:
            response = mocked_gateway.login(context, login_body())
        finally:
            release.set()

        assert response.status_code == 503
        [entry] = log_store.by_action(STORE_ERROR, 10)
        assert "timed out" in entry.error


class TestConcurrentDuplicate:
    """Tests for the store's uniqueness guarantee surfacing through the gateway."""

    def test_duplicate_on_create_returns_409(self, mocked_gateway, store, context) -> None:
        """A duplicate detected atomically by the store is a 409, not a 503."""
        store.create.side_effect = DuplicateEmail("test@example.com")

        response = mocked_gateway.register(context, register_body())

        assert response.status_code == 409
        store.write_profile.assert_not_called()


class TestBrokenSecurityLog:
    """Tests for a failing security log backend."""

    def test_login_succeeds_when_log_store_fails(self, store, tokens, context, clock) -> None:
        """Audit persistence failures never fail the audited operation."""
        log_store = Mock()
        log_store.append.side_effect = RuntimeError("audit db down")
        store.verify.return_value = make_account()
        gateway = AuthGateway(
            accounts=store,
            security_log=SecurityEventLog(log_store),
            limiter=RateLimiter(clock=clock),
            tokens=tokens,
        )
        try:
            response = gateway.login(context, login_body())
        finally:
            gateway.close()

        assert response.status_code == 200
        assert log_store.append.called

    def test_security_events_query_failure_returns_503(
        self, store, tokens, clock
    ) -> None:
        """A failing log query maps to 503."""
        log_store = Mock(wraps=InMemorySecurityLogStore())
        log_store.by_account.side_effect = RuntimeError("audit db down")
        store.get_by_id.return_value = make_account()
        gateway = AuthGateway(
            accounts=store,
            security_log=SecurityEventLog(log_store),
            limiter=RateLimiter(clock=clock),
            tokens=tokens,
        )
        try:
            response = gateway.security_events(tokens.issue("user_1").access_token)
        finally:
            gateway.close()

        assert response.status_code == 503


class TestProfileUpsertThroughMock:
    """Tests for the profile call contract."""

    def test_update_profile_passes_only_profile_fields(
        self, mocked_gateway, store, tokens, context
    ) -> None:
        """Only known profile keys reach the store."""
        store.get_by_id.return_value = make_account()
        store.write_profile.return_value = Profile(
            account_id="user_1", created_at=NOW, updated_at=NOW, bio="hi"
        )
        token = tokens.issue("user_1").access_token

        response = mocked_gateway.update_profile(
            context, token, json.dumps({"bio": "hi", "is_admin": True}).encode()
        )

        assert response.status_code == 200
        store.write_profile.assert_called_once_with("user_1", {"bio": "hi"})


def test_request_context_identifier() -> None:
    """The rate-limit key is derived from the client address."""
    assert RequestContext(client_ip="192.0.2.1").ip_identifier == "ip:192.0.2.1"
