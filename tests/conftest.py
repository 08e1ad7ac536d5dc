"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock for rate-limit windows
- Fresh in-memory gateway components per test
- An application test client backed by the in-memory store
"""

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from authgate.adapters.audit.memory import InMemorySecurityLogStore
from authgate.adapters.repository.memory import InMemoryAccountStore
from authgate.adapters.sessions.memory import InMemoryRevocationStore
from authgate.api.main import create_app
from authgate.config.settings import Settings
from authgate.domain.gateway import AuthGateway, RequestContext
from authgate.domain.passwords import PasswordHasher
from authgate.domain.rate_limit import RateLimiter
from authgate.domain.security_log import SecurityEventLog
from authgate.domain.tokens import SessionTokenService

TEST_SECRET_KEY = "test-secret-key-that-is-long-enough-for-hs256"


class FakeClock:
    """Monotonic seconds source that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingAlertSink:
    """AlertSink test double that keeps every alert."""

    def __init__(self) -> None:
        self.alerts = []

    def alert(self, entry) -> None:
        self.alerts.append(entry)


def _make_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "store_backend": "memory",
        "secret_key": TEST_SECRET_KEY,
        "bcrypt_cost": 4,
        "cleanup_interval_seconds": 3600.0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings_factory():
    """Build Settings for tests: memory backend, fast bcrypt, fixed secret."""
    return _make_settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    """bcrypt at its minimum cost keeps the suite fast."""
    return PasswordHasher(rounds=4)


@pytest.fixture
def accounts(hasher: PasswordHasher) -> InMemoryAccountStore:
    return InMemoryAccountStore(hasher)


@pytest.fixture
def log_store() -> InMemorySecurityLogStore:
    return InMemorySecurityLogStore()


@pytest.fixture
def alert_sink() -> RecordingAlertSink:
    return RecordingAlertSink()


@pytest.fixture
def security_log(
    log_store: InMemorySecurityLogStore, alert_sink: RecordingAlertSink
) -> SecurityEventLog:
    return SecurityEventLog(log_store, alert_sink=alert_sink)


@pytest.fixture
def limiter(security_log: SecurityEventLog, clock: FakeClock) -> RateLimiter:
    return RateLimiter(security_log, clock=clock)


@pytest.fixture
def tokens() -> SessionTokenService:
    return SessionTokenService(TEST_SECRET_KEY, InMemoryRevocationStore())


@pytest.fixture
def gateway(
    accounts: InMemoryAccountStore,
    security_log: SecurityEventLog,
    limiter: RateLimiter,
    tokens: SessionTokenService,
) -> Generator[AuthGateway, None, None]:
    """Gateway with default (development) origin policy and default password policy."""
    gateway = AuthGateway(
        accounts=accounts,
        security_log=security_log,
        limiter=limiter,
        tokens=tokens,
    )
    yield gateway
    gateway.close()


@pytest.fixture
def context() -> RequestContext:
    return RequestContext(client_ip="203.0.113.7")


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client running the full app lifespan on the in-memory backend."""
    app = create_app(_make_settings())
    with TestClient(app) as test_client:
        yield test_client
