"""
Gateway wiring - Builds every stateful component from settings.

All process-wide state (rate limiter windows, in-memory stores, revocation
list, store worker pool, database pool) is created here and owned by the
returned ``GatewayResources``. The FastAPI lifespan builds one at startup and
closes it on shutdown; tests build fresh instances instead of sharing
module-level singletons.
"""

import logging
from dataclasses import dataclass, field

from psycopg_pool import ConnectionPool

from authgate.adapters.alerts import ConsoleAlertSink
from authgate.adapters.audit import InMemorySecurityLogStore, PostgresSecurityLogStore
from authgate.adapters.repository import (
    InMemoryAccountStore,
    PostgresAccountStore,
    run_migrations,
)
from authgate.adapters.sessions import InMemoryRevocationStore
from authgate.config.settings import Settings
from authgate.domain.credentials import CredentialPolicy
from authgate.domain.exceptions import DuplicateEmail
from authgate.domain.gateway import AuthGateway
from authgate.domain.origin import OriginGuard
from authgate.domain.passwords import PasswordHasher
from authgate.domain.rate_limit import RateLimiter
from authgate.domain.security_log import SecurityEventLog
from authgate.domain.tokens import SessionTokenService
from authgate.domain.validation import PayloadValidator

logger = logging.getLogger(__name__)

TEST_USER = ("Test User", "test@example.com", "testpass123")


@dataclass
class GatewayResources:
    """The gateway plus everything that must be torn down with it."""

    gateway: AuthGateway
    pool: ConnectionPool | None = None
    closed: bool = field(default=False, init=False)

    def sweep(self) -> None:
        """Periodic housekeeping: stale rate windows and expired revocations."""
        windows = self.gateway.limiter.sweep()
        revocations = self.gateway.tokens.purge_expired()
        if windows or revocations:
            logger.debug(
                "Cleanup removed %d rate window(s) and %d revocation(s)", windows, revocations
            )

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.gateway.close()
        if self.pool is not None:
            self.pool.close()
            logger.info("Database connection pool closed")


def build_gateway(settings: Settings) -> GatewayResources:
    """
    Construct the gateway and its collaborators for ``settings``.

    The account store and security log backend are selected by
    ``settings.store_backend``.
    """
    hasher = PasswordHasher(rounds=settings.bcrypt_cost)
    pool = None

    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        accounts = PostgresAccountStore(pool, hasher)
        log_store = PostgresSecurityLogStore(pool)
    else:
        logger.warning("Using in-memory account store; data is lost on restart")
        accounts = InMemoryAccountStore(hasher)
        log_store = InMemorySecurityLogStore()
        if settings.seed_test_user:
            _seed_test_user(accounts)

    security_log = SecurityEventLog(
        log_store,
        alert_sink=ConsoleAlertSink(),
        page_size=settings.security_log_page_size,
    )
    limiter = RateLimiter(
        security_log,
        window_ms=settings.rate_limit_window_ms,
        max_attempts=settings.rate_limit_max_attempts,
        alert_after_breaches=settings.rate_limit_alert_after,
    )
    tokens = SessionTokenService(
        settings.secret_key,
        InMemoryRevocationStore(),
        access_ttl_seconds=settings.access_token_ttl_seconds,
        refresh_ttl_seconds=settings.refresh_token_ttl_seconds,
    )
    gateway = AuthGateway(
        accounts=accounts,
        security_log=security_log,
        limiter=limiter,
        tokens=tokens,
        origin_guard=OriginGuard(settings.environment, tuple(settings.allowed_origins)),
        validator=PayloadValidator(max_string_length=settings.max_string_length),
        policy=CredentialPolicy(
            enforce_password_strength=settings.enforce_password_strength,
            reject_disposable_emails=settings.reject_disposable_emails,
        ),
        store_timeout_seconds=settings.store_timeout_seconds,
        max_workers=settings.store_workers,
    )
    return GatewayResources(gateway=gateway, pool=pool)


def _seed_test_user(accounts: InMemoryAccountStore) -> None:
    name, email, password = TEST_USER
    try:
        account = accounts.create(name, email, password)
    except DuplicateEmail:
        return
    accounts.write_profile(account.id, {"display_name": name})
    logger.info("Seeded development account %s", email)
