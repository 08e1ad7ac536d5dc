"""
Unit tests for domain port interfaces.

Verifies that the adapters satisfy the Protocols structurally (without
inheriting from them) and that the domain exceptions carry their context.
"""

import inspect

from authgate.adapters.alerts.console import ConsoleAlertSink
from authgate.adapters.audit.memory import InMemorySecurityLogStore
from authgate.adapters.audit.postgres import PostgresSecurityLogStore
from authgate.adapters.repository.memory import InMemoryAccountStore
from authgate.adapters.repository.postgres import PostgresAccountStore
from authgate.adapters.sessions.memory import InMemoryRevocationStore
from authgate.domain.exceptions import (
    AccountNotFound,
    DuplicateEmail,
    GatewayError,
    StoreUnavailable,
)
from authgate.domain.ports import AccountStore, AlertSink, RevocationStore, SecurityLogStore


def protocol_methods(protocol: type) -> set[str]:
    return {
        name
        for name, member in vars(protocol).items()
        if inspect.isfunction(member) and not name.startswith("_")
    }


class TestStructuralSubtyping:
    """Adapters implement every port method without inheriting the Protocol."""

    def test_account_stores(self) -> None:
        """Both account stores implement AccountStore."""
        for adapter in (InMemoryAccountStore, PostgresAccountStore):
            assert protocol_methods(AccountStore) <= set(dir(adapter))
            assert AccountStore not in adapter.__mro__

    def test_security_log_stores(self) -> None:
        """Both security log stores implement SecurityLogStore."""
        for adapter in (InMemorySecurityLogStore, PostgresSecurityLogStore):
            assert protocol_methods(SecurityLogStore) <= set(dir(adapter))
            assert SecurityLogStore not in adapter.__mro__

    def test_alert_sink(self) -> None:
        """ConsoleAlertSink implements AlertSink."""
        assert protocol_methods(AlertSink) <= set(dir(ConsoleAlertSink))

    def test_revocation_store(self) -> None:
        """InMemoryRevocationStore implements RevocationStore."""
        assert protocol_methods(RevocationStore) <= set(dir(InMemoryRevocationStore))


class TestExceptions:
    """Tests for domain exceptions."""

    def test_hierarchy(self) -> None:
        """Every domain exception derives from GatewayError."""
        for exc in (DuplicateEmail, AccountNotFound, StoreUnavailable):
            assert issubclass(exc, GatewayError)

    def test_duplicate_email_message(self) -> None:
        """DuplicateEmail keeps the email for server-side diagnostics."""
        error = DuplicateEmail("test@example.com")

        assert "test@example.com" in str(error)
