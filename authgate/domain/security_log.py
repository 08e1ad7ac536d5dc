"""
Security event log - Audit trail of every authentication decision.

``SecurityEventLog`` is the single entry point for recording security
events. It masks email addresses before anything is stored or emitted,
appends the entry to a ``SecurityLogStore``, writes a ``[SECURITY]`` line to
the ``authgate.security`` logger and, for HIGH severity entries, calls the
``AlertSink``.

Recording never fails the calling operation. A broken store or alert sink
is reported through the diagnostic logger and otherwise ignored, so an
outage of the audit backend cannot block logins or surface to the client as
an authentication failure.
"""

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from .models import SecurityLogEntry, Severity
from .ports import AlertSink, SecurityLogStore

logger = logging.getLogger(__name__)
security_logger = logging.getLogger("authgate.security")

DEFAULT_PAGE_SIZE = 50

EMAIL_MASK = "***"

# Action tags
REGISTRATION = "registration"
REGISTRATION_FAILED = "registration_failed"
LOGIN = "login"
LOGIN_FAILED = "login_failed"
LOGOUT = "logout"
TOKEN_REFRESHED = "token_refreshed"
TOKEN_REJECTED = "token_rejected"
PROFILE_UPDATED = "profile_updated"
ACCOUNT_DELETED = "account_deleted"
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
INVALID_ORIGIN = "invalid_origin"
INVALID_REQUEST = "invalid_request"
SUSPICIOUS_PAYLOAD = "suspicious_payload"
STORE_ERROR = "store_error"


def mask_email(email: str) -> str:
    """
    Mask an email address for storage and log output.

    Keeps the first two characters of the local part and the whole domain:
    ``abcdef@example.com`` -> ``ab***@example.com``. Shorter local parts are
    kept as-is (``a@example.com`` -> ``a***@example.com``). Input without an
    ``@`` is masked the same way with no domain.
    """
    local, at, domain = email.rpartition("@")
    if not at:
        local, domain = email, ""
    masked = f"{local[:2]}{EMAIL_MASK}"
    return f"{masked}@{domain}" if domain else masked


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SecurityEventLog:
    """
    Records and queries security events.

    Args:
        store: Append-only persistence for entries
        alert_sink: Out-of-band delivery for HIGH severity entries
        page_size: Maximum number of entries a query returns
        clock: Timestamp source (injectable for tests)
    """

    def __init__(
        self,
        store: SecurityLogStore,
        alert_sink: AlertSink | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._alert_sink = alert_sink
        self._page_size = page_size
        self._clock = clock

    def record(
        self,
        action: str,
        *,
        success: bool,
        account_id: str | None = None,
        email: str | None = None,
        error: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        severity: Severity = Severity.INFO,
    ) -> SecurityLogEntry:
        """
        Append one security event. Never raises.

        Args:
            action: Action tag such as "login" or "rate_limit_exceeded"
            success: Whether the audited operation succeeded
            account_id: Affected account, if known
            email: Email involved (masked before storage)
            error: Server-side error detail, never sent to clients
            metadata: Additional structured context
            severity: HIGH triggers the alert path

        Returns:
            The entry as built, whether or not persistence succeeded
        """
        entry = SecurityLogEntry(
            id=uuid.uuid4().hex,
            action=action,
            success=success,
            timestamp=self._clock(),
            account_id=account_id,
            email=mask_email(email) if email else None,
            error=error,
            metadata=dict(metadata or {}),
            severity=severity,
        )

        level = logging.WARNING if severity is not Severity.INFO else logging.INFO
        security_logger.log(
            level,
            "[SECURITY] %s success=%s account=%s email=%s error=%s",
            entry.action,
            entry.success,
            entry.account_id,
            entry.email,
            entry.error,
        )

        try:
            self._store.append(entry)
        except Exception:
            logger.exception("Failed to persist security event %s", entry.action)

        if severity is Severity.HIGH and self._alert_sink is not None:
            try:
                self._alert_sink.alert(entry)
            except Exception:
                logger.exception("Failed to deliver security alert for %s", entry.action)

        return entry

    def query(self, account_id: str, limit: int | None = None) -> list[SecurityLogEntry]:
        """Entries for one account, most recent first, bounded to the page size."""
        return self._store.by_account(account_id, self._bounded(limit))

    def query_by_action(self, action: str, limit: int | None = None) -> list[SecurityLogEntry]:
        """Entries with one action tag, most recent first, bounded to the page size."""
        return self._store.by_action(action, self._bounded(limit))

    def _bounded(self, limit: int | None) -> int:
        if limit is None or limit <= 0:
            return self._page_size
        return min(limit, self._page_size)
