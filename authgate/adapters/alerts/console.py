"""
Console alert sink - Implements AlertSink protocol.

This module provides a console-based implementation of the domain's alert
port, logging high-severity security events for demo purposes.
"""

import logging

from authgate.domain.models import SecurityLogEntry

logger = logging.getLogger("authgate.alerts")


class ConsoleAlertSink:
    """
    Implements AlertSink protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    In production, this would be replaced with a pager or SIEM adapter.
    """

    def alert(self, entry: SecurityLogEntry) -> None:
        """
        Log a high-severity security event at CRITICAL level.

        Args:
            entry: The security log entry that triggered the alert
        """
        logger.critical(
            "[SECURITY ALERT] Action: %s Account: %s Email: %s Detail: %s Metadata: %s",
            entry.action,
            entry.account_id,
            entry.email,
            entry.error,
            entry.metadata,
        )
