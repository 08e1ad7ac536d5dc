"""
Sliding-window rate limiter for authentication attempts.

Each identifier (typically ``ip:<address>`` or ``email:<address>``) owns an
ordered list of attempt timestamps. Every ``allow()`` call first discards
timestamps older than the window, then admits the attempt only if fewer than
``max_attempts`` remain. Bursts up to the cap are allowed anywhere inside a
window; there is no fixed tick.

Locking
=======

Each identifier has its own lock, so callers for different identifiers never
serialize on each other. The registry lock is held only to look up, insert
or remove a window, never while timestamps are scanned.

``sweep()`` snapshots the registry and inspects one window at a time. A
window it removes is marked retired under its own lock; a caller that picked
up the window just before removal sees the flag and retries against a fresh
window, so no attempt is recorded into a window nobody can see.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from .models import Severity
from .security_log import RATE_LIMIT_EXCEEDED, SecurityEventLog, mask_email

DEFAULT_WINDOW_MS = 900_000  # 15 minutes
DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_ALERT_AFTER_BREACHES = 5

# Identifiers idle for this long are dropped by sweep()
STALE_AFTER_SECONDS = 3600.0


def _loggable(identifier: str) -> str:
    kind, sep, value = identifier.partition(":")
    if sep and kind == "email":
        return f"email:{mask_email(value)}"
    return identifier


@dataclass
class _Window:
    timestamps: deque[float] = field(default_factory=deque)
    breaches: int = 0
    retired: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock)


class RateLimiter:
    """
    Per-identifier sliding-window attempt counter.

    Args:
        security_log: Receives a rate_limit_exceeded event on every denial
        window_ms: Default window length in milliseconds
        max_attempts: Default number of attempts admitted per window
        alert_after_breaches: Consecutive denials after which the event is
            logged with HIGH severity
        clock: Returns the current time in seconds (injectable for tests)
    """

    def __init__(
        self,
        security_log: SecurityEventLog | None = None,
        window_ms: int = DEFAULT_WINDOW_MS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        alert_after_breaches: int = DEFAULT_ALERT_AFTER_BREACHES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._security_log = security_log
        self._window_ms = window_ms
        self._max_attempts = max_attempts
        self._alert_after_breaches = alert_after_breaches
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._registry_lock = threading.Lock()

    def allow(
        self,
        identifier: str,
        window_ms: int | None = None,
        max_attempts: int | None = None,
    ) -> bool:
        """
        Record an attempt for ``identifier`` if it is within budget.

        Args:
            identifier: Bucket key (client IP, email, ...)
            window_ms: Window length override in milliseconds
            max_attempts: Attempt cap override

        Returns:
            True if the attempt is admitted, False if the budget is spent
        """
        window_seconds = (window_ms if window_ms is not None else self._window_ms) / 1000.0
        cap = max_attempts if max_attempts is not None else self._max_attempts

        while True:
            window = self._get_window(identifier)
            with window.lock:
                if window.retired:
                    continue

                now = self._clock()
                cutoff = now - window_seconds
                while window.timestamps and window.timestamps[0] < cutoff:
                    window.timestamps.popleft()

                count = len(window.timestamps)
                if count >= cap:
                    window.breaches += 1
                    breaches = window.breaches
                    break

                window.timestamps.append(now)
                window.breaches = 0
                return True

        self._report_exceeded(identifier, count, cap, breaches)
        return False

    def attempts(self, identifier: str) -> int:
        """Number of timestamps currently held for ``identifier``."""
        with self._registry_lock:
            window = self._windows.get(identifier)
        if window is None:
            return 0
        with window.lock:
            return len(window.timestamps)

    def reset(self, identifier: str) -> None:
        """Forget every attempt recorded for ``identifier``."""
        with self._registry_lock:
            window = self._windows.pop(identifier, None)
        if window is not None:
            with window.lock:
                window.retired = True

    def sweep(self, stale_after_seconds: float = STALE_AFTER_SECONDS) -> int:
        """
        Drop identifiers whose timestamps are all older than ``stale_after_seconds``.

        Returns:
            Number of identifiers removed
        """
        with self._registry_lock:
            snapshot = list(self._windows.items())

        cutoff = self._clock() - stale_after_seconds
        removed = 0
        for identifier, window in snapshot:
            with window.lock:
                if window.retired:
                    continue
                if window.timestamps and window.timestamps[-1] > cutoff:
                    continue
                window.retired = True
            with self._registry_lock:
                if self._windows.get(identifier) is window:
                    del self._windows[identifier]
                    removed += 1
        return removed

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._windows)

    def _get_window(self, identifier: str) -> _Window:
        with self._registry_lock:
            window = self._windows.get(identifier)
            if window is None or window.retired:
                window = _Window()
                self._windows[identifier] = window
            return window

    def _report_exceeded(self, identifier: str, count: int, cap: int, breaches: int) -> None:
        if self._security_log is None:
            return
        severity = (
            Severity.HIGH if breaches >= self._alert_after_breaches else Severity.WARNING
        )
        self._security_log.record(
            RATE_LIMIT_EXCEEDED,
            success=False,
            metadata={
                "identifier": _loggable(identifier),
                "count": count,
                "max_attempts": cap,
                "breaches": breaches,
            },
            severity=severity,
        )
