"""Alert sink adapters - Out-of-band delivery of high-severity events."""

from .console import ConsoleAlertSink

__all__ = ["ConsoleAlertSink"]
