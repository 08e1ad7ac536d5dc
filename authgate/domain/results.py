"""
Tagged results - Outcome types passed between gateway stages.

Every pipeline stage returns either ``Ok`` or ``Err`` instead of raising, so
the orchestrator can branch on the tag without re-checking payload shape.
``FailureKind`` is the error taxonomy the orchestrator maps to HTTP status
codes and client-safe messages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful stage result carrying its value."""

    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    """Failed stage result.

    ``reason`` is safe to show to the client. ``reasons`` carries every
    violated rule when a stage checks several at once.
    """

    reason: str
    reasons: tuple[str, ...] = ()
    ok: bool = field(default=False, init=False)


class FailureKind(str, Enum):
    """
    Failure taxonomy for gateway operations.

    Each kind carries its HTTP status code and the generic message sent to
    the client when the failing stage does not supply a safer specific one.
    """

    MALFORMED_INPUT = "malformed_input"
    POLICY_VIOLATION = "policy_violation"
    FORBIDDEN = "forbidden"
    RATE_LIMITED = "rate_limited"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    UNAVAILABLE = "unavailable"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_STATUS_CODES = {
    FailureKind.MALFORMED_INPUT: 400,
    FailureKind.POLICY_VIOLATION: 400,
    FailureKind.FORBIDDEN: 403,
    FailureKind.RATE_LIMITED: 429,
    FailureKind.CONFLICT: 409,
    FailureKind.UNAUTHORIZED: 401,
    FailureKind.UNAVAILABLE: 503,
}

_DEFAULT_MESSAGES = {
    FailureKind.MALFORMED_INPUT: "Invalid request format",
    FailureKind.POLICY_VIOLATION: "Invalid credentials format",
    FailureKind.FORBIDDEN: "Invalid origin",
    FailureKind.RATE_LIMITED: "Too many requests",
    FailureKind.CONFLICT: "An account with this email already exists",
    FailureKind.UNAUTHORIZED: "Invalid email or password",
    FailureKind.UNAVAILABLE: "Authentication service temporarily unavailable",
}


@dataclass(frozen=True)
class GatewayResponse:
    """Final outcome of a gateway operation: HTTP status plus JSON body."""

    status_code: int
    body: dict[str, Any]

    @property
    def success(self) -> bool:
        return bool(self.body.get("success"))
