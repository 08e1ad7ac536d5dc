"""
Domain exceptions - Semantic error types raised by store adapters.

Adapters raise these; only the gateway orchestrator catches them and turns
them into client-safe failures. They never reach the HTTP layer.
"""


class GatewayError(Exception):
    """Base class for authentication gateway domain errors."""

    pass


class DuplicateEmail(GatewayError):
    """An account with this normalized email already exists."""

    pass


class AccountNotFound(GatewayError):
    """The referenced account does not exist (or was deleted)."""

    pass


class StoreUnavailable(GatewayError):
    """The account store timed out or failed unexpectedly."""

    pass
