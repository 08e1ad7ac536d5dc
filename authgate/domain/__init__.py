"""
Domain layer - Authentication gateway logic with no web framework imports.

This package holds the request pipeline stages (validator, origin guard,
rate limiter, credential policy), the security event log, session tokens and
the orchestrator that composes them. It defines its own port interfaces for
the account store, log persistence, alerting and token revocation.
"""

from .exceptions import AccountNotFound, DuplicateEmail, GatewayError, StoreUnavailable
from .gateway import AuthGateway, RequestContext
from .models import Account, Profile, SecurityLogEntry, Severity
from .ports import AccountStore, AlertSink, RevocationStore, SecurityLogStore
from .results import Err, FailureKind, GatewayResponse, Ok

__all__ = [
    "Account",
    "AccountNotFound",
    "AccountStore",
    "AlertSink",
    "AuthGateway",
    "DuplicateEmail",
    "Err",
    "FailureKind",
    "GatewayError",
    "GatewayResponse",
    "Ok",
    "Profile",
    "RequestContext",
    "RevocationStore",
    "SecurityLogEntry",
    "SecurityLogStore",
    "Severity",
    "StoreUnavailable",
]
