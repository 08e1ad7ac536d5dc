"""
Authentication gateway - Orchestrates every auth operation.

Request pipeline
================

Each operation walks the same stages, any of which may short-circuit:

    RECEIVED -> ORIGIN_CHECKED -> RATE_CHECKED -> VALIDATED
             -> POLICY_CHECKED -> STORE_CALLED -> LOGGED -> RESPONDED

Stages return tagged results (``Ok`` / ``Err``) or plain booleans. In the
VALIDATED stage the sanitized payload is also checked against its request
model (authgate.domain.requests); a body that does not fit is a 400. This
module is the single place where a failed stage becomes an HTTP status and a
client-safe message (``FailureKind``). Every decision is recorded in the
security event log before the response is built.

Store calls run on a small worker pool and are bounded by
``store_timeout_seconds``; a hung backend yields a generic 503 instead of
stalling the request. Full error detail goes to the security log and the
diagnostic logger only.

Enumeration resistance
======================

Login failures return the same status and message whether the email is
unknown or the password is wrong. The store always runs one bcrypt
comparison, so timing does not differ either.
"""

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .credentials import CredentialPolicy, normalize_email
from .exceptions import AccountNotFound, DuplicateEmail, StoreUnavailable
from .models import Account, Severity
from .origin import OriginGuard
from .ports import AccountStore
from .rate_limit import RateLimiter
from .requests import (
    DeleteAccountRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
)
from .results import Err, FailureKind, GatewayResponse, Ok
from .security_log import (
    ACCOUNT_DELETED,
    INVALID_ORIGIN,
    INVALID_REQUEST,
    LOGIN,
    LOGIN_FAILED,
    LOGOUT,
    PROFILE_UPDATED,
    REGISTRATION,
    REGISTRATION_FAILED,
    STORE_ERROR,
    SUSPICIOUS_PAYLOAD,
    TOKEN_REFRESHED,
    TOKEN_REJECTED,
    SecurityEventLog,
)
from .tokens import REFRESH, SessionTokens, SessionTokenService
from .validation import CleanPayload, PayloadValidator

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

DELETE_CONFIRMATION = "DELETE"
DEFAULT_STORE_TIMEOUT_SECONDS = 5.0

MISSING_REGISTER_FIELDS = "Missing required fields: name, email, password"
MISSING_LOGIN_FIELDS = "Email and password are required"
MISSING_REFRESH_TOKEN = "Refresh token is required"
AUTHENTICATION_REQUIRED = "Authentication required"
INVALID_SESSION = "Invalid or expired session"
INVALID_CONFIRMATION = "Invalid confirmation"
NO_PROFILE_FIELDS = "No profile fields to update"
INVALID_PROFILE_FIELDS = "Profile fields must be strings"


@dataclass(frozen=True)
class RequestContext:
    """Transport details the gateway needs from an inbound request."""

    client_ip: str | None = None
    origin: str | None = None
    referer: str | None = None

    @property
    def ip_identifier(self) -> str:
        return f"ip:{self.client_ip or 'unknown'}"


class AuthGateway:
    """
    Composes origin guard, rate limiter, validator, credential policy,
    account store and security log into the auth operations.

    Args:
        accounts: Account/profile store adapter
        security_log: Security event log
        limiter: Sliding-window rate limiter
        tokens: Session token service
        origin_guard: Origin/referer check
        validator: Payload sanitizer
        policy: Email and password rules
        store_timeout_seconds: Upper bound for any single store call
        max_workers: Size of the store call worker pool
    """

    def __init__(
        self,
        accounts: AccountStore,
        security_log: SecurityEventLog,
        limiter: RateLimiter,
        tokens: SessionTokenService,
        origin_guard: OriginGuard | None = None,
        validator: PayloadValidator | None = None,
        policy: CredentialPolicy | None = None,
        store_timeout_seconds: float = DEFAULT_STORE_TIMEOUT_SECONDS,
        max_workers: int = 8,
    ) -> None:
        self.accounts = accounts
        self.security_log = security_log
        self.limiter = limiter
        self.tokens = tokens
        self.origin_guard = origin_guard or OriginGuard()
        self.validator = validator or PayloadValidator()
        self.policy = policy or CredentialPolicy()
        self._store_timeout = store_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="authgate-store"
        )

    def close(self) -> None:
        """Shut down the store worker pool."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, context: RequestContext, raw_body: Any) -> GatewayResponse:
        """
        Create an account and open a session for it.

        Returns:
            201 with session tokens, or 400/403/409/429/503
        """
        rejected = self._admit(context)
        if rejected is not None:
            return rejected

        sanitized = self._sanitize(context, raw_body)
        if not sanitized.ok:
            return self._fail(FailureKind.MALFORMED_INPUT, sanitized.reason)

        request = self._parse(sanitized.value, RegisterRequest)
        if request is None:
            return self._fail(FailureKind.MALFORMED_INPUT, MISSING_REGISTER_FIELDS)
        name, email, password = request.name, request.email, request.password

        email_check = self.policy.validate_email(email)
        if not email_check.ok:
            self.security_log.record(
                REGISTRATION_FAILED, success=False, email=email, error=email_check.reason
            )
            return self._fail(
                FailureKind.POLICY_VIOLATION, email_check.reason, [email_check.reason]
            )
        email = email_check.value

        try:
            existing = self._call_store(self.accounts.find_by_email, email)
            if existing is not None:
                self.security_log.record(
                    REGISTRATION_FAILED, success=False, email=email, error="email_exists"
                )
                return self._fail(FailureKind.CONFLICT)

            password_check = self.policy.validate_password(password)
            if not password_check.ok:
                self.security_log.record(
                    REGISTRATION_FAILED,
                    success=False,
                    email=email,
                    error="weak_password",
                    metadata={"reasons": list(password_check.reasons)},
                )
                return self._fail(
                    FailureKind.POLICY_VIOLATION,
                    password_check.reason,
                    list(password_check.reasons),
                )

            account = self._call_store(self.accounts.create, name, email, password)
            self._call_store(self.accounts.write_profile, account.id, {"display_name": name})
        except DuplicateEmail:
            self.security_log.record(
                REGISTRATION_FAILED, success=False, email=email, error="email_exists"
            )
            return self._fail(FailureKind.CONFLICT)
        except StoreUnavailable as e:
            self._record_store_error(REGISTRATION, e, email=email)
            return self._fail(FailureKind.UNAVAILABLE)

        session = self.tokens.issue(account.id)
        self.security_log.record(REGISTRATION, success=True, account_id=account.id, email=email)
        logger.info("Account registered: %s", account.id)
        return self._session_response(201, "Account created successfully", session)

    def login(self, context: RequestContext, raw_body: Any) -> GatewayResponse:
        """
        Check credentials and open a session.

        Returns:
            200 with session tokens and public user fields, or 400/401/403/429/503.
            Unknown email and wrong password produce the identical 401.
        """
        rejected = self._admit(context)
        if rejected is not None:
            return rejected

        sanitized = self._sanitize(context, raw_body)
        if not sanitized.ok:
            return self._fail(FailureKind.MALFORMED_INPUT, sanitized.reason)

        request = self._parse(sanitized.value, LoginRequest)
        if request is None:
            return self._fail(FailureKind.MALFORMED_INPUT, MISSING_LOGIN_FIELDS)
        email, password = normalize_email(request.email), request.password

        if not self.limiter.allow(f"email:{email}"):
            return self._fail(FailureKind.RATE_LIMITED)

        try:
            account = self._call_store(self.accounts.verify, email, password)
        except StoreUnavailable as e:
            self._record_store_error(LOGIN, e, email=email)
            return self._fail(FailureKind.UNAVAILABLE)

        if account is None:
            self.security_log.record(
                LOGIN_FAILED,
                success=False,
                email=email,
                error="invalid_credentials",
                metadata={"client_ip": context.client_ip},
                severity=Severity.WARNING,
            )
            return self._fail(FailureKind.UNAUTHORIZED)

        session = self.tokens.issue(account.id)
        self.security_log.record(LOGIN, success=True, account_id=account.id, email=email)
        return self._session_response(
            200, "Login successful", session, user=account.public_view()
        )

    def logout(
        self,
        context: RequestContext,
        access_token: str | None = None,
        raw_body: Any = None,
    ) -> GatewayResponse:
        """
        End a session by revoking its tokens.

        Always acknowledges: an unknown or expired token has nothing left to
        revoke. An optional ``refreshToken`` in the body is revoked as well.
        """
        refresh_token = None
        if raw_body:
            sanitized = self.validator.validate(raw_body)
            if sanitized.ok:
                request = self._parse(sanitized.value, LogoutRequest)
                refresh_token = request.refreshToken if request is not None else None

        claims = self.tokens.revoke(access_token) if access_token else None
        if refresh_token:
            self.tokens.revoke(refresh_token, REFRESH)

        self.security_log.record(
            LOGOUT,
            success=True,
            account_id=claims.account_id if claims else None,
            metadata={"client_ip": context.client_ip, "token_revoked": claims is not None},
        )
        return GatewayResponse(200, {"success": True, "message": "Logout successful"})

    def refresh(self, context: RequestContext, raw_body: Any) -> GatewayResponse:
        """Rotate a refresh token into a new session pair."""
        rejected = self._admit(context)
        if rejected is not None:
            return rejected

        sanitized = self._sanitize(context, raw_body)
        if not sanitized.ok:
            return self._fail(FailureKind.MALFORMED_INPUT, sanitized.reason)

        request = self._parse(sanitized.value, RefreshRequest)
        if request is None:
            return self._fail(FailureKind.MALFORMED_INPUT, MISSING_REFRESH_TOKEN)
        refresh_token = request.refreshToken

        claims = self.tokens.verify(refresh_token, REFRESH)
        if claims is None:
            return self._reject_token(context)

        try:
            account = self._call_store(self.accounts.get_by_id, claims.account_id)
        except StoreUnavailable as e:
            self._record_store_error(TOKEN_REFRESHED, e, account_id=claims.account_id)
            return self._fail(FailureKind.UNAVAILABLE)
        if account is None:
            return self._reject_token(context)

        rotated = self.tokens.rotate(refresh_token)
        if rotated is None:
            return self._reject_token(context)
        _, session = rotated

        self.security_log.record(TOKEN_REFRESHED, success=True, account_id=account.id)
        return self._session_response(200, "Session refreshed", session)

    def session(self, access_token: str | None) -> GatewayResponse:
        """Return the current account and its profile."""
        try:
            account = self._authenticate(access_token)
            if account is None:
                return self._fail(FailureKind.UNAUTHORIZED, AUTHENTICATION_REQUIRED)
            profile = self._call_store(self.accounts.get_profile, account.id)
        except StoreUnavailable as e:
            self._record_store_error("session", e)
            return self._fail(FailureKind.UNAVAILABLE)

        return GatewayResponse(
            200,
            {
                "success": True,
                "user": {
                    "id": account.id,
                    **account.public_view(),
                    "createdAt": account.created_at.isoformat(),
                },
                "profile": profile.to_dict() if profile is not None else None,
            },
        )

    def update_profile(
        self,
        context: RequestContext,
        access_token: str | None,
        raw_body: Any,
    ) -> GatewayResponse:
        """Upsert the current account's profile with the supplied fields."""
        if not self._origin_trusted(context):
            return self._fail(FailureKind.FORBIDDEN)

        try:
            account = self._authenticate(access_token)
        except StoreUnavailable as e:
            self._record_store_error(PROFILE_UPDATED, e)
            return self._fail(FailureKind.UNAVAILABLE)
        if account is None:
            return self._fail(FailureKind.UNAUTHORIZED, AUTHENTICATION_REQUIRED)

        sanitized = self._sanitize(context, raw_body)
        if not sanitized.ok:
            return self._fail(FailureKind.MALFORMED_INPUT, sanitized.reason)

        request = self._parse(sanitized.value, ProfileUpdateRequest)
        if request is None:
            return self._fail(FailureKind.MALFORMED_INPUT, INVALID_PROFILE_FIELDS)
        fields = request.changes()
        if not fields:
            return self._fail(FailureKind.MALFORMED_INPUT, NO_PROFILE_FIELDS)

        try:
            profile = self._call_store(self.accounts.write_profile, account.id, fields)
        except AccountNotFound:
            return self._fail(FailureKind.UNAUTHORIZED, AUTHENTICATION_REQUIRED)
        except StoreUnavailable as e:
            self._record_store_error(PROFILE_UPDATED, e, account_id=account.id)
            return self._fail(FailureKind.UNAVAILABLE)

        self.security_log.record(
            PROFILE_UPDATED,
            success=True,
            account_id=account.id,
            metadata={"fields": sorted(fields)},
        )
        return GatewayResponse(200, {"success": True, "profile": profile.to_dict()})

    def delete_account(
        self,
        context: RequestContext,
        access_token: str | None,
        raw_body: Any,
    ) -> GatewayResponse:
        """Delete the current account once the literal confirmation phrase is supplied."""
        if not self._origin_trusted(context):
            return self._fail(FailureKind.FORBIDDEN)

        try:
            account = self._authenticate(access_token)
        except StoreUnavailable as e:
            self._record_store_error(ACCOUNT_DELETED, e)
            return self._fail(FailureKind.UNAVAILABLE)
        if account is None:
            return self._fail(FailureKind.UNAUTHORIZED, AUTHENTICATION_REQUIRED)

        sanitized = self._sanitize(context, raw_body)
        if not sanitized.ok:
            return self._fail(FailureKind.MALFORMED_INPUT, sanitized.reason)

        request = self._parse(sanitized.value, DeleteAccountRequest)
        if request is None or request.confirmation != DELETE_CONFIRMATION:
            self.security_log.record(
                ACCOUNT_DELETED,
                success=False,
                account_id=account.id,
                error="invalid_confirmation",
            )
            return self._fail(FailureKind.MALFORMED_INPUT, INVALID_CONFIRMATION)

        try:
            self._call_store(self.accounts.delete, account.id)
        except StoreUnavailable as e:
            self._record_store_error(ACCOUNT_DELETED, e, account_id=account.id)
            return self._fail(FailureKind.UNAVAILABLE)

        self.tokens.revoke(access_token)
        self.security_log.record(
            ACCOUNT_DELETED, success=True, account_id=account.id, email=account.email
        )
        return GatewayResponse(200, {"success": True, "message": "Account deleted"})

    def security_events(self, access_token: str | None) -> GatewayResponse:
        """Return the current account's most recent security events."""
        try:
            account = self._authenticate(access_token)
            if account is None:
                return self._fail(FailureKind.UNAUTHORIZED, AUTHENTICATION_REQUIRED)
            entries = self._call_store(self.security_log.query, account.id)
        except StoreUnavailable as e:
            logger.error("Security log query failed: %s", e)
            return self._fail(FailureKind.UNAVAILABLE)

        return GatewayResponse(
            200, {"success": True, "entries": [entry.to_dict() for entry in entries]}
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _admit(self, context: RequestContext) -> GatewayResponse | None:
        """Origin check followed by the per-client rate limit."""
        if not self._origin_trusted(context):
            return self._fail(FailureKind.FORBIDDEN)
        if not self.limiter.allow(context.ip_identifier):
            return self._fail(FailureKind.RATE_LIMITED)
        return None

    def _origin_trusted(self, context: RequestContext) -> bool:
        if self.origin_guard.is_trusted(context.origin, context.referer):
            return True
        self.security_log.record(
            INVALID_ORIGIN,
            success=False,
            metadata={
                "origin": context.origin,
                "referer": context.referer,
                "client_ip": context.client_ip,
            },
            severity=Severity.WARNING,
        )
        return False

    def _sanitize(self, context: RequestContext, raw_body: Any) -> Ok[CleanPayload] | Err:
        result = self.validator.validate(raw_body)
        if not result.ok:
            self.security_log.record(
                INVALID_REQUEST,
                success=False,
                error=result.reason,
                metadata={"client_ip": context.client_ip},
            )
            return result

        if result.value.stripped_keys:
            self.security_log.record(
                SUSPICIOUS_PAYLOAD,
                success=False,
                error="dangerous keys stripped",
                metadata={
                    "client_ip": context.client_ip,
                    "keys": list(result.value.stripped_keys),
                },
                severity=Severity.HIGH,
            )
        return result

    @staticmethod
    def _parse(payload: CleanPayload, model: type[M]) -> M | None:
        """Check a sanitized payload against a request model; None if it does not fit."""
        try:
            return model.model_validate(payload.data)
        except ValidationError as e:
            logger.debug("%s rejected: %d error(s)", model.__name__, e.error_count())
            return None

    def _authenticate(self, access_token: str | None) -> Account | None:
        if not access_token:
            return None
        claims = self.tokens.verify(access_token)
        if claims is None:
            return None
        return self._call_store(self.accounts.get_by_id, claims.account_id)

    def _call_store(self, operation: Callable[..., T], *args: Any) -> T:
        """
        Run one store call on the worker pool with a timeout.

        Domain exceptions (DuplicateEmail, AccountNotFound) pass through.

        Raises:
            StoreUnavailable: On timeout or any unexpected store exception
        """
        future = self._executor.submit(operation, *args)
        try:
            return future.result(timeout=self._store_timeout)
        except (DuplicateEmail, AccountNotFound):
            raise
        except FutureTimeout as e:
            future.cancel()
            raise StoreUnavailable(
                f"{getattr(operation, '__name__', 'store call')} timed out "
                f"after {self._store_timeout}s"
            ) from e
        except Exception as e:
            logger.exception("Store call %s failed", getattr(operation, "__name__", operation))
            raise StoreUnavailable(f"{type(e).__name__}: {e}") from e

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _record_store_error(
        self,
        operation: str,
        error: Exception,
        email: str | None = None,
        account_id: str | None = None,
    ) -> None:
        self.security_log.record(
            STORE_ERROR,
            success=False,
            account_id=account_id,
            email=email,
            error=str(error),
            metadata={"operation": operation},
            severity=Severity.WARNING,
        )

    def _reject_token(self, context: RequestContext) -> GatewayResponse:
        self.security_log.record(
            TOKEN_REJECTED,
            success=False,
            metadata={"client_ip": context.client_ip},
            severity=Severity.WARNING,
        )
        return self._fail(FailureKind.UNAUTHORIZED, INVALID_SESSION)

    @staticmethod
    def _session_response(
        status_code: int,
        message: str,
        session: SessionTokens,
        user: Mapping[str, str] | None = None,
    ) -> GatewayResponse:
        body: dict[str, Any] = {
            "success": True,
            "message": message,
            "sessionId": session.access_token,
            "refreshToken": session.refresh_token,
            "expiresIn": session.expires_in,
        }
        if user is not None:
            body["user"] = dict(user)
        return GatewayResponse(status_code, body)

    @staticmethod
    def _fail(
        kind: FailureKind,
        message: str | None = None,
        details: list[str] | None = None,
    ) -> GatewayResponse:
        body: dict[str, Any] = {"success": False, "error": message or kind.default_message}
        if details:
            body["details"] = details
        return GatewayResponse(kind.status_code, body)
