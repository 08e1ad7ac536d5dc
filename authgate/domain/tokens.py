"""
Session tokens - Signed, expiring access and refresh tokens.

Tokens are HS256 JWTs (python-jose) carrying the account id as ``sub``, a
random ``jti``, ``iat``, ``exp`` and a ``typ`` of "access" or "refresh".
Verification returns None on any failure, and the gateway turns that into a
401. Logout and refresh rotation revoke tokens by ``jti`` in a
``RevocationStore``, so a revoked token fails verification until it would
have expired anyway.

Expiry is checked against the injectable clock rather than by python-jose
itself, so tests can move time forward without sleeping.
"""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from .ports import RevocationStore

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

ACCESS = "access"
REFRESH = "refresh"

DEFAULT_ACCESS_TTL_SECONDS = 3600
DEFAULT_REFRESH_TTL_SECONDS = 14 * 24 * 3600


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    """Verified token contents."""

    account_id: str
    token_id: str
    token_type: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class SessionTokens:
    """Access/refresh pair handed to the client after login or registration."""

    access_token: str
    refresh_token: str
    expires_in: int


class SessionTokenService:
    """
    Issues, verifies and revokes session tokens.

    Args:
        secret_key: HMAC signing key
        revocations: Server-side revocation list
        access_ttl_seconds: Lifetime of access tokens
        refresh_ttl_seconds: Lifetime of refresh tokens
        clock: Current UTC time (injectable for tests)
    """

    def __init__(
        self,
        secret_key: str,
        revocations: RevocationStore,
        access_ttl_seconds: int = DEFAULT_ACCESS_TTL_SECONDS,
        refresh_ttl_seconds: int = DEFAULT_REFRESH_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self._revocations = revocations
        self._access_ttl = access_ttl_seconds
        self._refresh_ttl = refresh_ttl_seconds
        self._clock = clock

    def issue(self, account_id: str) -> SessionTokens:
        """Issue a fresh access/refresh pair for ``account_id``."""
        return SessionTokens(
            access_token=self._encode(account_id, ACCESS, self._access_ttl),
            refresh_token=self._encode(account_id, REFRESH, self._refresh_ttl),
            expires_in=self._access_ttl,
        )

    def verify(self, token: str, token_type: str = ACCESS) -> TokenClaims | None:
        """
        Decode and check a token.

        Returns:
            The claims, or None if the signature, type, expiry or revocation
            check fails
        """
        claims = self._decode(token)
        if claims is None or claims.token_type != token_type:
            return None
        if claims.expires_at <= self._clock():
            return None
        if self._revocations.is_revoked(claims.token_id):
            return None
        return claims

    def revoke(self, token: str, token_type: str = ACCESS) -> TokenClaims | None:
        """
        Revoke a valid token.

        Returns:
            The revoked token's claims, or None if it was already unusable.
            Of two concurrent calls for one token only one gets the claims.
        """
        claims = self.verify(token, token_type)
        if claims is None:
            return None
        if not self._revocations.revoke(claims.token_id, claims.expires_at):
            return None
        return claims

    def rotate(self, refresh_token: str) -> tuple[TokenClaims, SessionTokens] | None:
        """
        Exchange a refresh token for a new pair, revoking the old refresh token.

        Returns:
            (old refresh claims, new pair), or None if the refresh token is unusable
        """
        claims = self.revoke(refresh_token, REFRESH)
        if claims is None:
            return None
        return claims, self.issue(claims.account_id)

    def purge_expired(self) -> int:
        """Drop revocation records for tokens that have expired."""
        return self._revocations.purge_expired(self._clock())

    def _encode(self, account_id: str, token_type: str, ttl_seconds: int) -> str:
        now = self._clock()
        payload = {
            "sub": account_id,
            "jti": secrets.token_urlsafe(16),
            "typ": token_type,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def _decode(self, token: str) -> TokenClaims | None:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError:
            return None

        try:
            return TokenClaims(
                account_id=str(payload["sub"]),
                token_id=str(payload["jti"]),
                token_type=str(payload["typ"]),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            logger.debug("Signed token with malformed claims rejected")
            return None
