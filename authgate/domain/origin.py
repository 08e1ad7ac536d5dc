"""
Origin guard - Decides whether a request's declared origin is trustworthy.

Policy:
- Development: any ``http://localhost:<port>`` or ``http://127.0.0.1:<port>``
  origin or referer is accepted, so local front-ends work without a static
  allow-list.
- Production: the origin must exactly match an allow-list entry, or the
  referer must start with one.
- A request with no Origin header is treated as same-origin and accepted.
  This also lets non-browser clients through.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

LOOPBACK_PREFIXES = ("http://localhost:", "http://127.0.0.1:")

PRODUCTION = "production"


def is_trusted_origin(
    origin: str | None,
    referer: str | None,
    environment: str,
    allowed_origins: Iterable[str] = (),
) -> bool:
    """
    Return True if the declared origin/referer may call the auth endpoints.

    Args:
        origin: Value of the Origin header, if any
        referer: Value of the Referer header, if any
        environment: Deployment mode; only "production" enforces the allow-list
        allowed_origins: Exact origins trusted in production

    Returns:
        True if trusted. Never raises.
    """
    if environment != PRODUCTION:
        if origin and origin.startswith(LOOPBACK_PREFIXES):
            return True
        if referer and referer.startswith(LOOPBACK_PREFIXES):
            return True
    else:
        allowed = [entry for entry in allowed_origins if entry]
        if origin and origin in allowed:
            return True
        if referer and any(referer.startswith(entry) for entry in allowed):
            return True

    # No Origin header at all: same-origin form post or non-browser client
    return not origin


@dataclass(frozen=True)
class OriginGuard:
    """Origin check bound to the deployment's environment and allow-list."""

    environment: str = "development"
    allowed_origins: Sequence[str] = field(default_factory=tuple)

    def is_trusted(self, origin: str | None, referer: str | None) -> bool:
        return is_trusted_origin(origin, referer, self.environment, self.allowed_origins)
