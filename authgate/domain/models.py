"""
Domain models - Accounts, profiles and security log entries.

Plain dataclasses shared by the gateway and every store adapter.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

# Profile attributes a client may write. Anything else is dropped.
PROFILE_FIELDS = (
    "display_name",
    "bio",
    "avatar_url",
    "phone",
    "address",
    "city",
    "country",
)


@dataclass(frozen=True)
class Account:
    """One registered principal. ``password_hash`` is a bcrypt hash."""

    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime

    def public_view(self) -> dict[str, str]:
        """Minimal public fields returned to the client after login."""
        return {"name": self.name, "email": self.email}


@dataclass(frozen=True)
class Profile:
    """Optional display attributes owned by one account."""

    account_id: str
    created_at: datetime
    updated_at: datetime
    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data


class Severity(str, Enum):
    """Security event severity. HIGH entries also go to the alert path."""

    INFO = "info"
    WARNING = "warning"
    HIGH = "high"


@dataclass(frozen=True)
class SecurityLogEntry:
    """Append-only record of one authentication-relevant decision."""

    id: str
    action: str
    success: bool
    timestamp: datetime
    account_id: str | None = None
    email: str | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    severity: Severity = Severity.INFO

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "success": self.success,
            "timestamp": self.timestamp.isoformat(),
            "accountId": self.account_id,
            "email": self.email,
            "error": self.error,
            "metadata": dict(self.metadata),
            "severity": self.severity.value,
        }
