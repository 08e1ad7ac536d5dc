"""
Request shapes - Pydantic models for the sanitized request bodies.

The payload validator runs first and hands over a clean dict (dangerous keys
stripped, strings trimmed and truncated). These models then check the shape:
required string fields must be present, non-empty and actual strings.
Unknown keys are ignored. No coercion happens, so ``{"email": 1}`` fails
instead of becoming ``"1"``.

The same models document the request bodies in the OpenAPI schema.
"""

from pydantic import BaseModel, ConfigDict, Field

from .models import PROFILE_FIELDS


class _StrictBody(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")


class RegisterRequest(_StrictBody):
    """Request body for account registration."""

    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., min_length=1, description="Email address (case-insensitive)")
    password: str = Field(..., min_length=1, description="Password (8-128 characters)")


class LoginRequest(_StrictBody):
    """Request body for login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RefreshRequest(_StrictBody):
    """Request body for session refresh."""

    refreshToken: str = Field(..., min_length=1)


class LogoutRequest(_StrictBody):
    """Optional request body for logout."""

    refreshToken: str | None = None


class ProfileUpdateRequest(_StrictBody):
    """Request body for profile updates. Omitted fields are left unchanged."""

    display_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None

    def changes(self) -> dict[str, str | None]:
        """Fields the client actually sent."""
        return self.model_dump(include=set(PROFILE_FIELDS), exclude_unset=True)


class DeleteAccountRequest(_StrictBody):
    """Request body for account deletion."""

    confirmation: str = Field(..., description='Must be the literal string "DELETE"')
