"""
API request and response models.

Response models are defined here for OpenAPI schema generation. Request
bodies are parsed inside the gateway (see authgate.domain.requests) after
sanitizing, so hostile payloads get a structured 400 instead of a 422; the
same request models are re-exported here to document them.
"""

from typing import Any

from pydantic import BaseModel, Field

from authgate.domain.requests import (
    DeleteAccountRequest,
    LoginRequest,
    LogoutRequest,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
)

__all__ = [
    "CurrentSessionResponse",
    "DeleteAccountRequest",
    "ErrorResponse",
    "LoginRequest",
    "LogoutRequest",
    "MessageResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "PublicUser",
    "RefreshRequest",
    "RegisterRequest",
    "SecurityLogResponse",
    "SessionResponse",
    "request_body",
]


class PublicUser(BaseModel):
    """Public account fields returned after login."""

    name: str
    email: str


class SessionResponse(BaseModel):
    """Response for register, login and refresh."""

    success: bool
    message: str
    sessionId: str = Field(..., description="Signed access token")
    refreshToken: str
    expiresIn: int = Field(..., description="Access token lifetime in seconds")
    user: PublicUser | None = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    success: bool = False
    error: str
    details: list[str] | None = None


class CurrentSessionResponse(BaseModel):
    """Current account and profile."""

    success: bool
    user: dict[str, Any]
    profile: dict[str, Any] | None = None


class ProfileResponse(BaseModel):
    """Profile after an update."""

    success: bool
    profile: dict[str, Any]


class SecurityLogResponse(BaseModel):
    """Most recent security events for the current account."""

    success: bool
    entries: list[dict[str, Any]]


def request_body(model: type[BaseModel], required: bool = True) -> dict[str, Any]:
    """OpenAPI ``requestBody`` entry documenting ``model``."""
    return {
        "requestBody": {
            "required": required,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }
