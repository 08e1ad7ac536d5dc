"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the gateway, the
request context and bearer credentials into routes.
"""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from authgate.config.settings import Settings
from authgate.domain.gateway import AuthGateway, RequestContext


def get_app_settings(request: Request) -> Settings:
    """
    Get settings from app state.

    The settings are attached by the application factory.
    """
    return request.app.state.settings


def get_gateway(request: Request) -> AuthGateway:
    """
    Get the gateway from app state.

    The gateway is built during app lifespan startup and stored in app.state.
    """
    return request.app.state.resources.gateway


def get_client_ip(request: Request, settings: Settings) -> str | None:
    """
    Resolve the client address used for rate limiting.

    X-Forwarded-For is honoured only when ``trust_forwarded_for`` is set,
    since any client can send the header.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def get_request_context(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> RequestContext:
    """Collect the transport details the gateway checks."""
    return RequestContext(
        client_ip=get_client_ip(request, settings),
        origin=request.headers.get("origin"),
        referer=request.headers.get("referer"),
    )


# Bearer scheme for OpenAPI documentation. auto_error is off so a missing
# header reaches the gateway, which owns the 401 response format.
http_bearer = HTTPBearer(auto_error=False)


def get_access_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str | None:
    """Extract the bearer access token, if one was sent."""
    if credentials is None:
        return None
    return credentials.credentials
