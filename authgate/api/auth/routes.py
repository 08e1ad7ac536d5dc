"""
Auth API routes.

Defines the REST endpoints of the authentication gateway. Routes only move
data between HTTP and the gateway: they read the raw body, collect the
request context and turn the gateway's response into JSON. Status codes and
messages are decided by the gateway.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from authgate.api.dependencies import get_access_token, get_gateway, get_request_context
from authgate.api.models import (
    CurrentSessionResponse,
    DeleteAccountRequest,
    ErrorResponse,
    LoginRequest,
    LogoutRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    RefreshRequest,
    RegisterRequest,
    SecurityLogResponse,
    SessionResponse,
    request_body,
)
from authgate.domain.gateway import AuthGateway, RequestContext
from authgate.domain.results import GatewayResponse

router = APIRouter(tags=["auth"])


def _json(response: GatewayResponse) -> JSONResponse:
    return JSONResponse(status_code=response.status_code, content=response.body)


@router.post(
    "/register",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input or weak password"},
        403: {"model": ErrorResponse, "description": "Untrusted origin"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        429: {"model": ErrorResponse, "description": "Too many attempts"},
        503: {"model": ErrorResponse, "description": "Account store unavailable"},
    },
    summary="Register a new account",
    openapi_extra=request_body(RegisterRequest),
)
async def register(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Create an account and open a session.

    - **name**: Display name
    - **email**: Email address, unique case-insensitively
    - **password**: Password (8-128 characters)
    """
    body = await request.body()
    return _json(await run_in_threadpool(gateway.register, context, body))


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields"},
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": ErrorResponse, "description": "Untrusted origin"},
        429: {"model": ErrorResponse, "description": "Too many attempts"},
        503: {"model": ErrorResponse, "description": "Account store unavailable"},
    },
    summary="Log in",
    openapi_extra=request_body(LoginRequest),
)
async def login(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """
    Check credentials and open a session.

    The same 401 response is returned whether the email is unknown or the
    password is wrong.
    """
    body = await request.body()
    return _json(await run_in_threadpool(gateway.login, context, body))


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log out",
    openapi_extra=request_body(LogoutRequest, required=False),
)
async def logout(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    access_token: str | None = Depends(get_access_token),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Revoke the bearer access token and an optional refresh token in the body."""
    body = await request.body()
    return _json(await run_in_threadpool(gateway.logout, context, access_token, body))


@router.post(
    "/refresh",
    response_model=SessionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing refresh token"},
        401: {"model": ErrorResponse, "description": "Invalid or expired session"},
        403: {"model": ErrorResponse, "description": "Untrusted origin"},
        429: {"model": ErrorResponse, "description": "Too many attempts"},
    },
    summary="Rotate a refresh token",
    openapi_extra=request_body(RefreshRequest),
)
async def refresh(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Exchange a refresh token for a new access/refresh pair."""
    body = await request.body()
    return _json(await run_in_threadpool(gateway.refresh, context, body))


@router.get(
    "/session",
    response_model=CurrentSessionResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Current account",
)
async def session(
    access_token: str | None = Depends(get_access_token),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Return the account and profile behind the bearer token."""
    return _json(await run_in_threadpool(gateway.session, access_token))


@router.patch(
    "/profile",
    response_model=ProfileResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid profile fields"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Untrusted origin"},
    },
    summary="Update profile",
    openapi_extra=request_body(ProfileUpdateRequest),
)
async def update_profile(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    access_token: str | None = Depends(get_access_token),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Create or patch the current account's profile."""
    body = await request.body()
    return _json(
        await run_in_threadpool(gateway.update_profile, context, access_token, body)
    )


@router.delete(
    "/account",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or wrong confirmation"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Untrusted origin"},
    },
    summary="Delete account",
    openapi_extra=request_body(DeleteAccountRequest),
)
async def delete_account(
    request: Request,
    context: RequestContext = Depends(get_request_context),
    access_token: str | None = Depends(get_access_token),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Delete the current account. Requires ``{"confirmation": "DELETE"}``."""
    body = await request.body()
    return _json(
        await run_in_threadpool(gateway.delete_account, context, access_token, body)
    )


@router.get(
    "/logs",
    response_model=SecurityLogResponse,
    responses={401: {"model": ErrorResponse, "description": "Not authenticated"}},
    summary="Security events for the current account",
)
async def security_logs(
    access_token: str | None = Depends(get_access_token),
    gateway: AuthGateway = Depends(get_gateway),
) -> JSONResponse:
    """Return the 50 most recent security events for the current account."""
    return _json(await run_in_threadpool(gateway.security_events, access_token))
