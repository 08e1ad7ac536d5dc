"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance, configures the
security-header middleware, the catch-all exception handler and the
lifespan that builds and tears down the gateway.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from authgate import __version__
from authgate.api.auth import router as auth_router
from authgate.bootstrap import GatewayResources, build_gateway
from authgate.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "auth",
        "description": "Registration, login, logout and session management",
    },
]

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Referrer-Policy": "no-referrer",
}
HSTS_HEADER = ("Strict-Transport-Security", "max-age=63072000; includeSubDomains")


def apply_security_headers(response: Response, settings: Settings) -> Response:
    """Attach the boundary's response headers, whatever the outcome."""
    for name, value in SECURITY_HEADERS.items():
        response.headers[name] = value
    if settings.is_production:
        response.headers[HSTS_HEADER[0]] = HSTS_HEADER[1]
    return response


async def _periodic_cleanup(resources: GatewayResources, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(resources.sweep)
        except Exception:
            logger.exception("Periodic cleanup failed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration; defaults to the cached environment settings
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Manages application startup and shutdown:
        - Builds the gateway and its stores on startup
        - Runs the periodic rate-limit / revocation cleanup
        - Closes worker and connection pools on shutdown
        """
        logger.info("Starting application...")
        resources = build_gateway(settings)
        app.state.resources = resources

        cleanup = asyncio.create_task(
            _periodic_cleanup(resources, settings.cleanup_interval_seconds)
        )
        logger.info("Application startup complete")

        yield

        logger.info("Shutting down application...")
        cleanup.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup
        resources.close()

    app = FastAPI(
        title="authgate",
        description="Authentication gateway - origin checks, rate limiting, "
        "credential policy and security event logging in front of an account store",
        version=__version__,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings

    @app.middleware("http")
    async def security_headers(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        return apply_security_headers(response, settings)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        # Detail stays server-side; the client gets a generic message
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        response = JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )
        return apply_security_headers(response, settings)

    app.include_router(auth_router, prefix="/auth")

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Liveness check."""
        return {"status": "healthy"}

    return app


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
