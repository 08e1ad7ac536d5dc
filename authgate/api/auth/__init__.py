"""
Auth API package.

Contains the /auth routes of the authentication gateway.
"""

from authgate.api.auth.routes import router

__all__ = ["router"]
