"""
ASGI entry point.

Usage:
    uvicorn authgate.asgi:app --host 0.0.0.0 --port 8000
"""

from authgate.api.main import configure_logging, create_app
from authgate.config.settings import get_settings

settings = get_settings()
configure_logging(settings)

app = create_app(settings)
