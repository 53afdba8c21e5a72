"""Web interface for the render service.

This package provides the FastAPI application serving rendered pages and
catalog diagnostics.
"""

from pagelens.web.app import create_app, get_service, lifespan

__all__ = [
    "create_app",
    "get_service",
    "lifespan",
]
