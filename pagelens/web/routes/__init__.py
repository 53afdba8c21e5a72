"""Route modules for the render service.

- render: The page rendering endpoint
- catalog: Registry status and explicit refresh
"""

from pagelens.web.routes.catalog import router as catalog_router
from pagelens.web.routes.render import router as render_router

__all__ = [
    "catalog_router",
    "render_router",
]
