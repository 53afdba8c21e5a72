"""FastAPI application for the render service.

This module provides:
- The lifespan context manager that starts the catalog refresh scheduler
- create_app() for uvicorn and tests
- get_service() for route dependencies
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request

from pagelens.config import Settings
from pagelens.service import RenderService, build_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI app.

    Builds the service unless one was injected, starts the refresh
    scheduler, and releases the HTTP client on shutdown.
    """
    service: RenderService | None = app.state.service
    owned = service is None
    if service is None:
        service = build_service(app.state.settings)
        app.state.service = service

    if app.state.schedule:
        service.scheduler.start()
    logger.info("Render service started")

    yield

    logger.info("Render service shutting down")
    if owned:
        await service.close()
        app.state.service = None
    else:
        await service.scheduler.stop()


def get_service(request: Request) -> RenderService:
    """Get the app's render service.

    Raises:
        RuntimeError: If the service is not initialized.
    """
    service: RenderService | None = request.app.state.service
    if service is None:
        raise RuntimeError("Render service not initialized")
    return service


def create_app(
    settings: Settings | None = None,
    service: RenderService | None = None,
    schedule: bool = True,
) -> FastAPI:
    """Create a new FastAPI application.

    Args:
        settings: Configuration; read from the environment when omitted.
        service: Pre-built service, e.g. with a stub catalog source.
        schedule: Start the periodic catalog refresh on startup.

    Returns:
        Configured FastAPI application.
    """
    from pagelens.web.routes import catalog_router, render_router

    app = FastAPI(
        title="pagelens",
        description="Renders third-party pages through catalog parsers and templates",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings or (service.settings if service else Settings())
    app.state.service = service
    app.state.schedule = schedule

    app.include_router(render_router)
    app.include_router(catalog_router)

    return app
