"""Wiring of the render service's long-lived objects."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from pagelens.catalog.dispatcher import Dispatcher
from pagelens.catalog.registry import Registry
from pagelens.catalog.scheduler import RefreshScheduler
from pagelens.catalog.source import (
    CatalogSource,
    GitHubCatalogSource,
    LocalCatalogSource,
)
from pagelens.common.request_manager import AsyncRequestManager
from pagelens.config import Settings
from pagelens.render.pipeline import RenderPipeline

logger = logging.getLogger(__name__)


@dataclass
class RenderService:
    """Everything a running render service owns.

    Attributes:
        settings: Effective configuration.
        request_manager: Shared HTTP client.
        registry: Parser and template catalogs.
        dispatcher: Catalog lookups for requests.
        pipeline: Request-time rendering.
        scheduler: Periodic catalog refresh.
    """

    settings: Settings
    request_manager: AsyncRequestManager
    registry: Registry
    dispatcher: Dispatcher
    pipeline: RenderPipeline
    scheduler: RefreshScheduler

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.request_manager.close()


def build_source(
    settings: Settings, request_manager: AsyncRequestManager
) -> CatalogSource:
    if settings.local_catalog_dir is not None:
        logger.info(f"Using local catalog at {settings.local_catalog_dir}")
        return LocalCatalogSource(settings.local_catalog_dir)
    return GitHubCatalogSource(
        request_manager,
        user=settings.github_user,
        repo=settings.catalog_repo,
        api_base=settings.catalog_api_base,
    )


def build_service(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RenderService:
    """Create the service objects for ``settings``.

    Args:
        settings: Configuration to build from.
        transport: Optional httpx transport for the shared client.
    """
    request_manager = AsyncRequestManager(
        default_user_agent=settings.default_user_agent,
        timeout=settings.request_timeout,
        transport=transport,
    )
    registry = Registry(build_source(settings, request_manager))
    dispatcher = Dispatcher(registry)
    return RenderService(
        settings=settings,
        request_manager=request_manager,
        registry=registry,
        dispatcher=dispatcher,
        pipeline=RenderPipeline(
            dispatcher,
            request_manager,
            content_type=settings.default_content_type,
        ),
        scheduler=RefreshScheduler(
            registry,
            check_interval=settings.check_interval,
            refresh_interval=settings.refresh_interval,
        ),
    )
