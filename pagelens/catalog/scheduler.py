"""Periodic catalog refresh.

The scheduler wakes up every ``check_interval`` seconds and starts a
registry refresh when the catalog is older than ``refresh_interval``. It
never waits for the refresh itself, so a slow catalog host does not delay
the next check.
"""

from __future__ import annotations

import asyncio
import logging

from pagelens.catalog.registry import Registry

logger = logging.getLogger(__name__)

MINUTE = 60.0
HOUR = 60 * MINUTE

CHECK_INTERVAL = 5 * MINUTE
REFRESH_INTERVAL = 5 * HOUR


class RefreshScheduler:
    """Keeps the registry's catalogs warm.

    Attributes:
        registry: The registry to refresh.
        check_interval: Seconds between staleness checks.
        refresh_interval: Age in seconds after which the catalog is stale.
    """

    def __init__(
        self,
        registry: Registry,
        check_interval: float = CHECK_INTERVAL,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        self.registry = registry
        self.check_interval = check_interval
        self.refresh_interval = refresh_interval
        self._task: asyncio.Task[None] | None = None

    def is_stale(self) -> bool:
        return self.registry.catalog_age() > self.refresh_interval

    def tick(self) -> asyncio.Task | None:
        """Run one staleness check.

        Returns:
            The refresh task when a refresh was triggered, else None.
        """
        if not self.is_stale():
            return None
        logger.debug("Catalog is stale, refreshing")
        return self.registry.refresh()

    async def run(self) -> None:
        """Check forever."""
        while True:
            self.tick()
            await asyncio.sleep(self.check_interval)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
            logger.info(
                f"Catalog refresh scheduled every {self.check_interval:.0f}s "
                f"(stale after {self.refresh_interval:.0f}s)"
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the background task at process shutdown."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
