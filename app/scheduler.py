"""
Periodic staleness check for the inventory cache.
"""
import asyncio
from typing import Optional

from app.cache.inventory_cache import InventoryCache, CacheState
from app.logger import logger

DEFAULT_CHECK_INTERVAL = 60


class StalenessScheduler:
    """Asks the cache to revalidate once its snapshot has outlived the TTL."""

    def __init__(self, cache: InventoryCache, interval_seconds: float = DEFAULT_CHECK_INTERVAL):
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.running = False
        self._task_handle: Optional[asyncio.Task] = None

    def check(self) -> bool:
        """
        Trigger a background revalidation if the snapshot is stale.
        An empty cache is left alone; the first read populates it.

        Returns:
            True if a revalidation was triggered
        """
        if self.cache.state is not CacheState.STALE:
            return False
        if self.cache.is_revalidating:
            return False

        logger.info("Cache is stale, triggering auto-revalidation")
        return self.cache.trigger_revalidation()

    async def _run_loop(self):
        while self.running:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.check()
            except Exception as e:
                logger.error(f"Staleness check failed: {e}", exc_info=True)

    def start(self):
        if not self.running:
            self.running = True
            self._task_handle = asyncio.create_task(self._run_loop())
            logger.info(f"Staleness scheduler started (every {self.interval_seconds}s)")

    async def stop(self):
        self.running = False
        if self._task_handle:
            self._task_handle.cancel()
            try:
                await self._task_handle
            except asyncio.CancelledError:
                pass
            self._task_handle = None
        logger.info("Staleness scheduler stopped")
