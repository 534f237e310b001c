"""
Stale-while-revalidate cache for the inventory snapshot.
One entry, one writer path, one revalidation in flight at a time.
"""
import asyncio
import json
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

from app.aggregators.inventory import InventoryAggregator, round_half_up
from app.errors import UpstreamError
from app.logger import logger
from app.models.inventory import Snapshot
from app.sentry import capture_revalidation_failure

DEFAULT_TTL_SECONDS = 240 * 60


def format_timestamp(timestamp: float) -> str:
    """Unix seconds to ISO-8601 UTC with millisecond precision."""
    moment = datetime.fromtimestamp(timestamp, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def payload_size_mb(payload: Any) -> float:
    return len(json.dumps(payload, default=str).encode("utf-8")) / (1024 * 1024)


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot and the time it was built. Always replaced together."""
    snapshot: Snapshot
    timestamp: float


@dataclass(frozen=True)
class CacheResponse:
    data: Snapshot
    cached: bool
    stale: bool
    revalidating: bool
    cached_at: float
    cache_age_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        response = {
            "data": self.data.to_dict(),
            "cached": self.cached,
            "stale": self.stale,
            "revalidating": self.revalidating,
            "cachedAt": format_timestamp(self.cached_at),
        }
        if self.cache_age_seconds is not None:
            response["cacheAge"] = f"{int(round_half_up(self.cache_age_seconds))} seconds"
        return response


class InventoryCache:
    """
    Serves the current snapshot immediately, fresh or stale, and refreshes
    it in the background.

    The is_revalidating flag is the single-flight token. It is set before a
    refresh task is spawned and cleared only after the entry has been
    replaced or the attempt abandoned.
    """

    def __init__(self, service, aggregator=InventoryAggregator,
                 ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.service = service
        self.aggregator = aggregator
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[asyncio.Task] = None
        self.is_revalidating = False
        self.last_error: Optional[Exception] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    @property
    def state(self) -> CacheState:
        entry = self._entry
        if entry is None:
            return CacheState.EMPTY
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            return CacheState.STALE
        return CacheState.FRESH

    async def get(self) -> CacheResponse:
        """
        Return the cached snapshot without waiting on upstream.

        Only an empty cache blocks: the caller waits for a fresh snapshot.

        Raises:
            UpstreamError: If the cache is empty and the fetch fails
        """
        entry = self._entry
        if entry is None:
            logger.info("No cache found, fetching fresh inventory data")
            entry = await self._populate()
            return CacheResponse(
                data=entry.snapshot,
                cached=False,
                stale=False,
                revalidating=False,
                cached_at=entry.timestamp,
            )

        age = self._clock() - entry.timestamp
        is_stale = age >= self.ttl_seconds

        if is_stale and not self.is_revalidating:
            logger.info("Cache is stale, triggering background revalidation")
            self.trigger_revalidation()

        logger.info(f"Serving {'stale' if is_stale else 'fresh'} cache")
        return CacheResponse(
            data=entry.snapshot,
            cached=True,
            stale=is_stale,
            revalidating=self.is_revalidating,
            cached_at=entry.timestamp,
            cache_age_seconds=age,
        )

    async def revalidate(self) -> bool:
        """
        Refresh the snapshot unless a refresh is already running.

        Never raises on upstream failure; the previous snapshot stays.

        Returns:
            True if this call refreshed the snapshot
        """
        if self.is_revalidating:
            logger.info("Revalidation already in progress, skipping")
            return False
        return await asyncio.shield(self._spawn())

    def trigger_revalidation(self) -> bool:
        """Start a background refresh without waiting for it."""
        if self.is_revalidating:
            logger.info("Revalidation already in progress, skipping")
            return True
        self._spawn()
        return self.is_revalidating

    def status(self) -> Dict[str, Any]:
        entry = self._entry
        return {
            "state": self.state.value,
            "revalidating": self.is_revalidating,
            "cachedAt": format_timestamp(entry.timestamp) if entry else None,
            "cacheAgeSeconds": round(self._clock() - entry.timestamp, 1) if entry else None,
            "ttlSeconds": self.ttl_seconds,
        }

    async def close(self):
        """Cancel the refresh in flight, if any. Called before the upstream session closes."""
        task = self._inflight
        if task is None:
            return

        logger.info("Cancelling in-flight revalidation")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        # A task cancelled before it started never reaches its own cleanup
        self._inflight = None
        self.is_revalidating = False

    async def _populate(self) -> CacheEntry:
        """Join the refresh in flight, or start one, and wait for its result."""
        task = self._inflight if self._inflight is not None else self._spawn(background=False)
        await asyncio.shield(task)

        entry = self._entry
        if entry is None:
            if self.last_error is not None:
                raise self.last_error
            raise UpstreamError("Inventory data unavailable")
        return entry

    def _spawn(self, background: bool = True) -> asyncio.Task:
        # Flag goes up before the task exists so a second trigger sees it
        self.is_revalidating = True
        try:
            self._inflight = asyncio.create_task(self._run_revalidation(background))
        except RuntimeError:
            self.is_revalidating = False
            raise
        return self._inflight

    async def _run_revalidation(self, background: bool = True) -> bool:
        logger.info("Revalidation started")
        started = self._clock()
        try:
            records = await self.service.fetch_all()
            logger.info(f"Fetched {len(records)} products from upstream")
            logger.info(f"Fetched inventory data size: {payload_size_mb([asdict(r) for r in records]):.2f} MB")

            snapshot = self.aggregator.process(records)
            logger.info(f"Processed inventory data size: {payload_size_mb(snapshot.to_dict()):.2f} MB")

            self._entry = CacheEntry(snapshot=snapshot, timestamp=self._clock())
            self.last_error = None
            logger.info(f"Cache revalidated successfully at {format_timestamp(self._entry.timestamp)}")
            return True

        except Exception as e:
            self.last_error = e
            logger.warning(f"Error during revalidation: {e}", exc_info=True)

            # Blocking failures are raised to the caller, which logs and reports them
            if background:
                capture_revalidation_failure(e, {
                    "had_snapshot": self._entry is not None,
                    "duration_seconds": round(self._clock() - started, 2),
                })
            return False

        finally:
            self._inflight = None
            self.is_revalidating = False
