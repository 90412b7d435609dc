# carscout/cache.py
"""In-memory listing cache with a TTL and single-flight refresh.

One ``ListingCache`` lives for the whole process (``listing_cache`` below) and
is handed to routes through ``get_cache``, the same way a session factory
would be. Contents are only ever replaced wholesale after a successful
aggregation.
"""
import asyncio
import time
from typing import Awaitable, Callable, NamedTuple, Optional, Sequence, Tuple

from .schemas import Listing
from .scrape import AggregationFailure, aggregate_regions
from .utils import env_int, logger

CACHE_TTL_HOURS = env_int("CACHE_TTL_HOURS", 24)

Aggregator = Callable[[], Awaitable[Sequence[Listing]]]


class CacheResult(NamedTuple):
    listings: Tuple[Listing, ...]
    cached: bool
    last_updated: Optional[int]


class ListingCache:
    def __init__(
        self,
        aggregate: Aggregator = aggregate_regions,
        ttl_hours: float = CACHE_TTL_HOURS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._aggregate = aggregate
        self._ttl_ms = ttl_hours * 60 * 60 * 1000
        self._clock = clock
        self._listings: Tuple[Listing, ...] = ()
        self._last_updated: Optional[int] = None
        self._inflight: Optional[asyncio.Task] = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    @property
    def listings(self) -> Tuple[Listing, ...]:
        return self._listings

    @property
    def last_updated(self) -> Optional[int]:
        return self._last_updated

    def snapshot(self) -> CacheResult:
        return CacheResult(self._listings, True, self._last_updated)

    def is_fresh(self) -> bool:
        # an empty cache is always stale
        if not self._listings or self._last_updated is None:
            return False
        return self._now_ms() - self._last_updated < self._ttl_ms

    def replace(self, listings: Sequence[Listing]) -> int:
        self._listings = tuple(listings)
        # keep timestamps monotonic even if the wall clock steps back
        now = self._now_ms()
        if self._last_updated is not None and now < self._last_updated:
            now = self._last_updated
        self._last_updated = now
        return now

    async def _run_aggregation(self) -> Tuple[Tuple[Listing, ...], int]:
        listings = await self._aggregate()
        updated = self.replace(listings)
        logger.info("Cache replaced with %d listings", len(self._listings))
        return self._listings, updated

    async def _refresh(self) -> Tuple[Tuple[Listing, ...], int]:
        # concurrent callers share one aggregation
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._run_aggregation())
            self._inflight.add_done_callback(self._clear_inflight)
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    async def get_listings(self) -> CacheResult:
        if self.is_fresh():
            return CacheResult(self._listings, True, self._last_updated)
        try:
            listings, updated = await self._refresh()
        except AggregationFailure as e:
            logger.warning("Aggregation failed, serving %d cached listings: %s", len(self._listings), e)
            return CacheResult(self._listings, self._last_updated is not None, self._last_updated)
        return CacheResult(listings, False, updated)

    async def force_refresh(self) -> CacheResult:
        """Re-run aggregation regardless of age. AggregationFailure propagates."""
        listings, updated = await self._refresh()
        return CacheResult(listings, False, updated)


listing_cache = ListingCache()

def get_cache() -> ListingCache:
    return listing_cache
