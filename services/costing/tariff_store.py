"""
Time-bounded in-process cache of the full tariff set.

The tariff admin screens call invalidate() after every create, update or
delete, so the TTL only bounds staleness for edits made elsewhere.

Two callers hitting a stale cache at the same time may both refetch.
That costs one redundant read and is not guarded against. A fetch that
was already running when invalidate() was called is returned to its
caller but never stored.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from models.costing import Tariff
from services.costing.config import CostingConfig

logger = logging.getLogger(__name__)

TariffFetcher = Callable[[], List[Tariff]]


class TariffStore:
    """
    Cached tariff set with explicit invalidation.

    Usage:
        store = TariffStore(fetcher=TariffRepository().fetch_all, ttl_seconds=300)
        tariffs = await store.get_all()
        store.invalidate()
    """

    def __init__(
        self,
        fetcher: Optional[TariffFetcher] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            fetcher: Blocking callable returning all tariffs. Defaults to
                TariffRepository().fetch_all.
            ttl_seconds: Cache lifetime; defaults to CostingConfig.
            clock: Monotonic time source in seconds (injectable for tests).
        """
        if fetcher is None:
            from db.tariff_repository import TariffRepository
            fetcher = TariffRepository().fetch_all
        if ttl_seconds is None:
            ttl_seconds = CostingConfig.from_env().tariff_cache_ttl_seconds

        self._fetcher = fetcher
        self._clock = clock
        self.ttl_seconds = ttl_seconds
        self.items: Optional[List[Tariff]] = None
        self.fetched_at: Optional[float] = None
        self.generation = 0

    def is_fresh(self) -> bool:
        if self.items is None or self.fetched_at is None:
            return False
        return (self._clock() - self.fetched_at) < self.ttl_seconds

    async def get_all(self) -> List[Tariff]:
        """
        Return all tariffs, refetching when the cache is empty or expired.

        A failed fetch is logged and yields an empty list; nothing is cached,
        so the next call retries.
        """
        if self.is_fresh():
            return list(self.items)

        generation = self.generation
        try:
            items = await asyncio.to_thread(self._fetcher)
        except Exception as e:
            logger.error(f"Failed to fetch tariffs: {e}")
            return []

        items = list(items)
        if generation != self.generation:
            logger.info("Tariff cache invalidated during fetch, result not cached")
            return items

        self.items = items
        self.fetched_at = self._clock()
        logger.info(f"Tariff cache refreshed: {len(items)} tariffs")
        return list(items)

    def invalidate(self) -> None:
        """Drop the cached set; the next get_all() refetches regardless of TTL."""
        self.items = None
        self.fetched_at = None
        self.generation += 1
        logger.info("Tariff cache invalidated")


_default_store: Optional[TariffStore] = None


def get_tariff_store() -> TariffStore:
    """Shared store used by the public entry points (created on first use)."""
    global _default_store
    if _default_store is None:
        _default_store = TariffStore()
    return _default_store


def set_tariff_store(store: Optional[TariffStore]) -> None:
    """Replace the shared store; None resets it so the next use rebuilds it."""
    global _default_store
    _default_store = store
