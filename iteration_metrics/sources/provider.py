"""Iteration data providers and the cache-first provider wrapper."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from pydantic import ValidationError

from ..cache.store import IterationCacheStore, StalenessStatus
from ..errors import CacheCorruption
from .models import IterationData

logger = logging.getLogger(__name__)


class IterationDataProvider(ABC):
    """Source of raw iteration data."""

    @abstractmethod
    async def fetch_iteration_data(self, iteration_id: str) -> IterationData:
        """Fetch everything recorded for one iteration."""

    async def fetch_multiple_iterations(
        self, iteration_ids: Sequence[str]
    ) -> list[IterationData]:
        """Fetch several iterations; results follow the order of ``iteration_ids``."""
        results = await asyncio.gather(
            *(self.fetch_iteration_data(iteration_id) for iteration_id in iteration_ids)
        )
        return list(results)


class CachedIterationDataProvider(IterationDataProvider):
    """Cache-first wrapper around another provider.

    Hits are served from the cache store. Misses, and stale entries when
    ``refresh_stale`` is set, are fetched from the wrapped source and written
    back. Cache failures are logged and never fail a fetch. Concurrent misses
    for the same iteration share one source call. With ``refresh`` set every
    fetch goes to the source and replaces the cached entry.
    """

    def __init__(
        self,
        source: IterationDataProvider,
        store: IterationCacheStore,
        refresh_stale: bool = True,
        refresh: bool = False,
    ):
        """Initialize cached provider.

        Args:
            source: Provider that fetches iteration data on a miss
            store: Cache store for raw iteration payloads
            refresh_stale: Refetch entries whose age has reached the store TTL
            refresh: Skip cache reads and refetch every iteration
        """
        self.source = source
        self.store = store
        self.refresh_stale = refresh_stale
        self.refresh = refresh
        self._in_flight: dict[str, asyncio.Task[IterationData]] = {}

    def _read_cache(self, iteration_id: str) -> IterationData | None:
        try:
            entry = self.store.get_entry(iteration_id)
        except CacheCorruption as e:
            logger.warning("Ignoring unreadable cache entry: %s", e)
            return None

        if entry is None:
            logger.debug("Cache miss for iteration %s", iteration_id)
            return None

        status = self.store.classify(entry.last_fetched_at)
        if self.refresh_stale and status == StalenessStatus.STALE:
            logger.debug("Cache entry for iteration %s is stale", iteration_id)
            return None

        try:
            data = IterationData.model_validate(entry.payload)
        except ValidationError as e:
            logger.warning(
                "Ignoring cached data for iteration %s that no longer validates: %s",
                iteration_id,
                e,
            )
            return None

        logger.debug("Cache hit for iteration %s (%s)", iteration_id, status.value)
        return data

    def _write_cache(self, iteration_id: str, data: IterationData) -> None:
        try:
            self.store.set(iteration_id, data.to_json())
        except CacheCorruption as e:
            logger.warning("Failed to cache iteration %s: %s", iteration_id, e)
            return
        logger.info("Cached iteration %s", iteration_id)

    async def _fetch_and_store(self, iteration_id: str) -> IterationData:
        data = await self.source.fetch_iteration_data(iteration_id)
        self._write_cache(iteration_id, data)
        return data

    def _release(self, iteration_id: str, task: asyncio.Task[IterationData]) -> None:
        if self._in_flight.get(iteration_id) is task:
            del self._in_flight[iteration_id]

    async def _fetch_from_source(self, iteration_id: str) -> IterationData:
        task = self._in_flight.get(iteration_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(iteration_id))
            self._in_flight[iteration_id] = task
            task.add_done_callback(
                lambda done: self._release(iteration_id, done)
            )
        else:
            logger.debug("Joining in-flight fetch for iteration %s", iteration_id)

        # Shielded: cancelling one caller leaves the shared fetch running
        return await asyncio.shield(task)

    async def fetch_iteration_data(self, iteration_id: str) -> IterationData:
        if self.refresh:
            return await self.force_refresh(iteration_id)
        cached = self._read_cache(iteration_id)
        if cached is not None:
            return cached
        return await self._fetch_from_source(iteration_id)

    async def force_refresh(self, iteration_id: str) -> IterationData:
        """Fetch from the source regardless of the cache, then write through."""
        return await self._fetch_from_source(iteration_id)
