"""Cache status report: age and staleness of every cached iteration."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from ..utils.date_parser import format_timestamp
from .store import (
    CacheMetadata,
    IterationCacheStore,
    StalenessStatus,
    age_in_hours,
    classify_staleness,
)


class IterationCacheStatus(BaseModel):
    """Status of one cached iteration."""

    key: str
    last_fetched_at: datetime
    age_hours: float
    status: StalenessStatus
    size_bytes: int


class CacheStatusReport(BaseModel):
    """Summary of the whole cache."""

    cache_ttl: float
    total_cached_iterations: int
    global_last_updated: datetime | None
    iterations: list[IterationCacheStatus]

    def to_json(self) -> dict[str, Any]:
        return {
            "cacheTTL": self.cache_ttl,
            "totalCachedIterations": self.total_cached_iterations,
            "globalLastUpdated": (
                format_timestamp(self.global_last_updated)
                if self.global_last_updated
                else None
            ),
            "iterations": [
                {
                    "key": item.key,
                    "lastFetchedAt": format_timestamp(item.last_fetched_at),
                    "ageHours": item.age_hours,
                    "status": item.status.value,
                    "sizeBytes": item.size_bytes,
                }
                for item in self.iterations
            ],
        }


def _iteration_status(
    metadata: CacheMetadata, now: datetime, ttl: float
) -> IterationCacheStatus:
    age_hours = age_in_hours(metadata.last_fetched_at, now)
    return IterationCacheStatus(
        key=metadata.key,
        last_fetched_at=metadata.last_fetched_at,
        # status is classified from the unrounded age
        age_hours=round(age_hours, 2),
        status=classify_staleness(age_hours, ttl),
        size_bytes=metadata.size_bytes,
    )


def build_cache_status(
    store: IterationCacheStore, now: datetime | None = None
) -> CacheStatusReport:
    """Build the status report for every entry in ``store``.

    Every entry is classified against the store TTL, whatever TTL it was
    written with.

    Args:
        store: Cache store to inspect
        now: Reference time; defaults to the store clock

    Returns:
        CacheStatusReport, entries ordered by key
    """
    now = now or store.clock()
    iterations = sorted(
        (
            _iteration_status(item, now, store.ttl_hours)
            for item in store.get_all_metadata()
        ),
        key=lambda item: item.key,
    )
    global_last_updated = max(
        (item.last_fetched_at for item in iterations), default=None
    )
    return CacheStatusReport(
        cache_ttl=store.ttl_hours,
        total_cached_iterations=len(iterations),
        global_last_updated=global_last_updated,
        iterations=iterations,
    )
