"""Tests for the cache status report."""

from datetime import UTC, datetime

from iteration_metrics.cache.status import build_cache_status
from iteration_metrics.cache.store import IterationCacheStore, StalenessStatus
from tests.factories import FrozenClock


class TestBuildCacheStatus:
    """Test build_cache_status."""

    def test_empty_cache(self, memory_store: IterationCacheStore) -> None:
        report = build_cache_status(memory_store)
        assert report.cache_ttl == 6
        assert report.total_cached_iterations == 0
        assert report.global_last_updated is None
        assert report.iterations == []
        assert report.to_json() == {
            "cacheTTL": 6,
            "totalCachedIterations": 0,
            "globalLastUpdated": None,
            "iterations": [],
        }

    def test_entries_sorted_by_key_with_status(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("b", {"n": 1})
        clock.advance(hours=2)
        memory_store.set("a", {"n": 2})
        clock.advance(hours=0.5)

        report = build_cache_status(memory_store)

        assert report.total_cached_iterations == 2
        assert [item.key for item in report.iterations] == ["a", "b"]
        assert report.iterations[0].age_hours == 0.5
        assert report.iterations[0].status == StalenessStatus.FRESH
        assert report.iterations[1].age_hours == 2.5
        assert report.iterations[1].status == StalenessStatus.AGING
        assert report.global_last_updated == datetime(2024, 1, 1, 2, tzinfo=UTC)

    def test_age_is_rounded(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("a", {})
        clock.advance(hours=4 / 3)

        report = build_cache_status(memory_store)
        assert report.iterations[0].age_hours == 1.33

    def test_entries_use_the_report_ttl(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        """Test every entry is classified against the TTL in the report."""
        memory_store.set("written-short", {}, ttl=1.5)
        memory_store.set("written-default", {})
        clock.advance(hours=3)

        reader = IterationCacheStore(memory_store.backend, ttl_hours=2, clock=clock)
        report = build_cache_status(reader)

        assert report.cache_ttl == 2
        statuses = {item.key: item.status for item in report.iterations}
        assert statuses == {
            "written-default": StalenessStatus.STALE,
            "written-short": StalenessStatus.STALE,
        }

        report = build_cache_status(memory_store)
        statuses = {item.key: item.status for item in report.iterations}
        assert statuses == {
            "written-default": StalenessStatus.AGING,
            "written-short": StalenessStatus.AGING,
        }

    def test_explicit_reference_time(self, memory_store: IterationCacheStore) -> None:
        memory_store.set("a", {})
        report = build_cache_status(
            memory_store, now=datetime(2024, 1, 1, 6, tzinfo=UTC)
        )
        assert report.iterations[0].status == StalenessStatus.STALE

    def test_json_form(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("iter-1", {"issues": []})
        clock.advance(hours=1)

        data = build_cache_status(memory_store).to_json()
        assert data["cacheTTL"] == 6
        assert data["totalCachedIterations"] == 1
        assert data["globalLastUpdated"] == "2024-01-01T00:00:00Z"

        item = data["iterations"][0]
        assert item["key"] == "iter-1"
        assert item["lastFetchedAt"] == "2024-01-01T00:00:00Z"
        assert item["ageHours"] == 1.0
        assert item["status"] == "aging"
        assert item["sizeBytes"] > 0
