"""Tests for the iteration cache store."""

from datetime import UTC, datetime

import pytest

from iteration_metrics.cache.backends import MemoryCacheBackend
from iteration_metrics.cache.store import (
    IterationCacheStore,
    StalenessStatus,
    classify_staleness,
)
from iteration_metrics.errors import CacheCorruption
from tests.factories import FrozenClock

PAYLOAD = {"iteration": {"id": "iter-1"}, "issues": [{"id": "1", "weight": 3}]}


class FailingBackend(MemoryCacheBackend):
    """Backend whose reads and writes fail at the OS level."""

    def read(self, key: str) -> bytes | None:
        raise OSError("disk unavailable")

    def write(self, key: str, blob: bytes) -> None:
        raise OSError("disk full")


class TestClassifyStaleness:
    """Test staleness buckets."""

    @pytest.mark.parametrize(
        "age_hours,expected",
        [
            (0.0, StalenessStatus.FRESH),
            (0.99, StalenessStatus.FRESH),
            (1.0, StalenessStatus.AGING),
            (5.99, StalenessStatus.AGING),
            (6.0, StalenessStatus.STALE),
            (48.0, StalenessStatus.STALE),
        ],
    )
    def test_buckets_with_default_ttl(
        self, age_hours: float, expected: StalenessStatus
    ) -> None:
        assert classify_staleness(age_hours, 6) == expected

    def test_fresh_wins_over_sub_hour_ttl(self) -> None:
        assert classify_staleness(0.5, 0.5) == StalenessStatus.FRESH
        assert classify_staleness(1.0, 0.5) == StalenessStatus.STALE


class TestIterationCacheStore:
    """Test IterationCacheStore operations."""

    def test_set_and_get(self, memory_store: IterationCacheStore) -> None:
        memory_store.set("iter-1", PAYLOAD)
        assert memory_store.get("iter-1") == PAYLOAD
        assert memory_store.has("iter-1")

    def test_miss(self, memory_store: IterationCacheStore) -> None:
        assert memory_store.get("nope") is None
        assert memory_store.get_entry("nope") is None
        assert not memory_store.has("nope")
        assert memory_store.status("nope") is None

    def test_set_overwrites(self, memory_store: IterationCacheStore) -> None:
        memory_store.set("iter-1", {"v": 1})
        memory_store.set("iter-1", {"v": 2})
        assert memory_store.get("iter-1") == {"v": 2}

    def test_entry_records_fetch_time_and_ttl(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("iter-1", PAYLOAD)
        entry = memory_store.get_entry("iter-1")
        assert entry is not None
        assert entry.key == "iter-1"
        assert entry.last_fetched_at == clock.now
        assert entry.ttl == 6

    def test_status_follows_the_clock(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("iter-1", PAYLOAD)
        assert memory_store.status("iter-1") == StalenessStatus.FRESH

        clock.advance(hours=1)
        assert memory_store.status("iter-1") == StalenessStatus.AGING

        clock.advance(hours=5)
        assert memory_store.status("iter-1") == StalenessStatus.STALE

    def test_stale_entries_are_still_returned(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("iter-1", PAYLOAD)
        clock.advance(hours=100)
        assert memory_store.get("iter-1") == PAYLOAD

    def test_store_ttl_governs_status(self, clock: FrozenClock) -> None:
        """Test entries are classified against the reading store's TTL."""
        backend = MemoryCacheBackend()
        IterationCacheStore(backend, ttl_hours=6, clock=clock).set("a", PAYLOAD)
        IterationCacheStore(backend, ttl_hours=6, clock=clock).set(
            "b", PAYLOAD, ttl=12
        )
        clock.advance(hours=3)

        short = IterationCacheStore(backend, ttl_hours=2, clock=clock)
        assert short.status("a") == StalenessStatus.STALE
        assert short.status("b") == StalenessStatus.STALE
        assert short.get_entry("b").ttl == 12

        long = IterationCacheStore(backend, ttl_hours=6, clock=clock)
        assert long.status("a") == StalenessStatus.AGING

    def test_clear(self, memory_store: IterationCacheStore) -> None:
        memory_store.set("a", PAYLOAD)
        memory_store.set("b", PAYLOAD)
        memory_store.clear("a")
        memory_store.clear("never-cached")
        assert not memory_store.has("a")
        assert memory_store.has("b")

    def test_clear_all(self, memory_store: IterationCacheStore) -> None:
        memory_store.set("a", PAYLOAD)
        memory_store.set("b", PAYLOAD)
        memory_store.clear_all()
        assert memory_store.get_all_metadata() == []

    def test_metadata(
        self, memory_store: IterationCacheStore, clock: FrozenClock
    ) -> None:
        memory_store.set("a", PAYLOAD)
        clock.advance(hours=2)
        memory_store.set("b", {"small": True}, ttl=12)

        metadata = {item.key: item for item in memory_store.get_all_metadata()}
        assert set(metadata) == {"a", "b"}
        assert metadata["a"].last_fetched_at == datetime(2024, 1, 1, tzinfo=UTC)
        assert metadata["b"].ttl == 12
        assert metadata["a"].size_bytes > metadata["b"].size_bytes > 0

        assert metadata["a"].to_json() == {
            "key": "a",
            "lastFetchedAt": "2024-01-01T00:00:00Z",
            "sizeBytes": metadata["a"].size_bytes,
        }

    def test_metadata_does_not_decode_payloads(
        self, clock: FrozenClock
    ) -> None:
        backend = MemoryCacheBackend()
        store = IterationCacheStore(backend, clock=clock)
        store.set("a", PAYLOAD)
        header = backend.read_header("a")
        backend.write("a", header + b"\n{not json")

        assert [item.key for item in store.get_all_metadata()] == ["a"]

    def test_rejects_non_positive_ttl(self, clock: FrozenClock) -> None:
        with pytest.raises(ValueError, match="positive"):
            IterationCacheStore(MemoryCacheBackend(), ttl_hours=0, clock=clock)

        store = IterationCacheStore(MemoryCacheBackend(), clock=clock)
        with pytest.raises(ValueError, match="positive"):
            store.set("a", PAYLOAD, ttl=-1)


class TestCacheCorruption:
    """Test that unusable entries surface as CacheCorruption."""

    def test_undecodable_payload(self, clock: FrozenClock) -> None:
        backend = MemoryCacheBackend()
        store = IterationCacheStore(backend, clock=clock)
        store.set("a", PAYLOAD)
        header = backend.read_header("a")
        backend.write("a", header + b"\n{not json")

        with pytest.raises(CacheCorruption) as exc_info:
            store.get("a")
        assert exc_info.value.key == "a"

    def test_undecodable_header(self, clock: FrozenClock) -> None:
        backend = MemoryCacheBackend()
        backend.write("a", b"garbage\n{}")
        store = IterationCacheStore(backend, clock=clock)

        with pytest.raises(CacheCorruption):
            store.get_entry("a")
        with pytest.raises(CacheCorruption):
            store.status("a")
        with pytest.raises(CacheCorruption):
            store.get_all_metadata()

        store.clear("a")
        assert backend.read("a") is None

    def test_header_missing_fields(self, clock: FrozenClock) -> None:
        backend = MemoryCacheBackend()
        backend.write("a", b'{"key": "a"}\n{}')
        store = IterationCacheStore(backend, clock=clock)

        with pytest.raises(CacheCorruption):
            store.get("a")

    def test_backend_failures(self, clock: FrozenClock) -> None:
        store = IterationCacheStore(FailingBackend(), clock=clock)

        with pytest.raises(CacheCorruption, match="disk unavailable"):
            store.get("a")
        with pytest.raises(CacheCorruption, match="disk full"):
            store.set("a", PAYLOAD)
