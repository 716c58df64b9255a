"""Test configuration and fixtures."""

from pathlib import Path

import pytest

from iteration_metrics.cache.backends import MemoryCacheBackend
from iteration_metrics.cache.store import IterationCacheStore
from tests.factories import FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at 2024-01-01T00:00:00Z."""
    return FrozenClock()


@pytest.fixture
def memory_store(clock: FrozenClock) -> IterationCacheStore:
    """In-memory cache store with a 6 hour TTL."""
    return IterationCacheStore(MemoryCacheBackend(), ttl_hours=6, clock=clock)


@pytest.fixture
def temp_data_dir(tmp_path: Path) -> Path:
    """Create temporary data directory structure."""
    data_dir = tmp_path / "data"
    (data_dir / "iterations").mkdir(parents=True)
    (data_dir / "cache").mkdir(parents=True)
    return data_dir
