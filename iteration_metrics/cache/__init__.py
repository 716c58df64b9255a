"""Iteration data cache with advisory staleness."""

from .backends import CacheBackend, FileCacheBackend, MemoryCacheBackend
from .status import CacheStatusReport, IterationCacheStatus, build_cache_status
from .store import (
    CacheEntry,
    CacheMetadata,
    IterationCacheStore,
    StalenessStatus,
    classify_staleness,
)

__all__ = [
    "CacheBackend",
    "FileCacheBackend",
    "MemoryCacheBackend",
    "CacheEntry",
    "CacheMetadata",
    "IterationCacheStore",
    "StalenessStatus",
    "classify_staleness",
    "CacheStatusReport",
    "IterationCacheStatus",
    "build_cache_status",
]
