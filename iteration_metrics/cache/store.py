"""Keyed store for raw iteration data with advisory staleness."""

import json
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..errors import CacheCorruption
from ..utils.date_parser import format_timestamp, parse_timestamp, utc_now
from .backends import HEADER_SEPARATOR, CacheBackend, split_header

logger = logging.getLogger(__name__)

CACHE_VERSION = "1.0"
DEFAULT_TTL_HOURS = 6.0
FRESH_HOURS = 1.0


class StalenessStatus(str, Enum):
    """Age bucket of a cache entry."""

    FRESH = "fresh"
    AGING = "aging"
    STALE = "stale"


def classify_staleness(age_hours: float, ttl: float) -> StalenessStatus:
    """Bucket an entry by age.

    fresh: age < 1h; aging: 1h <= age < ttl; stale: age >= ttl. A value on a
    boundary lands in the more stale bucket.
    """
    if age_hours < FRESH_HOURS:
        return StalenessStatus.FRESH
    if age_hours < ttl:
        return StalenessStatus.AGING
    return StalenessStatus.STALE


def age_in_hours(last_fetched_at: datetime, now: datetime) -> float:
    return (now - last_fetched_at).total_seconds() / 3600


class CacheMetadata(BaseModel):
    """Entry metadata, available without decoding the payload."""

    model_config = ConfigDict(frozen=True)

    key: str
    last_fetched_at: datetime
    size_bytes: int
    ttl: float

    def to_json(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "lastFetchedAt": format_timestamp(self.last_fetched_at),
            "sizeBytes": self.size_bytes,
        }


class CacheEntry(BaseModel):
    """A cached payload with its fetch time.

    ``ttl`` records the TTL (hours) in force when the entry was written;
    staleness is judged against the reading store's TTL.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    payload: Any
    last_fetched_at: datetime
    ttl: float = Field(gt=0)


class IterationCacheStore:
    """Cache of raw iteration data keyed by iteration id.

    Entries are never expired automatically: staleness is reported against
    the store TTL, and entries go away only through ``clear`` or
    ``clear_all``. Backends may map distinct keys to the same slot, so every
    read checks the key recorded in the entry header; an entry written for
    another key is a miss.
    """

    def __init__(
        self,
        backend: CacheBackend,
        ttl_hours: float = DEFAULT_TTL_HOURS,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize cache store.

        Args:
            backend: Storage backend for serialized entries
            ttl_hours: Default time-to-live for new entries, in hours
            clock: Returns the current time as an aware datetime

        Raises:
            ValueError: If ttl_hours is not positive
        """
        if ttl_hours <= 0:
            raise ValueError(f"Cache TTL must be positive, got {ttl_hours}")
        self.backend = backend
        self.ttl_hours = ttl_hours
        self.clock = clock

    @contextmanager
    def _guard(self, key: str) -> Iterator[None]:
        try:
            yield
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise CacheCorruption(key, e) from e

    @staticmethod
    def _decode_header(header: bytes) -> tuple[str, datetime, float]:
        meta = json.loads(header.decode("utf-8"))
        return meta["key"], parse_timestamp(meta["lastFetchedAt"]), float(meta["ttl"])

    @staticmethod
    def _is_other_key(stored_key: str, key: str) -> bool:
        if stored_key == key:
            return False
        logger.debug("Cache slot for %s holds iteration %s", key, stored_key)
        return True

    def get_entry(self, key: str) -> CacheEntry | None:
        """Load the full entry for ``key``; None on a miss.

        Raises:
            CacheCorruption: If the entry exists but cannot be read or decoded
        """
        with self._guard(key):
            blob = self.backend.read(key)
            if blob is None:
                return None
            header, payload = split_header(blob)
            stored_key, last_fetched_at, ttl = self._decode_header(header)
            if self._is_other_key(stored_key, key):
                return None
            return CacheEntry(
                key=stored_key,
                payload=json.loads(payload.decode("utf-8")),
                last_fetched_at=last_fetched_at,
                ttl=ttl,
            )

    def get(self, key: str) -> Any | None:
        """Cached payload for ``key`` regardless of age; None on a miss."""
        entry = self.get_entry(key)
        return None if entry is None else entry.payload

    def set(self, key: str, payload: Any, ttl: float | None = None) -> None:
        """Store ``payload`` under ``key``, stamped with the current time.

        Args:
            key: Iteration id
            payload: JSON-serializable data
            ttl: TTL in hours recorded in the entry header; defaults to the
                store TTL
        """
        ttl = self.ttl_hours if ttl is None else ttl
        if ttl <= 0:
            raise ValueError(f"Cache TTL must be positive, got {ttl}")

        header = json.dumps(
            {
                "version": CACHE_VERSION,
                "key": key,
                "lastFetchedAt": format_timestamp(self.clock()),
                "ttl": ttl,
            }
        ).encode("utf-8")
        body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)

        with self._guard(key):
            self.backend.write(key, header + HEADER_SEPARATOR + body.encode("utf-8"))
        logger.debug("Cached iteration %s", key)

    def _read_fetch_time(self, key: str) -> datetime | None:
        with self._guard(key):
            header = self.backend.read_header(key)
            if header is None:
                return None
            stored_key, last_fetched_at, _ = self._decode_header(header)
        if self._is_other_key(stored_key, key):
            return None
        return last_fetched_at

    def has(self, key: str) -> bool:
        return self._read_fetch_time(key) is not None

    def classify(self, last_fetched_at: datetime) -> StalenessStatus:
        """Staleness bucket for an entry fetched at ``last_fetched_at``."""
        return classify_staleness(
            age_in_hours(last_fetched_at, self.clock()), self.ttl_hours
        )

    def status(self, key: str) -> StalenessStatus | None:
        """Staleness bucket of a stored entry; None on a miss."""
        last_fetched_at = self._read_fetch_time(key)
        if last_fetched_at is None:
            return None
        return self.classify(last_fetched_at)

    def clear(self, key: str) -> None:
        """Remove the entry for ``key``; an entry of another key is kept."""
        with self._guard(key):
            header = self.backend.read_header(key)
            if header is None:
                return
            try:
                stored_key = json.loads(header.decode("utf-8"))["key"]
            except (ValueError, KeyError, TypeError):
                # Unreadable header: the slot cannot be attributed, drop it
                stored_key = key
            if self._is_other_key(stored_key, key):
                return
            self.backend.delete(key)

    def clear_all(self) -> None:
        with self._guard("*"):
            self.backend.delete_all()

    def get_all_metadata(self) -> list[CacheMetadata]:
        """Metadata for every entry, read from headers only."""
        metadata = []
        with self._guard("*"):
            for header, size in self.backend.list_headers():
                key, last_fetched_at, ttl = self._decode_header(header)
                metadata.append(
                    CacheMetadata(
                        key=key,
                        last_fetched_at=last_fetched_at,
                        size_bytes=size,
                        ttl=ttl,
                    )
                )
        return metadata
