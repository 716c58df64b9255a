"""Persistence backends for the iteration cache.

A backend stores one opaque blob per key. The blob starts with a single
header line (entry metadata) followed by the payload, so metadata can be
listed without reading or decoding payloads.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import suppress
from pathlib import Path

from ..utils.keys import sanitize_key

HEADER_SEPARATOR = b"\n"


def split_header(blob: bytes) -> tuple[bytes, bytes]:
    """Split a stored blob into header and payload."""
    header, _, payload = blob.partition(HEADER_SEPARATOR)
    return header, payload


class CacheBackend(ABC):
    """Byte-level storage for cache entries."""

    @abstractmethod
    def read(self, key: str) -> bytes | None:
        """Return the stored blob, or None if absent."""

    @abstractmethod
    def read_header(self, key: str) -> bytes | None:
        """Return only the header line, or None if absent."""

    @abstractmethod
    def write(self, key: str, blob: bytes) -> None:
        """Store ``blob`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; absent keys are ignored."""

    @abstractmethod
    def delete_all(self) -> None:
        """Remove every entry."""

    @abstractmethod
    def list_headers(self) -> list[tuple[bytes, int]]:
        """Header line and total blob size of every entry."""


class MemoryCacheBackend(CacheBackend):
    """Dictionary-backed storage, for tests and throwaway runs."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def read(self, key: str) -> bytes | None:
        return self._blobs.get(key)

    def read_header(self, key: str) -> bytes | None:
        blob = self._blobs.get(key)
        return None if blob is None else split_header(blob)[0]

    def write(self, key: str, blob: bytes) -> None:
        self._blobs[key] = blob

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def delete_all(self) -> None:
        self._blobs.clear()

    def list_headers(self) -> list[tuple[bytes, int]]:
        return [(split_header(blob)[0], len(blob)) for blob in self._blobs.values()]


class FileCacheBackend(CacheBackend):
    """Stores each entry as a JSON file in a cache directory.

    Files are named after the sanitized key. Each write goes to a temporary
    file in the same directory and is moved into place with ``os.replace``,
    so a reader sees either the old or the new entry, never a partial one.
    """

    SUFFIX = ".json"

    def __init__(self, cache_dir: str | Path = "data/cache/iterations"):
        """Initialize file backend.

        Args:
            cache_dir: Directory holding cache files, created if missing
        """
        self.cache_dir = Path(cache_dir).resolve()
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, key: str) -> Path:
        """Get the cache file path for a key.

        Raises:
            ValueError: If the key would resolve outside the cache directory
        """
        file_path = (self.cache_dir / f"{sanitize_key(key)}{self.SUFFIX}").resolve()
        if file_path.parent != self.cache_dir:
            raise ValueError(f"Invalid cache key {key!r}: path traversal detected")
        return file_path

    def read(self, key: str) -> bytes | None:
        file_path = self._get_file_path(key)
        try:
            return file_path.read_bytes()
        except FileNotFoundError:
            return None

    def read_header(self, key: str) -> bytes | None:
        file_path = self._get_file_path(key)
        try:
            with open(file_path, "rb") as f:
                return f.readline().rstrip(HEADER_SEPARATOR)
        except FileNotFoundError:
            return None

    def write(self, key: str, blob: bytes) -> None:
        file_path = self._get_file_path(key)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.cache_dir, prefix=f".{file_path.stem}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(blob)
            os.replace(tmp_name, file_path)
        except BaseException:
            with suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    def delete(self, key: str) -> None:
        with suppress(FileNotFoundError):
            self._get_file_path(key).unlink()

    def delete_all(self) -> None:
        for file_path in self.cache_dir.glob(f"*{self.SUFFIX}"):
            with suppress(FileNotFoundError):
                file_path.unlink()

    def list_headers(self) -> list[tuple[bytes, int]]:
        headers = []
        for file_path in sorted(self.cache_dir.glob(f"*{self.SUFFIX}")):
            try:
                with open(file_path, "rb") as f:
                    header = f.readline().rstrip(HEADER_SEPARATOR)
                size = file_path.stat().st_size
            except FileNotFoundError:
                # Cleared between listing and reading
                continue
            headers.append((header, size))
        return headers
