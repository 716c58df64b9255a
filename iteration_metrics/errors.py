"""Exceptions raised by the metrics engine and the iteration cache."""

from collections.abc import Sequence


class MetricsError(Exception):
    """Base class for iteration-metrics errors."""


class FetchFailure(MetricsError):
    """The data provider failed to deliver iteration data.

    Carries the iteration ids and the operation that was running so the
    failure can be diagnosed from the message alone.
    """

    def __init__(
        self, iteration_ids: str | Sequence[str], operation: str, cause: BaseException
    ):
        if isinstance(iteration_ids, str):
            iteration_ids = [iteration_ids]
        self.iteration_ids = list(iteration_ids)
        self.operation = operation
        self.cause = cause
        ids = ", ".join(self.iteration_ids) or "<none>"
        super().__init__(
            f"{operation} failed for iteration(s) {ids}: {cause}"
        )


class CacheCorruption(MetricsError):
    """A cache backend read or write failed outright.

    A missing entry is a cache miss, not corruption.
    """

    def __init__(self, key: str, cause: BaseException):
        self.key = key
        self.cause = cause
        super().__init__(f"Cache entry for iteration {key} is unusable: {cause}")
