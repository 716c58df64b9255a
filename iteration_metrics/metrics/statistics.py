"""Duration statistics and ordered timestamp resolution."""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import NamedTuple, TypeVar

import numpy as np

T = TypeVar("T")

Resolver = Callable[[T], datetime | None]

SECONDS_PER_DAY = 86400.0
SECONDS_PER_HOUR = 3600.0


class DurationSummary(NamedTuple):
    """Mean, median and 90th percentile of a set of durations."""

    avg: float
    p50: float
    p90: float


EMPTY_SUMMARY = DurationSummary(0.0, 0.0, 0.0)


def resolve_first(record: T, resolvers: Sequence[Resolver[T]]) -> datetime | None:
    """Return the first non-None timestamp produced by ``resolvers``.

    Resolvers are tried in order; the order is the fallback priority.
    """
    for resolver in resolvers:
        value = resolver(record)
        if value is not None:
            return value
    return None


def elapsed_days(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_DAY


def elapsed_hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def summarize_durations(durations: Iterable[float]) -> DurationSummary:
    """Summarize durations as mean, p50 and p90.

    Quantiles use the averaged inverse empirical CDF: ``[1, 3, 5]`` gives
    ``p50 == 3`` and ``p90 == 5``; ``[1, 3]`` gives ``p50 == 2`` and
    ``p90 == 3``.

    Args:
        durations: Durations in any unit

    Returns:
        DurationSummary in the same unit, all zeros when empty
    """
    values = np.asarray(list(durations), dtype=float)
    if values.size == 0:
        return EMPTY_SUMMARY

    p50, p90 = np.percentile(values, [50, 90], method="averaged_inverted_cdf")
    return DurationSummary(float(values.mean()), float(p50), float(p90))
