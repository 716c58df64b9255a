"""Delivery metric calculators.

Each calculator is a pure function over a list of work items or merge
requests. Velocity, throughput and cycle time read work items; deployment
frequency and lead time read merge requests; change failure rate only needs
the two counts.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import NamedTuple

from ..sources.models import (
    IntegrationEvent,
    IntegrationState,
    WorkItem,
    WorkItemState,
)
from .statistics import (
    DurationSummary,
    Resolver,
    elapsed_days,
    resolve_first,
    summarize_durations,
)

DEPLOYMENT_BRANCHES = frozenset({"main", "master"})


class Velocity(NamedTuple):
    """Story points and number of stories completed."""

    points: float
    stories: int


def _is_closed(item: WorkItem) -> bool:
    return item.state == WorkItemState.CLOSED


def velocity(issues: Sequence[WorkItem]) -> Velocity:
    """Sum the weights of closed work items.

    Items without a weight count as one point.

    Raises:
        TypeError: If ``issues`` is not a list or tuple
    """
    if not isinstance(issues, list | tuple):
        raise TypeError(
            f"velocity expects a list of work items, got {type(issues).__name__}"
        )

    closed = [item for item in issues if _is_closed(item)]
    points = sum(1 if item.weight is None else item.weight for item in closed)
    return Velocity(points=points, stories=len(closed))


def throughput(issues: Sequence[WorkItem]) -> int:
    """Count closed work items."""
    return sum(1 for item in issues if _is_closed(item))


# Cycle time starts when work starts; creation is the fallback
CYCLE_TIME_START: tuple[Resolver[WorkItem], ...] = (
    lambda item: item.in_progress_at,
    lambda item: item.created_at,
)


def _earliest_commit(event: IntegrationEvent) -> datetime | None:
    if not event.commits:
        return None
    return min(commit.committed_date for commit in event.commits)


# Lead time starts at the first commit; MR creation is the fallback
LEAD_TIME_START: tuple[Resolver[IntegrationEvent], ...] = (
    _earliest_commit,
    lambda event: event.created_at,
)


def cycle_time(issues: Sequence[WorkItem]) -> DurationSummary:
    """Cycle time statistics in days over closed work items."""
    durations = []
    for item in issues:
        if not _is_closed(item) or item.closed_at is None:
            continue
        start = resolve_first(item, CYCLE_TIME_START)
        if start is None:
            continue
        durations.append(elapsed_days(start, item.closed_at))
    return summarize_durations(durations)


def lead_time(merge_requests: Sequence[IntegrationEvent]) -> DurationSummary:
    """Lead time statistics in days over merged merge requests.

    Merge requests with neither commits nor a creation timestamp are skipped.
    """
    durations = []
    for event in merge_requests:
        if event.state != IntegrationState.MERGED or event.merged_at is None:
            continue
        start = resolve_first(event, LEAD_TIME_START)
        if start is None:
            continue
        durations.append(elapsed_days(start, event.merged_at))
    return summarize_durations(durations)


def is_deployment(event: IntegrationEvent) -> bool:
    """A merge into main or master stands in for a production deployment."""
    return (
        event.state == IntegrationState.MERGED
        and event.target_branch.lower() in DEPLOYMENT_BRANCHES
    )


def count_deployments(merge_requests: Sequence[IntegrationEvent]) -> int:
    return sum(1 for event in merge_requests if is_deployment(event))


def deployment_frequency(
    merge_requests: Sequence[IntegrationEvent], sprint_days: int
) -> float:
    """Deployments per day over the sprint; 0 when the sprint has no days."""
    if sprint_days == 0 or not merge_requests:
        return 0.0
    return count_deployments(merge_requests) / sprint_days


def change_failure_rate(incident_count: int, deployment_count: int) -> float:
    """Percentage of deployments that led to an incident.

    Not clamped: more incidents than deployments gives a value above 100.
    """
    if deployment_count == 0:
        return 0.0
    return incident_count / deployment_count * 100
