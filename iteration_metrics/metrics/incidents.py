"""Incident downtime and mean time to recovery.

Incident start and end are resolved independently, each through its own
ordered list of sources. Timeline annotations written by responders are
preferred over the tracker's own created/closed timestamps.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import NamedTuple

from ..sources.models import Incident, TimelineAnnotation
from .statistics import elapsed_hours


def find_tag(
    annotations: Sequence[TimelineAnnotation], tag_name: str
) -> TimelineAnnotation | None:
    """First annotation with a tag containing ``tag_name``, ignoring case."""
    needle = tag_name.lower()
    for annotation in annotations:
        if any(needle in tag.name.lower() for tag in annotation.tags):
            return annotation
    return None


SourcedResolver = tuple[str, Callable[[Incident], datetime | None]]


def _tagged(tag_name: str) -> Callable[[Incident], datetime | None]:
    def resolve(incident: Incident) -> datetime | None:
        annotation = find_tag(incident.timeline_annotations, tag_name)
        return annotation.occurred_at if annotation else None

    return resolve


START_RESOLVERS: tuple[SourcedResolver, ...] = (
    ("timeline_start", _tagged("start time")),
    ("created", lambda incident: incident.created_at),
)

END_RESOLVERS: tuple[SourcedResolver, ...] = (
    ("timeline_end", _tagged("end time")),
    ("timeline_mitigated", _tagged("impact mitigated")),
    ("closed", lambda incident: incident.closed_at),
)


class IncidentTimes(NamedTuple):
    """Resolved incident window and where each bound came from."""

    start: datetime | None
    end: datetime | None
    start_source: str | None
    end_source: str | None


def _resolve(
    incident: Incident, resolvers: Sequence[SourcedResolver]
) -> tuple[datetime | None, str | None]:
    for source, resolver in resolvers:
        value = resolver(incident)
        if value is not None:
            return value, source
    return None, None


def resolve_start(incident: Incident) -> datetime | None:
    return _resolve(incident, START_RESOLVERS)[0]


def resolve_end(incident: Incident) -> datetime | None:
    return _resolve(incident, END_RESOLVERS)[0]


def resolve_times(incident: Incident) -> IncidentTimes:
    start, start_source = _resolve(incident, START_RESOLVERS)
    end, end_source = _resolve(incident, END_RESOLVERS)
    return IncidentTimes(start, end, start_source, end_source)


def downtime_hours(incident: Incident) -> float:
    """Hours between resolved start and end; 0 while either is unknown."""
    start = resolve_start(incident)
    end = resolve_end(incident)
    if start is None or end is None:
        return 0.0
    return elapsed_hours(start, end)


def mean_time_to_recovery(incidents: Sequence[Incident]) -> float:
    """Average downtime in hours over closed incidents.

    Open incidents are left out even when their timeline already records
    an end time.
    """
    closed = [
        incident
        for incident in incidents
        if incident.created_at is not None and incident.closed_at is not None
    ]
    if not closed:
        return 0.0
    return sum(downtime_hours(incident) for incident in closed) / len(closed)
