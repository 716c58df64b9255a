"""Compute the aggregate metrics record for one or more iterations."""

import logging
import math
from collections.abc import Sequence

from ..errors import FetchFailure
from ..sources.models import Incident, Iteration, IterationData
from ..sources.provider import IterationDataProvider
from .calculators import (
    change_failure_rate,
    count_deployments,
    cycle_time,
    deployment_frequency,
    lead_time,
    throughput,
    velocity,
)
from .incidents import mean_time_to_recovery, resolve_times
from .record import AggregateRecord, DecisionReason, IncidentDecision
from .statistics import SECONDS_PER_DAY

logger = logging.getLogger(__name__)


def sprint_length_days(iteration: Iteration) -> int:
    """Inclusive length of the iteration in days.

    A partial day counts as a whole one, and the due date itself is a
    working day: a window from the 1st to the 14th is 14 days.
    """
    elapsed = (iteration.due_date - iteration.start_date).total_seconds()
    return math.ceil(elapsed / SECONDS_PER_DAY) + 1


def decide_incident(incident: Incident, iteration: Iteration) -> IncidentDecision:
    """Decide whether an incident was caused by a change made in the iteration.

    The window opens exactly at the iteration start and runs through the
    whole UTC calendar day of the due date; both bounds are inclusive.
    """
    if incident.change_link is None:
        reason = DecisionReason.MISSING_CHANGE_LINK
    elif incident.change_date is None:
        reason = DecisionReason.MISSING_CHANGE_DATE
    elif incident.change_date < iteration.start_date:
        reason = DecisionReason.CHANGE_BEFORE_ITERATION
    elif incident.change_date.date() > iteration.due_date.date():
        reason = DecisionReason.CHANGE_AFTER_ITERATION
    else:
        reason = DecisionReason.CORRELATED

    return IncidentDecision(
        incident_id=incident.id,
        included=reason == DecisionReason.CORRELATED,
        reason=reason,
    )


def correlate_incidents(
    incidents: Sequence[Incident], iteration: Iteration
) -> tuple[list[Incident], list[IncidentDecision]]:
    """Split incidents into those attributed to the iteration and the rest.

    Returns:
        Correlated incidents, and one decision per input incident in input order
    """
    included = []
    decisions = []
    for incident in incidents:
        decision = decide_incident(incident, iteration)
        times = resolve_times(incident)
        logger.debug(
            "Incident %s %s for iteration %s: %s (start from %s, end from %s)",
            incident.id,
            "included" if decision.included else "excluded",
            iteration.id,
            decision.reason.value,
            times.start_source or "nothing",
            times.end_source or "nothing",
        )
        decisions.append(decision)
        if decision.included:
            included.append(incident)
    return included, decisions


def build_record(data: IterationData) -> AggregateRecord:
    """Derive every metric for one iteration's data."""
    iteration = data.iteration
    sprint_days = sprint_length_days(iteration)

    completed = velocity(data.issues)
    cycle = cycle_time(data.issues)
    lead = lead_time(data.merge_requests)
    deployments = count_deployments(data.merge_requests)

    correlated, decisions = correlate_incidents(data.incidents, iteration)

    return AggregateRecord(
        iteration_id=iteration.id,
        iteration_title=iteration.title,
        start_date=iteration.start_date,
        end_date=iteration.due_date,
        velocity_points=float(completed.points),
        velocity_stories=completed.stories,
        throughput=throughput(data.issues),
        cycle_time_avg=cycle.avg,
        cycle_time_p50=cycle.p50,
        cycle_time_p90=cycle.p90,
        deployment_frequency=deployment_frequency(data.merge_requests, sprint_days),
        lead_time_avg=lead.avg,
        lead_time_p50=lead.p50,
        lead_time_p90=lead.p90,
        mttr_avg=mean_time_to_recovery(correlated),
        change_failure_rate=change_failure_rate(len(correlated), deployments),
        issue_count=len(data.issues),
        mr_count=len(data.merge_requests),
        deployment_count=deployments,
        incident_count=len(correlated),
        incident_decisions=decisions,
        raw_data={
            "issues": [issue.to_json() for issue in data.issues],
            "mergeRequests": [event.to_json() for event in data.merge_requests],
            "incidents": [incident.to_json() for incident in correlated],
            "iteration": iteration.to_json(),
        },
    )


class MetricsOrchestrator:
    """Fetches iteration data from a provider and computes metrics records."""

    def __init__(self, provider: IterationDataProvider):
        """Initialize orchestrator.

        Args:
            provider: Source of raw iteration data, usually cache-backed
        """
        self.provider = provider

    async def compute_metrics(self, iteration_id: str) -> AggregateRecord:
        """Compute the metrics record for one iteration.

        Raises:
            FetchFailure: If the provider fails to deliver the iteration
            pydantic.ValidationError: If a derived value is out of range
        """
        try:
            data = await self.provider.fetch_iteration_data(iteration_id)
        except Exception as e:
            raise FetchFailure(iteration_id, "fetch_iteration_data", e) from e

        record = build_record(data)
        logger.info(
            "Computed metrics for iteration %s (%s)",
            iteration_id,
            record.iteration_title,
        )
        return record

    async def compute_metrics_batch(
        self, iteration_ids: Sequence[str]
    ) -> list[AggregateRecord]:
        """Compute records for several iterations with a single provider call.

        Records come back in the order of ``iteration_ids``.

        Raises:
            FetchFailure: If the provider fails or returns the wrong number
                of iterations
        """
        if not iteration_ids:
            return []

        iteration_ids = list(iteration_ids)
        try:
            batch = await self.provider.fetch_multiple_iterations(iteration_ids)
        except Exception as e:
            raise FetchFailure(iteration_ids, "fetch_multiple_iterations", e) from e

        if len(batch) != len(iteration_ids):
            raise FetchFailure(
                iteration_ids,
                "fetch_multiple_iterations",
                ValueError(
                    f"expected {len(iteration_ids)} iterations, got {len(batch)}"
                ),
            )

        records = [build_record(data) for data in batch]
        logger.info("Computed metrics for %d iterations", len(records))
        return records
