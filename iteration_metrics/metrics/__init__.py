"""Metric calculators, incident correlation and the metrics orchestrator."""

from .calculators import (
    change_failure_rate,
    count_deployments,
    cycle_time,
    deployment_frequency,
    lead_time,
    throughput,
    velocity,
)
from .change_links import extract_change_link
from .incidents import mean_time_to_recovery, resolve_times
from .orchestrator import MetricsOrchestrator, correlate_incidents
from .record import AggregateRecord, DecisionReason, IncidentDecision

__all__ = [
    "velocity",
    "throughput",
    "cycle_time",
    "lead_time",
    "deployment_frequency",
    "count_deployments",
    "change_failure_rate",
    "extract_change_link",
    "mean_time_to_recovery",
    "resolve_times",
    "MetricsOrchestrator",
    "correlate_incidents",
    "AggregateRecord",
    "DecisionReason",
    "IncidentDecision",
]
