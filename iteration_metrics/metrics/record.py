"""Aggregate metrics record produced for one iteration."""

import uuid
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..sources.models import Timestamp
from ..utils.date_parser import utc_now

NonNegativeFloat = Annotated[float, Field(ge=0, allow_inf_nan=False, strict=True)]
NonNegativeInt = Annotated[int, Field(ge=0, strict=True)]
RequiredText = Annotated[str, Field(min_length=1)]

NUMERIC_FIELDS = (
    "velocity_points",
    "velocity_stories",
    "throughput",
    "cycle_time_avg",
    "cycle_time_p50",
    "cycle_time_p90",
    "deployment_frequency",
    "lead_time_avg",
    "lead_time_p50",
    "lead_time_p90",
    "mttr_avg",
    "change_failure_rate",
    "issue_count",
    "mr_count",
    "deployment_count",
    "incident_count",
)


class DecisionReason(str, Enum):
    """Why an incident was or was not attributed to an iteration."""

    CORRELATED = "correlated"
    MISSING_CHANGE_LINK = "missing_change_link"
    MISSING_CHANGE_DATE = "missing_change_date"
    CHANGE_BEFORE_ITERATION = "change_before_iteration"
    CHANGE_AFTER_ITERATION = "change_after_iteration"


class IncidentDecision(BaseModel):
    """Inclusion decision for one incident."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    incident_id: str
    included: bool
    reason: DecisionReason


def _generate_id() -> str:
    return f"metric-{uuid.uuid4().hex}"


class AggregateRecord(BaseModel):
    """Every derived statistic for one iteration plus the inputs behind them.

    Durations are in days except ``mttr_avg`` (hours). ``change_failure_rate``
    is a percentage and may exceed 100. Construction raises
    ``pydantic.ValidationError`` on a missing identity or date field and on
    negative, non-finite or non-numeric metric values.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    id: str = Field(default_factory=_generate_id)
    iteration_id: RequiredText
    iteration_title: RequiredText
    start_date: Timestamp
    end_date: Timestamp

    velocity_points: NonNegativeFloat
    velocity_stories: NonNegativeInt
    throughput: NonNegativeInt
    cycle_time_avg: NonNegativeFloat
    cycle_time_p50: NonNegativeFloat
    cycle_time_p90: NonNegativeFloat
    deployment_frequency: NonNegativeFloat
    lead_time_avg: NonNegativeFloat
    lead_time_p50: NonNegativeFloat
    lead_time_p90: NonNegativeFloat
    mttr_avg: NonNegativeFloat
    change_failure_rate: NonNegativeFloat

    issue_count: NonNegativeInt
    mr_count: NonNegativeInt
    deployment_count: NonNegativeInt
    incident_count: NonNegativeInt

    incident_decisions: list[IncidentDecision] = Field(default_factory=list)
    raw_data: dict[str, Any] = Field(default_factory=dict)
    created_at: Timestamp = Field(default_factory=utc_now)

    @field_validator(*NUMERIC_FIELDS, mode="before")
    @classmethod
    def reject_booleans(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("booleans are not metric values")
        return value

    def to_json(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "AggregateRecord":
        return cls.model_validate(data)

    @property
    def excluded_incidents(self) -> list[IncidentDecision]:
        return [d for d in self.incident_decisions if not d.included]
