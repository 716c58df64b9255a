"""Pydantic models for the raw iteration data the metrics are derived from.

These models describe iteration exports after they have been materialized
from the external tracker: issues, merge requests, incidents with their
timeline annotations, and the iteration window itself. JSON documents use
camelCase keys; attributes are snake_case.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..utils.date_parser import parse_timestamp


def _coerce_identifier(value: Any) -> Any:
    # Numeric ids (iid, database ids) are kept as strings
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


Timestamp = Annotated[datetime, BeforeValidator(parse_timestamp)]
Identifier = Annotated[str, BeforeValidator(_coerce_identifier)]


class SourceModel(BaseModel):
    """Shared configuration for export models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class WorkItemState(str, Enum):
    """State of a work item."""

    OPEN = "open"
    CLOSED = "closed"


class IntegrationState(str, Enum):
    """State of a merge request."""

    OPEN = "open"
    MERGED = "merged"
    CLOSED = "closed"


class ChangeLinkType(str, Enum):
    """Kind of change an incident was traced back to."""

    MERGE_EVENT = "merge_event"
    COMMIT = "commit"


def _normalize_open_state(value: Any) -> Any:
    # GitLab reports open issues and merge requests as "opened"
    if isinstance(value, str) and value.lower() == "opened":
        return "open"
    if isinstance(value, str):
        return value.lower()
    return value


class WorkItem(SourceModel):
    """A unit of planned work (issue)."""

    id: Identifier = Field(..., description="Issue identifier")
    state: WorkItemState = Field(..., description="open or closed")
    created_at: Timestamp = Field(..., description="When the issue was created")
    closed_at: Timestamp | None = Field(None, description="When the issue was closed")
    in_progress_at: Timestamp | None = Field(
        None, description="When work on the issue started"
    )
    weight: float | None = Field(
        None, ge=0, description="Story points; counts as 1 when absent"
    )

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, value: Any) -> Any:
        return _normalize_open_state(value)


class Commit(SourceModel):
    """A commit belonging to a merge request."""

    committed_date: Timestamp = Field(..., description="Commit timestamp")


class IntegrationEvent(SourceModel):
    """A merge request."""

    id: Identifier = Field(..., description="Merge request identifier")
    state: IntegrationState = Field(..., description="open, merged or closed")
    target_branch: str = Field(..., description="Branch the request targets")
    created_at: Timestamp | None = Field(
        None, description="When the merge request was opened"
    )
    merged_at: Timestamp | None = Field(None, description="When it was merged")
    commits: list[Commit] = Field(default_factory=list)

    @field_validator("state", mode="before")
    @classmethod
    def normalize_state(cls, value: Any) -> Any:
        return _normalize_open_state(value)


class AnnotationTag(SourceModel):
    """Tag attached to a timeline annotation (e.g. 'Start time')."""

    name: str


class TimelineAnnotation(SourceModel):
    """Free-text incident timeline entry."""

    occurred_at: Timestamp = Field(..., description="When the event happened")
    note: str = Field("", description="Free-text note")
    tags: list[AnnotationTag] = Field(default_factory=list)

    @field_validator("note", mode="before")
    @classmethod
    def none_note_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class ChangeLink(SourceModel):
    """Reference to the change an incident was caused by."""

    type: ChangeLinkType
    url: str
    project: str
    id: Identifier | None = Field(
        None, description="Merge request id (merge events)"
    )
    sha: str | None = Field(None, description="Commit SHA (commits)")


class Incident(SourceModel):
    """An operational incident."""

    id: Identifier
    created_at: Timestamp | None = None
    closed_at: Timestamp | None = None
    change_link: ChangeLink | None = None
    change_date: Timestamp | None = Field(
        None, description="When the linked change was merged or committed"
    )
    timeline_annotations: list[TimelineAnnotation] = Field(default_factory=list)


class Iteration(SourceModel):
    """A sprint window; both bounds are inclusive."""

    id: Identifier
    title: str
    start_date: Timestamp
    due_date: Timestamp


class IterationData(SourceModel):
    """Everything fetched for one iteration."""

    issues: list[WorkItem] = Field(default_factory=list)
    merge_requests: list[IntegrationEvent] = Field(default_factory=list)
    incidents: list[Incident] = Field(default_factory=list)
    pipelines: list[dict[str, Any]] = Field(default_factory=list)
    iteration: Iteration
