"""Raw iteration data: export models and data providers."""

from .files import JsonDirectorySource
from .models import (
    ChangeLink,
    Incident,
    IntegrationEvent,
    Iteration,
    IterationData,
    TimelineAnnotation,
    WorkItem,
)
from .provider import CachedIterationDataProvider, IterationDataProvider

__all__ = [
    "ChangeLink",
    "Incident",
    "IntegrationEvent",
    "Iteration",
    "IterationData",
    "TimelineAnnotation",
    "WorkItem",
    "IterationDataProvider",
    "CachedIterationDataProvider",
    "JsonDirectorySource",
]
