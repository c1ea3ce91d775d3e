from __future__ import annotations

from surge.metrics.aggregator import AggregateState, Aggregator, RedrawThrottle, RenderSurface, latest
from surge.metrics.models import (
    STATUS_CLASSES,
    DashboardSnapshot,
    ErrorType,
    Finished,
    Message,
    RequestOutcome,
    Result,
    status_class_index,
)
from surge.metrics.summary import RunSummary, print_summary, summarize

__all__ = [
    "STATUS_CLASSES",
    "AggregateState",
    "Aggregator",
    "DashboardSnapshot",
    "ErrorType",
    "Finished",
    "Message",
    "RedrawThrottle",
    "RenderSurface",
    "RequestOutcome",
    "Result",
    "RunSummary",
    "latest",
    "print_summary",
    "status_class_index",
    "summarize",
]
