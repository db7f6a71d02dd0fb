"""Domain layer - Modelos del fleet."""

from .metric_record import MetricRecord, parse_timestamp
from .node_status import (
    CheckResult,
    ComputeInfo,
    HealthSummary,
    NodeReportingStatus,
    NodeStatus,
    SanitySummary,
    SensorInfo,
)
from .timeline import Job, TimelineBucket, TimelineEntry, TimelineView
from .filter_state import FACET_FIELDS, FilterState

__all__ = [
    "MetricRecord",
    "parse_timestamp",
    "CheckResult",
    "ComputeInfo",
    "HealthSummary",
    "NodeReportingStatus",
    "NodeStatus",
    "SanitySummary",
    "SensorInfo",
    "Job",
    "TimelineBucket",
    "TimelineEntry",
    "TimelineView",
    "FACET_FIELDS",
    "FilterState",
]
