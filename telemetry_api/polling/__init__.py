"""Polling del fleet: scheduler, pipelines y combinador settle_all."""

from .pipelines import (
    Pipeline,
    StatusPipeline,
    TimelineOptions,
    TimelinePipeline,
    TimelineSnapshot,
)
from .scheduler import PollingScheduler
from .scheduler_models import (
    CancellationToken,
    PublishedSnapshot,
    SchedulerConfig,
    SchedulerState,
    SchedulerStats,
)
from .settle import Settled, settle_all

__all__ = [
    "CancellationToken",
    "Pipeline",
    "PollingScheduler",
    "PublishedSnapshot",
    "SchedulerConfig",
    "SchedulerState",
    "SchedulerStats",
    "Settled",
    "StatusPipeline",
    "TimelineOptions",
    "TimelinePipeline",
    "TimelineSnapshot",
    "settle_all",
]
