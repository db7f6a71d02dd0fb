from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .core.domain import NodeStatus, TimelineEntry
from .status import elapsed_level


class TimelineGroup(str, Enum):
    NODES = "nodes"
    APPS = "apps"


class ElapsedLevel(str, Enum):
    OK = "ok"
    WARNING = "warning"
    SEVERE = "severe"


class HostElapsedOut(BaseModel):
    host: str
    elapsed_ms: float
    level: ElapsedLevel


class HealthOut(BaseModel):
    passed: int
    failed: int


class SanityOut(BaseModel):
    passed: int
    failed: int
    fatal: int
    warning: int


class NodeStatusOut(BaseModel):
    vsn: str
    node_id: str = ""
    name: str = ""
    phase: Optional[str] = None
    project: Optional[str] = None
    focus: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    node_type: Optional[str] = None
    gps_lat: Optional[float] = None
    gps_lon: Optional[float] = None
    sensors: List[str] = Field(default_factory=list)
    projects: str = ""
    status: str
    elapsed: List[HostElapsedOut] = Field(default_factory=list)
    health: Optional[HealthOut] = None
    sanity: Optional[SanityOut] = None

    @classmethod
    def from_node(
        cls,
        node: NodeStatus,
        *,
        fail_threshold_ms: float,
        warning_threshold_ms: float,
    ) -> "NodeStatusOut":
        elapsed = [
            HostElapsedOut(
                host=host,
                elapsed_ms=round(ms, 3),
                level=ElapsedLevel(elapsed_level(ms, fail_threshold_ms, warning_threshold_ms)),
            )
            for host, ms in node.elapsed_times.items()
        ]
        health = None
        if node.health is not None:
            health = HealthOut(passed=node.health.passed, failed=node.health.failed)
        sanity = None
        if node.sanity is not None:
            sanity = SanityOut(
                passed=node.sanity.passed,
                failed=node.sanity.failed,
                fatal=node.sanity.fatal,
                warning=node.sanity.warning,
            )
        return cls(
            vsn=node.vsn,
            node_id=node.node_id,
            name=node.name,
            phase=node.phase,
            project=node.project,
            focus=node.focus,
            city=node.city,
            state=node.state,
            node_type=node.node_type,
            gps_lat=node.gps_lat,
            gps_lon=node.gps_lon,
            sensors=[sensor.hw_model for sensor in node.sensors],
            projects=node.projects,
            status=node.status.value,
            elapsed=elapsed,
            health=health,
            sanity=sanity,
        )


class NodesResponse(BaseModel):
    updated_at: datetime
    tick: int
    failed_sources: List[str] = Field(default_factory=list)
    total: int
    count: int
    filters: Dict[str, List[str]] = Field(default_factory=dict)
    query: str = ""
    nodes: List[NodeStatusOut] = Field(default_factory=list)


class FacetOptionsOut(BaseModel):
    field: str
    options: List[str] = Field(default_factory=list)


class TimelineEntryOut(BaseModel):
    timestamp: datetime
    value: float
    breakdown: Dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: TimelineEntry) -> "TimelineEntryOut":
        return cls(timestamp=entry.timestamp, value=entry.value, breakdown=dict(entry.breakdown))


class TimelineResponse(BaseModel):
    group: TimelineGroup
    updated_at: datetime
    start: str
    time: str
    series: Dict[str, List[TimelineEntryOut]] = Field(default_factory=dict)
