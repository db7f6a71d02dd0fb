"""Fixtures compartidas: fábricas de registros y nodos."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import pytest

from common.config import Settings
from telemetry_api.core.domain import MetricRecord, NodeStatus, SensorInfo

NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def record(
    name: str,
    value: Any,
    *,
    node: Optional[str] = None,
    host: Optional[str] = None,
    vsn: Optional[str] = None,
    plugin: Optional[str] = None,
    ago_ms: float = 0,
    ts: Optional[datetime] = None,
    **meta: str,
) -> MetricRecord:
    """MetricRecord con meta opcional; `ago_ms` relativo a NOW."""
    fields: Dict[str, str] = dict(meta)
    for key, val in (("node", node), ("host", host), ("vsn", vsn), ("plugin", plugin)):
        if val is not None:
            fields[key] = val
    return MetricRecord(
        timestamp=ts if ts is not None else NOW - timedelta(milliseconds=ago_ms),
        name=name,
        value=value,
        meta=fields,
    )


def node(vsn: str, node_id: str = "", **kwargs: Any) -> NodeStatus:
    sensors = tuple(SensorInfo(hw_model=m) for m in kwargs.pop("sensors", ()))
    return NodeStatus(vsn=vsn, node_id=node_id or vsn.lower() * 2, sensors=sensors, **kwargs)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings() -> Settings:
    return Settings(
        beehive_url="http://beehive.test/api/v1",
        beekeeper_url="http://beekeeper.test",
        poll_interval_seconds=0.01,
        http_timeout_seconds=1.0,
        elapsed_fail_ms=240000,
        elapsed_warning_ms=65000,
        sparkline_start="-12h",
        node_status_range="-4d",
        rollup_start="-7d",
        rollup_time="hourly",
        rollup_metric="sys.plugin.records",
        project=None,
        log_level="DEBUG",
    )
