"""NodeStatus - vista consolidada de un nodo físico del fleet.

Atributos estáticos (vienen del inventario) + atributos volátiles (se
recalculan en cada tick a partir de los batches de métricas).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class NodeReportingStatus(str, Enum):
    """Estado derivado de elapsed_times."""
    REPORTING = "reporting"
    NOT_REPORTING = "not reporting"


@dataclass(frozen=True)
class SensorInfo:
    hw_model: str
    capabilities: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ComputeInfo:
    name: str
    serial_no: str = ""
    is_active: bool = True


@dataclass(frozen=True)
class CheckResult:
    """Resultado individual de un health check o sanity test."""
    timestamp: datetime
    name: str
    value: float
    host: Optional[str] = None
    severity: Optional[str] = None


@dataclass(frozen=True)
class HealthSummary:
    """Health checks de un nodo. Un check pasa cuando value == 1."""

    details: Tuple[CheckResult, ...] = ()

    @property
    def passed(self) -> int:
        return sum(1 for d in self.details if d.value == 1)

    @property
    def failed(self) -> int:
        return len(self.details) - self.passed


@dataclass(frozen=True)
class SanitySummary:
    """Sanity tests de un nodo. Un test pasa cuando value == 0."""

    details: Tuple[CheckResult, ...] = ()

    @property
    def passed(self) -> int:
        return sum(1 for d in self.details if d.value == 0)

    @property
    def failed(self) -> int:
        return len(self.details) - self.passed

    @property
    def fatal(self) -> int:
        return sum(1 for d in self.details if d.value != 0 and d.severity == "fatal")

    @property
    def warning(self) -> int:
        return sum(1 for d in self.details if d.value != 0 and d.severity == "warning")


@dataclass(frozen=True)
class NodeStatus:
    """Una entrada por nodo físico; `vsn` es la clave única."""

    # ESTÁTICOS (inventario)
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
    sensors: Tuple[SensorInfo, ...] = ()
    computes: Tuple[ComputeInfo, ...] = ()
    projects: str = ""

    # VOLÁTILES (métricas)
    status: NodeReportingStatus = NodeReportingStatus.NOT_REPORTING
    # host -> último uptime; elapsed_times se deriva de aquí en cada merge
    last_seen: Mapping[str, datetime] = field(default_factory=dict)
    elapsed_times: Mapping[str, float] = field(default_factory=dict)
    health: Optional[HealthSummary] = None
    sanity: Optional[SanitySummary] = None

    @property
    def is_reporting(self) -> bool:
        return self.status == NodeReportingStatus.REPORTING

    @classmethod
    def from_inventory(cls, data: Mapping[str, Any]) -> "NodeStatus":
        """Crea un NodeStatus (solo atributos estáticos) desde el JSON del inventario."""
        sensors = tuple(
            SensorInfo(
                hw_model=str(s.get("hw_model", "")),
                capabilities=tuple(s.get("capabilities") or ()),
            )
            for s in data.get("sensors") or ()
        )
        computes = tuple(
            ComputeInfo(
                name=str(c.get("name", "")),
                serial_no=str(c.get("serial_no", "")),
                is_active=bool(c.get("is_active", True)),
            )
            for c in data.get("computes") or ()
        )
        return cls(
            vsn=str(data["vsn"]),
            node_id=str(data.get("id") or data.get("node_id") or "").lower(),
            name=str(data.get("name") or ""),
            phase=data.get("phase"),
            project=data.get("project"),
            focus=data.get("focus"),
            city=data.get("city"),
            state=data.get("state"),
            node_type=data.get("type") or data.get("node_type"),
            gps_lat=_to_float(data.get("gps_lat")),
            gps_lon=_to_float(data.get("gps_lon")),
            sensors=sensors,
            computes=computes,
            projects=str(data.get("projects") or ""),
        )


def _to_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
