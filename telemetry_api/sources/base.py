"""RecordSource - Interface de las fuentes de telemetría.

Define el contrato que consume el pipeline: inventario, batches de métricas
y rollups. Cualquier fallo de transporte se reporta como TransportError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ..core.domain import MetricRecord, NodeStatus

# vsn -> imagen del plugin -> registros
Rollup = Dict[str, Dict[str, List[MetricRecord]]]

UPTIME_METRIC = "sys.uptime"
HEALTH_METRIC = "sys.health.*"
SANITY_METRIC = "sys.sanity_status.*"


@dataclass(frozen=True)
class MetricQuery:
    """Query al data service.

    `start`/`end` aceptan tiempos relativos ("-12h") o absolutos (ISO-8601).
    `filter` mapea campo -> patrón ("sys.sanity_status.*").
    """

    start: str
    end: Optional[str] = None
    tail: Optional[int] = None
    filter: Mapping[str, str] = field(default_factory=dict)
    bucket: Optional[str] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"start": self.start}
        if self.end is not None:
            params["end"] = self.end
        if self.tail is not None:
            params["tail"] = self.tail
        if self.filter:
            params["filter"] = dict(self.filter)
        if self.bucket is not None:
            params["bucket"] = self.bucket
        return params


class RecordSource(ABC):
    """Colaborador externo: devuelve inventario y registros bajo demanda."""

    @abstractmethod
    async def fetch_inventory(self, project: Optional[str] = None) -> List[NodeStatus]:
        """Roster actual del fleet con atributos estáticos.

        Raises:
            TransportError: si la llamada falla
        """

    @abstractmethod
    async def fetch_metrics(self, query: MetricQuery) -> List[MetricRecord]:
        """Registros que cumplen la query; las líneas inválidas se descartan.

        Raises:
            TransportError: si la llamada falla
        """

    @abstractmethod
    async def fetch_rollup(self, start: str, time: str = "hourly") -> Rollup:
        """Conteos pre-agregados por nodo y por plugin.

        Raises:
            TransportError: si la llamada falla
        """

    async def aclose(self) -> None:
        """Libera conexiones. Por defecto no hace nada."""

    async def fetch_uptime(self, start: str) -> List[MetricRecord]:
        """Último sys.uptime de cada host."""
        return await self.fetch_metrics(
            MetricQuery(start=start, filter={"name": UPTIME_METRIC, "vsn": ".*"}, tail=1)
        )

    async def fetch_health(self, start: str) -> List[MetricRecord]:
        return await self.fetch_metrics(MetricQuery(start=start, filter={"name": HEALTH_METRIC}))

    async def fetch_sanity(self, start: str) -> List[MetricRecord]:
        return await self.fetch_metrics(MetricQuery(start=start, filter={"name": SANITY_METRIC}))
