"""Pipelines que conecta el PollingScheduler.

Un pipeline define qué se trae en cada tick (`fetches`) y cómo se combina
con el resultado anterior (`reduce`). El scheduler no conoce el dominio.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Dict, Generic, List, Mapping, Optional, Tuple, TypeVar

from common.config import Settings

from ..core.domain import Job, NodeStatus, TimelineView
from ..sources import RecordSource
from ..status import BatchKind, MetricBatch, merge_metrics
from ..timeline import process_timeline, scope_to_jobs
from .settle import Settled

logger = logging.getLogger(__name__)

T = TypeVar("T")

INVENTORY = "inventory"
UPTIME = "uptime"
HEALTH = "health"
SANITY = "sanity"
ROLLUP = "rollup"


class Pipeline(ABC, Generic[T]):
    """Contrato fetch/reduce de un pipeline."""

    name: str = "pipeline"

    @abstractmethod
    def fetches(self, previous: Optional[T]) -> Dict[str, Awaitable[Any]]:
        """Fetches del tick, por nombre. Se despachan todas a la vez."""

    @abstractmethod
    def reduce(self, previous: Optional[T], results: Mapping[str, Settled], now: datetime) -> Optional[T]:
        """Combina los resultados del tick. None = nada que publicar."""


class StatusPipeline(Pipeline[List[NodeStatus]]):
    """Inventario + uptime (+ health y sanity) -> NodeStatus[].

    El inventario se pide mientras no haya un resultado previo, o en cada
    tick si `refresh_inventory=True`. Sin inventario, el merge usa el estado
    previo como semilla.
    """

    name = "status"

    def __init__(
        self,
        source: RecordSource,
        settings: Settings,
        *,
        include_checks: bool = True,
        refresh_inventory: bool = False,
        project: Optional[str] = None,
    ):
        self._source = source
        self._settings = settings
        self._include_checks = include_checks
        self._refresh_inventory = refresh_inventory
        self._project = project if project is not None else settings.project

    def fetches(self, previous: Optional[List[NodeStatus]]) -> Dict[str, Awaitable[Any]]:
        fetches: Dict[str, Awaitable[Any]] = {}
        if not previous or self._refresh_inventory:
            fetches[INVENTORY] = self._source.fetch_inventory(self._project)
        fetches[UPTIME] = self._source.fetch_uptime(self._settings.node_status_range)
        if self._include_checks:
            fetches[HEALTH] = self._source.fetch_health(self._settings.sparkline_start)
            fetches[SANITY] = self._source.fetch_sanity(self._settings.sparkline_start)
        return fetches

    def reduce(
        self,
        previous: Optional[List[NodeStatus]],
        results: Mapping[str, Settled],
        now: datetime,
    ) -> Optional[List[NodeStatus]]:
        inventory = _value(results, INVENTORY)
        if inventory is None and not previous:
            # Sin roster no hay fleet que publicar; se reintenta en el próximo tick.
            logger.warning("STATUS_SKIPPED reason=no_inventory")
            return None

        return merge_metrics(
            previous,
            inventory,
            MetricBatch.of(BatchKind.UPTIME, _value(results, UPTIME)),
            MetricBatch.of(BatchKind.HEALTH, _value(results, HEALTH)),
            MetricBatch.of(BatchKind.SANITY, _value(results, SANITY)),
            fail_threshold_ms=self._settings.elapsed_fail_ms,
            now=now,
        )


@dataclass(frozen=True)
class TimelineSnapshot:
    """Vista de timeline + nodos usados para acotarla."""
    view: TimelineView
    nodes: Tuple[NodeStatus, ...] = ()
    start: str = ""
    time: str = "hourly"


@dataclass
class TimelineOptions:
    start: str = "-7d"
    time: str = "hourly"
    jobs: List[Job] = field(default_factory=list)


class TimelinePipeline(Pipeline[TimelineSnapshot]):
    """Inventario + rollup -> timelines por nodo y por app."""

    name = "timeline"

    def __init__(
        self,
        source: RecordSource,
        settings: Settings,
        options: Optional[TimelineOptions] = None,
        *,
        project: Optional[str] = None,
    ):
        self._source = source
        self._options = options or TimelineOptions(
            start=settings.rollup_start,
            time=settings.rollup_time,
        )
        self._project = project if project is not None else settings.project

    def fetches(self, previous: Optional[TimelineSnapshot]) -> Dict[str, Awaitable[Any]]:
        fetches: Dict[str, Awaitable[Any]] = {}
        if previous is None or not previous.nodes:
            fetches[INVENTORY] = self._source.fetch_inventory(self._project)
        fetches[ROLLUP] = self._source.fetch_rollup(self._options.start, self._options.time)
        return fetches

    def reduce(
        self,
        previous: Optional[TimelineSnapshot],
        results: Mapping[str, Settled],
        now: datetime,
    ) -> Optional[TimelineSnapshot]:
        inventory = _value(results, INVENTORY)
        if inventory is not None:
            nodes = tuple(inventory)
        elif previous is not None:
            nodes = previous.nodes
        else:
            # Sin roster no se puede acotar el rollup al fleet visible.
            logger.warning("TIMELINE_SKIPPED reason=no_inventory")
            return None

        rollup = _value(results, ROLLUP)
        if rollup is None:
            return previous

        view = process_timeline(rollup, nodes)
        if self._options.jobs:
            view = scope_to_jobs(view, self._options.jobs)

        return TimelineSnapshot(
            view=view,
            nodes=nodes,
            start=self._options.start,
            time=self._options.time,
        )


def _value(results: Mapping[str, Settled], name: str) -> Any:
    settled = results.get(name)
    if settled is None:
        return None
    return settled.value_or_none()
