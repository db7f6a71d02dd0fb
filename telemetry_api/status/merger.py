"""StatusMerger - combina inventario + batches de métricas en NodeStatus[].

Función pura: no hace I/O, no muta sus argumentos y con las mismas entradas
(incluido `now`) devuelve siempre el mismo resultado.

Reglas:
- Semilla: inventario; si falta, el estado previo (un refresh fallido no
  borra el fleet).
- Cada batch reemplaza por completo el atributo volátil que representa, solo
  para los nodos que menciona. Los demás conservan su valor previo.
- Uptime guarda el último timestamp por host (`last_seen`). `elapsed_times`
  y `status` se recalculan siempre desde `last_seen` y `now`, así un nodo que
  deja de aparecer en los batches envejece hasta `not reporting`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..core.domain import (
    CheckResult,
    HealthSummary,
    MetricRecord,
    NodeReportingStatus,
    NodeStatus,
    SanitySummary,
)
from ..errors import DecodeError

logger = logging.getLogger(__name__)


class BatchKind(str, Enum):
    """Atributo volátil que recalcula cada tipo de batch."""
    UPTIME = "uptime"
    HEALTH = "health"
    SANITY = "sanity"


@dataclass(frozen=True)
class MetricBatch:
    kind: BatchKind
    records: Tuple[MetricRecord, ...] = ()

    @classmethod
    def of(cls, kind: BatchKind, records: Optional[Iterable[MetricRecord]]) -> Optional["MetricBatch"]:
        """Crea el batch, o None si la fetch correspondiente falló."""
        if records is None:
            return None
        return cls(kind=kind, records=tuple(records))


# node -> host -> metric name -> records
AggMetrics = Dict[str, Dict[str, Dict[str, List[MetricRecord]]]]


def group_by_node_and_host(records: Iterable[MetricRecord]) -> AggMetrics:
    """Agrupa registros por node y host.

    Registros sin node o sin host no se incluyen en la agregación.
    """
    by_node: AggMetrics = {}
    for record in records:
        node, host = record.node, record.host
        if not node or not host:
            continue
        by_host = by_node.setdefault(node, {})
        by_name = by_host.setdefault(host, {})
        by_name.setdefault(record.name, []).append(record)
    return by_node


def derive_status(elapsed_times: Mapping[str, float], fail_threshold_ms: float) -> NodeReportingStatus:
    """`reporting` si algún host reportó hace menos que el umbral de fallo."""
    if any(elapsed < fail_threshold_ms for elapsed in elapsed_times.values()):
        return NodeReportingStatus.REPORTING
    return NodeReportingStatus.NOT_REPORTING


def elapsed_level(
    elapsed_ms: Optional[float],
    fail_threshold_ms: float,
    warning_threshold_ms: float,
) -> str:
    """Nivel de un host: "ok" | "warning" | "severe" (sin dato = "severe")."""
    if elapsed_ms is None or elapsed_ms >= fail_threshold_ms:
        return "severe"
    if elapsed_ms > warning_threshold_ms:
        return "warning"
    return "ok"


def merge_metrics(
    previous: Optional[Sequence[NodeStatus]],
    inventory: Optional[Sequence[NodeStatus]],
    *batches: Optional[MetricBatch],
    fail_threshold_ms: float,
    now: datetime,
) -> List[NodeStatus]:
    """Combina inventario y batches en una vista por nodo.

    Args:
        previous: Último resultado publicado (o None)
        inventory: Roster autoritativo del fleet (o None si la fetch falló)
        *batches: Batches de métricas; None = fetch fallida o pendiente
        fail_threshold_ms: Umbral de elapsed para considerar un host caído
        now: Instante de referencia para calcular elapsed_times

    Returns:
        Lista nueva de NodeStatus en el orden de la semilla
    """
    seed = _seed(previous, inventory)
    resolve = _node_resolver(seed)

    merged: Dict[str, NodeStatus] = dict(seed)
    for batch in batches:
        if batch is None:
            continue
        grouped = _group_by_vsn(batch.records, resolve)
        for vsn, records in grouped.items():
            merged[vsn] = _apply_batch(merged[vsn], batch.kind, records)

    return [_refresh_elapsed(node, now, fail_threshold_ms) for node in merged.values()]


def _seed(
    previous: Optional[Sequence[NodeStatus]],
    inventory: Optional[Sequence[NodeStatus]],
) -> Dict[str, NodeStatus]:
    if inventory is None:
        return {node.vsn: node for node in previous or ()}

    prev_by_vsn = {node.vsn: node for node in previous or ()}
    seed: Dict[str, NodeStatus] = {}
    for node in inventory:
        prev = prev_by_vsn.get(node.vsn)
        if prev is not None:
            # Estáticos del inventario, volátiles del tick anterior.
            node = replace(
                node,
                last_seen=prev.last_seen,
                health=prev.health,
                sanity=prev.sanity,
            )
        seed[node.vsn] = node
    return seed


def _node_resolver(seed: Mapping[str, NodeStatus]) -> Callable[[MetricRecord], Optional[str]]:
    by_node_id = {node.node_id.lower(): vsn for vsn, node in seed.items() if node.node_id}

    def resolve(record: MetricRecord) -> Optional[str]:
        node = record.node
        if not node:
            return None
        vsn = record.vsn
        if vsn and vsn in seed:
            return vsn
        return by_node_id.get(node.lower())

    return resolve


def _group_by_vsn(
    records: Iterable[MetricRecord],
    resolve: Callable[[MetricRecord], Optional[str]],
) -> Dict[str, List[MetricRecord]]:
    grouped: Dict[str, List[MetricRecord]] = defaultdict(list)
    excluded = 0
    for record in records:
        vsn = resolve(record)
        if vsn is None:
            excluded += 1
            continue
        grouped[vsn].append(record)
    if excluded:
        logger.debug("MERGE_EXCLUDED records=%d reason=unknown_or_missing_node", excluded)
    return grouped


def _apply_batch(
    node: NodeStatus,
    kind: BatchKind,
    records: Sequence[MetricRecord],
) -> NodeStatus:
    if kind == BatchKind.UPTIME:
        return replace(node, last_seen=_last_seen(records))
    if kind == BatchKind.HEALTH:
        return replace(node, health=HealthSummary(details=_check_results(records)))
    if kind == BatchKind.SANITY:
        return replace(node, sanity=SanitySummary(details=_check_results(records)))
    raise ValueError(f"unknown batch kind: {kind}")


def _last_seen(records: Iterable[MetricRecord]) -> Dict[str, datetime]:
    """host -> timestamp del registro más reciente de ese host."""
    latest: Dict[str, datetime] = {}
    for record in records:
        host = record.host
        if not host:
            continue
        if host not in latest or record.timestamp > latest[host]:
            latest[host] = record.timestamp

    return dict(sorted(latest.items()))


def _refresh_elapsed(node: NodeStatus, now: datetime, fail_threshold_ms: float) -> NodeStatus:
    elapsed = {
        host: (now - ts).total_seconds() * 1000.0
        for host, ts in node.last_seen.items()
    }
    return replace(node, elapsed_times=elapsed, status=derive_status(elapsed, fail_threshold_ms))


def _check_results(records: Iterable[MetricRecord]) -> Tuple[CheckResult, ...]:
    results = []
    for record in records:
        try:
            value = record.numeric_value()
        except DecodeError as e:
            logger.debug("CHECK_SKIPPED name=%s err=%s", record.name, e)
            continue
        results.append(
            CheckResult(
                timestamp=record.timestamp,
                name=record.name,
                value=value,
                host=record.host,
                severity=record.meta.get("severity"),
            )
        )
    results.sort(key=lambda r: (r.timestamp, r.host or "", r.name))
    return tuple(results)
