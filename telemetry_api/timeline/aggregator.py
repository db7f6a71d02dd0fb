"""TimelineAggregator - pivota un rollup (vsn -> imagen -> registros) en dos
proyecciones acumuladas: por nodo y por app.

Invariantes:
- En cada bucket los timestamps son únicos y ascendentes.
- `value` de cada entrada == suma de su desglose (`apps` o `nodes`).
- Nunca se crean buckets vacíos.
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Sequence, Set

from ..core.domain import Job, MetricRecord, NodeStatus, TimelineBucket, TimelineEntry, TimelineView
from ..errors import ConsistencyError, DecodeError

logger = logging.getLogger(__name__)

# vsn -> imagen completa del plugin -> registros
RollupResponse = Mapping[str, Mapping[str, Sequence[MetricRecord]]]

_IP_PORT_RE = re.compile(r"\d+\.\d+\.\d+\.\d+:\d+")


def shorten_plugin_name(plugin: str) -> str:
    """Nombre corto de una imagen de plugin (sin registry ni tag).

    Ejemplos:
        "192.168.1.1:5000/my-app:1.0.0"       -> "my-app"
        "registry.example.org/ns/my-app:2.1"  -> "my-app"
        "localhost:5000/sage/my-app:1.0"      -> "my-app"
    """
    if _IP_PORT_RE.search(plugin):
        return plugin[plugin.find("/") + 1:].split(":")[0]
    return plugin[plugin.rfind("/") + 1:].split(":")[0]


def filter_by_nodes(
    rollup: RollupResponse,
    nodes: Iterable[NodeStatus],
    strict: bool = False,
) -> Dict[str, Mapping[str, Sequence[MetricRecord]]]:
    """Descarta los vsn que no están en `nodes` (alcance del fleet visible).

    Con `strict=True` un vsn desconocido lanza ConsistencyError en vez de
    descartarse.
    """
    visible = {node.vsn for node in nodes}
    if strict:
        unknown = [vsn for vsn in rollup if vsn not in visible]
        if unknown:
            raise ConsistencyError(unknown)
    filtered = {vsn: plugins for vsn, plugins in rollup.items() if vsn in visible}

    dropped = len(rollup) - len(filtered)
    if dropped:
        logger.debug("TIMELINE_SCOPE dropped_nodes=%d kept_nodes=%d", dropped, len(filtered))
    return filtered


def aggregate_by_node(rollup: RollupResponse) -> Dict[str, TimelineBucket]:
    """Una fila por nodo con todas sus apps sumadas por timestamp."""
    by_node: Dict[str, TimelineBucket] = {}

    for vsn, plugins in rollup.items():
        by_ts: Dict[datetime, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        for image, records in plugins.items():
            short = shorten_plugin_name(image)
            for record in records:
                value = _record_value(record)
                if value is None:
                    continue
                by_ts[record.timestamp][short] += value

        if by_ts:
            by_node[vsn] = _to_bucket(by_ts, breakdown="apps")

    return by_node


def aggregate_by_app(rollup: RollupResponse) -> Dict[str, TimelineBucket]:
    """Una fila por imagen de plugin con todos los nodos sumados por timestamp.

    El orden de las claves es alfabético por nombre corto (sin distinguir
    mayúsculas); los consumidores dependen de ese orden.
    """
    acc: Dict[str, Dict[datetime, Dict[str, float]]] = defaultdict(
        lambda: defaultdict(lambda: defaultdict(float))
    )

    for vsn, plugins in rollup.items():
        for image, records in plugins.items():
            for record in records:
                value = _record_value(record)
                if value is None:
                    continue
                acc[image][record.timestamp][vsn] += value

    ordered = sorted(acc, key=lambda image: (shorten_plugin_name(image).lower(), image))
    return {image: _to_bucket(acc[image], breakdown="nodes") for image in ordered if acc[image]}


def process_timeline(rollup: RollupResponse, nodes: Iterable[NodeStatus]) -> TimelineView:
    """Filtra por nodos visibles y devuelve ambas proyecciones."""
    filtered = filter_by_nodes(rollup, nodes)
    return TimelineView(
        by_node=aggregate_by_node(filtered),
        by_app=aggregate_by_app(filtered),
    )


def scope_to_jobs(view: TimelineView, jobs: Iterable[Job]) -> TimelineView:
    """Restringe una vista a los nodos y apps que usan los jobs dados."""
    job_nodes: Set[str] = set()
    job_apps: Set[str] = set()
    for job in jobs:
        job_nodes.update(job.nodes)
        job_apps.update(shorten_plugin_name(image) for image in job.images)

    return TimelineView(
        by_node={vsn: bucket for vsn, bucket in view.by_node.items() if vsn in job_nodes},
        by_app={
            image: bucket
            for image, bucket in view.by_app.items()
            if shorten_plugin_name(image) in job_apps
        },
    )


def _record_value(record: MetricRecord):
    try:
        return record.numeric_value()
    except DecodeError as e:
        logger.debug("ROLLUP_SKIPPED vsn=%s err=%s", record.vsn, e)
        return None


def _to_bucket(by_ts: Mapping[datetime, Mapping[str, float]], breakdown: str) -> List[TimelineEntry]:
    bucket = []
    for ts in sorted(by_ts):
        parts = dict(by_ts[ts])
        entry = TimelineEntry(timestamp=ts, value=sum(parts.values()))
        if breakdown == "apps":
            entry.apps = parts
        else:
            entry.nodes = parts
        bucket.append(entry)
    return bucket
