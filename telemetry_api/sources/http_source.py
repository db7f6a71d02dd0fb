"""HttpRecordSource - RecordSource sobre httpx contra los servicios del fleet.

- Data service ("beehive"):  POST {beehive}/query  -> NDJSON
- Inventario ("beekeeper"):  GET  {beekeeper}/state -> {"data": [...]}
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from common.config import Settings

from ..core.domain import MetricRecord, NodeStatus
from ..errors import TransportError
from .base import MetricQuery, RecordSource, Rollup
from .ndjson import decode_records

logger = logging.getLogger(__name__)

# Nodos de prueba / laptops registrados en el inventario
IGNORE_LIST = frozenset({
    "0000000000000001", "000048b02d059c6a", "000048b02d07627c",
    "000048b02d0766cd", "000048b02d0766d2", "000048b02d15bc65",
    "000048b02d15c1aa", "000048b02d15d52f", "suryalaptop00000",
})


class HttpRecordSource(RecordSource):
    """Fuente HTTP asíncrona.

    Uso:
        source = HttpRecordSource(get_settings())
        nodes = await source.fetch_inventory()
        uptimes = await source.fetch_uptime("-4d")
        await source.aclose()
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._stats = {"requests": 0, "errors": 0, "dropped_lines": 0}

    @property
    def stats(self) -> Dict[str, int]:
        return dict(self._stats)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -------------------------------------------------------------------------
    # Inventario
    # -------------------------------------------------------------------------

    async def fetch_inventory(self, project: Optional[str] = None) -> List[NodeStatus]:
        url = f"{self._settings.beekeeper_url}/state"
        payload = await self._request("beekeeper", "GET", url)
        try:
            body = payload.json()
        except ValueError as e:
            raise TransportError("beekeeper", f"invalid json body: {e}") from e
        if not isinstance(body, dict):
            raise TransportError("beekeeper", f"unexpected json body: {type(body).__name__}")

        rows = body.get("data") or []
        if not isinstance(rows, list):
            raise TransportError("beekeeper", f"unexpected data field: {type(rows).__name__}")

        nodes = []
        for row in rows:
            if not isinstance(row, dict):
                logger.debug("INVENTORY_SKIPPED reason=not_an_object")
                continue
            if str(row.get("id", "")).lower() in IGNORE_LIST:
                continue
            if not row.get("vsn"):
                logger.debug("INVENTORY_SKIPPED id=%s reason=missing_vsn", row.get("id"))
                continue
            node = NodeStatus.from_inventory(row)
            if project and (node.project or "").lower() != project.lower():
                continue
            nodes.append(node)

        logger.debug("INVENTORY_FETCHED nodes=%d project=%s", len(nodes), project)
        return nodes

    # -------------------------------------------------------------------------
    # Métricas
    # -------------------------------------------------------------------------

    async def fetch_metrics(self, query: MetricQuery) -> List[MetricRecord]:
        url = f"{self._settings.beehive_url}/query"
        response = await self._request("beehive", "POST", url, json=query.to_params())
        result = decode_records(response.text)
        self._stats["dropped_lines"] += result.dropped
        return result.records

    async def fetch_rollup(self, start: str, time: str = "hourly") -> Rollup:
        query = MetricQuery(
            start=start,
            filter={"name": self._settings.rollup_metric},
            bucket=time,
        )
        records = await self.fetch_metrics(query)
        return group_rollup(records)

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    async def _request(self, source: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self._stats["requests"] += 1
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            self._stats["errors"] += 1
            raise TransportError(source, _error_detail(e.response), e.response.status_code) from e
        except httpx.HTTPError as e:
            self._stats["errors"] += 1
            raise TransportError(source, f"{type(e).__name__}: {e}") from e


def group_rollup(records: List[MetricRecord]) -> Rollup:
    """Agrupa registros de rollup por meta.vsn y meta.plugin."""
    rollup: Rollup = {}
    for record in records:
        vsn, plugin = record.vsn, record.plugin
        if not vsn or not plugin:
            continue
        rollup.setdefault(vsn, {}).setdefault(plugin, []).append(record)
    return rollup


def _error_detail(response: httpx.Response) -> str:
    # El data service responde {"error": "..."} en los 4xx/5xx.
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text[:200]
