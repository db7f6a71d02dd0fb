"""Endpoints del estado consolidado de los nodos."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from common.config import Settings

from ..core.domain import FACET_FIELDS
from ..dependencies import get_app_settings, get_status_scheduler, require_snapshot
from ..filters import (
    NODE_FACETS,
    STATUS_FACETS,
    apply_filters,
    facet_options,
    filter_by_phase,
    get_filter_state,
    reporting_only,
    sort_not_reporting_last,
)
from ..polling import PollingScheduler
from ..schemas import FacetOptionsOut, NodeStatusOut, NodesResponse

router = APIRouter(tags=["nodes"])

NODES_VIEW_FACETS = STATUS_FACETS | NODE_FACETS


@router.get("/nodes", response_model=NodesResponse)
def list_nodes(
    request: Request,
    phase: Optional[str] = Query(default=None),
    show_all: bool = Query(default=True),
    scheduler: PollingScheduler = Depends(get_status_scheduler),
    settings: Settings = Depends(get_app_settings),
):
    """Nodos del último snapshot, filtrados por facets y `query`.

    Los parámetros de facet usan la codificación `status="reporting","not reporting"`.
    Con show_all=false solo se devuelven los nodos que reportan.
    """
    snapshot = require_snapshot(scheduler)
    state = get_filter_state(request.query_params, NODES_VIEW_FACETS)

    nodes = filter_by_phase(snapshot.value, phase)
    if not show_all:
        nodes = reporting_only(nodes)
    nodes = sort_not_reporting_last(apply_filters(nodes, state))

    return NodesResponse(
        updated_at=snapshot.updated_at,
        tick=snapshot.tick,
        failed_sources=list(snapshot.failed_sources),
        total=len(snapshot.value),
        count=len(nodes),
        filters={name: sorted(values) for name, values in state.active_facets()},
        query=state.query,
        nodes=[
            NodeStatusOut.from_node(
                node,
                fail_threshold_ms=settings.elapsed_fail_ms,
                warning_threshold_ms=settings.elapsed_warning_ms,
            )
            for node in nodes
        ],
    )


@router.get("/nodes/options/{field}", response_model=FacetOptionsOut)
def list_facet_options(
    field: str,
    scheduler: PollingScheduler = Depends(get_status_scheduler),
):
    """Valores disponibles de un facet en el snapshot actual."""
    if field not in FACET_FIELDS:
        raise HTTPException(status_code=404, detail=f"unknown facet: {field}")
    snapshot = require_snapshot(scheduler)
    return FacetOptionsOut(field=field, options=facet_options(snapshot.value, field))
