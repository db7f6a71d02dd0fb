"""TimelineAggregator: proyecciones por nodo y por app."""

from .aggregator import (
    RollupResponse,
    aggregate_by_app,
    aggregate_by_node,
    filter_by_nodes,
    process_timeline,
    scope_to_jobs,
    shorten_plugin_name,
)

__all__ = [
    "RollupResponse",
    "aggregate_by_app",
    "aggregate_by_node",
    "filter_by_nodes",
    "process_timeline",
    "scope_to_jobs",
    "shorten_plugin_name",
]
