"""StatusMerger: vista consolidada por nodo."""

from .merger import (
    AggMetrics,
    BatchKind,
    MetricBatch,
    derive_status,
    elapsed_level,
    group_by_node_and_host,
    merge_metrics,
)

__all__ = [
    "AggMetrics",
    "BatchKind",
    "MetricBatch",
    "derive_status",
    "elapsed_level",
    "group_by_node_and_host",
    "merge_metrics",
]
