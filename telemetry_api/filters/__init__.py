"""FacetFilterEngine: filtros por facets y búsqueda libre."""

from .facets import (
    ALL_FACETS,
    NODE_FACETS,
    QUERY_PARAM,
    STATUS_FACETS,
    apply_filters,
    encode_filter_state,
    facet_options,
    filter_by_phase,
    filter_data,
    get_filter_state,
    query_data,
    reporting_only,
    sort_not_reporting_last,
    split_facet_value,
)

__all__ = [
    "ALL_FACETS",
    "NODE_FACETS",
    "QUERY_PARAM",
    "STATUS_FACETS",
    "apply_filters",
    "encode_filter_state",
    "facet_options",
    "filter_by_phase",
    "filter_data",
    "get_filter_state",
    "query_data",
    "reporting_only",
    "sort_not_reporting_last",
    "split_facet_value",
]
