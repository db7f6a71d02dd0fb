"""FacetFilterEngine - filtros por facets + búsqueda libre.

Codificación de transporte: un parámetro por facet, valores entre comillas
dobles separados por comas:

    status="reporting","not reporting"&city="Chicago"&query=w08

Todas las funciones son puras: no mutan la entrada ni guardan estado entre
llamadas, así que se pueden re-ejecutar en cada cambio de parámetros.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import (
    Any,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

from ..core.domain import FACET_FIELDS, FilterState, NodeReportingStatus


T = TypeVar("T")

QUERY_PARAM = "query"

# Facets reconocidos por vista
STATUS_FACETS: FrozenSet[str] = frozenset({"status", "project", "focus", "city", "state"})
NODE_FACETS: FrozenSet[str] = frozenset({"project", "focus", "city", "state", "sensor", "projects"})
ALL_FACETS: FrozenSet[str] = frozenset(FACET_FIELDS)

Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


# =============================================================================
# PARSEO / CODIFICACIÓN
# =============================================================================

def split_facet_value(raw: str) -> List[str]:
    """Separa por comas respetando comillas dobles.

    `'"a, b","c"'` -> `["a, b", "c"]`; `'a,b'` -> `["a", "b"]`.
    """
    tokens: List[str] = []
    current: List[str] = []
    in_quotes = False

    for ch in raw:
        if ch == '"':
            in_quotes = not in_quotes
            current.append(ch)
        elif ch == "," and not in_quotes:
            tokens.append("".join(current))
            current = []
        else:
            current.append(ch)
    tokens.append("".join(current))

    values = []
    for token in tokens:
        token = token.strip()
        if len(token) >= 2 and token.startswith('"') and token.endswith('"'):
            token = token[1:-1]
        if token:
            values.append(token)
    return values


def get_filter_state(params: Params, facets: FrozenSet[str] = ALL_FACETS) -> FilterState:
    """Construye un FilterState desde parámetros de transporte.

    Args:
        params: Mapping o pares (key, value); con claves repetidas gana la última
        facets: Facets reconocidos por la vista (todos por defecto); el resto se ignora

    Returns:
        FilterState nuevo
    """
    unknown = facets - set(FACET_FIELDS)
    if unknown:
        raise ValueError(f"unknown facets: {sorted(unknown)}")

    values: Dict[str, FrozenSet[str]] = {}
    query = ""
    for key, raw in _iter_params(params):
        if key == QUERY_PARAM:
            query = raw or ""
        elif key in facets:
            values[key] = frozenset(split_facet_value(raw or ""))

    return FilterState(query=query, **values)


def encode_filter_state(state: FilterState) -> Dict[str, str]:
    """Inverso de get_filter_state: facets vacíos no generan parámetro."""
    params: Dict[str, str] = {}
    for name, selected in state.active_facets():
        params[name] = ",".join(f'"{value}"' for value in sorted(selected))
    if state.query:
        params[QUERY_PARAM] = state.query
    return params


def _iter_params(params: Params) -> Iterator[Tuple[str, str]]:
    # QueryParams de starlette expone multi_items(); dict normal, items().
    if hasattr(params, "multi_items"):
        yield from params.multi_items()
    elif isinstance(params, Mapping):
        yield from params.items()
    else:
        yield from params


# =============================================================================
# FILTROS
# =============================================================================

def filter_data(records: Sequence[T], state: FilterState) -> List[T]:
    """AND entre facets, OR dentro de cada facet; match exacto."""
    active = list(state.active_facets())
    if not active:
        return list(records)

    return [
        record
        for record in records
        if all(_matches(record, facet, selected) for facet, selected in active)
    ]


def query_data(records: Sequence[T], query: str) -> List[T]:
    """Búsqueda libre: el texto concatenado del registro contiene la query."""
    if not query:
        return list(records)
    needle = query.lower()
    return [record for record in records if needle in _record_text(record).lower()]


def apply_filters(records: Sequence[T], state: FilterState) -> List[T]:
    """query + facets; el orden da igual (ambos solo reducen)."""
    return filter_data(query_data(records, state.query), state)


def facet_options(records: Iterable[Any], field: str) -> List[str]:
    """Valores distintos y no vacíos de un campo, en orden de aparición."""
    seen: Dict[str, None] = {}
    for record in records:
        for value in _field_values(record, field):
            if value:
                seen.setdefault(value, None)
    return list(seen)


def filter_by_phase(records: Sequence[T], phase: Optional[str]) -> List[T]:
    if not phase:
        return list(records)
    return [record for record in records if _get(record, "phase") == phase]


def reporting_only(records: Sequence[T]) -> List[T]:
    return [
        record for record in records
        if _scalar(_get(record, "status")) == NodeReportingStatus.REPORTING.value
    ]


def sort_not_reporting_last(records: Sequence[T]) -> List[T]:
    """Orden estable: primero los que reportan."""
    return sorted(
        records,
        key=lambda r: _scalar(_get(r, "status")) == NodeReportingStatus.NOT_REPORTING.value,
    )


# =============================================================================
# ACCESO A CAMPOS
# =============================================================================

def _matches(record: Any, facet: str, selected: FrozenSet[str]) -> bool:
    return any(value in selected for value in _field_values(record, facet))


def _field_values(record: Any, field: str) -> List[str]:
    if field == "sensor":
        sensors = _get(record, "sensors") or ()
        return [str(_get(s, "hw_model")) for s in sensors if _get(s, "hw_model")]

    if field == "projects":
        raw = _get(record, "projects") or ""
        if isinstance(raw, str):
            return [p for p in raw.split(", ") if p]
        return [_scalar(p) for p in raw]

    value = _get(record, field)
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_scalar(v) for v in value if v is not None]
    return [_scalar(value)]


def _get(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _scalar(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if value is None:
        return ""
    return str(value)


def _record_text(record: Any) -> str:
    return "".join(_to_text(v) for v in _record_values(record))


def _record_values(record: Any) -> Iterable[Any]:
    if isinstance(record, Mapping):
        return record.values()
    if dataclasses.is_dataclass(record):
        return [getattr(record, f.name) for f in dataclasses.fields(record)]
    if hasattr(record, "model_dump"):
        return record.model_dump().values()
    return vars(record).values()


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (str, int, float)):
        return str(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(_to_text(v) for v in value)
    if isinstance(value, Mapping) or dataclasses.is_dataclass(value):
        return ",".join(_to_text(v) for v in _record_values(value))
    return str(value)
