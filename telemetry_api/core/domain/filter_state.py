"""FilterState - estado de facets + query libre.

Registro cerrado: un campo por facet conocido. Solo se construye desde
parámetros de transporte vía filters.facets.get_filter_state().
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Dict, FrozenSet, Iterator, Tuple

FACET_FIELDS: Tuple[str, ...] = (
    "status",
    "project",
    "focus",
    "city",
    "state",
    "sensor",
    "projects",
)


@dataclass(frozen=True)
class FilterState:
    status: FrozenSet[str] = frozenset()
    project: FrozenSet[str] = frozenset()
    focus: FrozenSet[str] = frozenset()
    city: FrozenSet[str] = frozenset()
    state: FrozenSet[str] = frozenset()
    sensor: FrozenSet[str] = frozenset()
    projects: FrozenSet[str] = frozenset()
    query: str = ""

    def facets(self) -> Dict[str, FrozenSet[str]]:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name in FACET_FIELDS}

    def active_facets(self) -> Iterator[Tuple[str, FrozenSet[str]]]:
        """Facets con al menos un valor seleccionado."""
        for name, values in self.facets().items():
            if values:
                yield name, values
