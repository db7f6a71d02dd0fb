"""Modelos de las proyecciones de timeline (por nodo y por app)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple


@dataclass
class TimelineEntry:
    """Un punto de un bucket de timeline.

    `value` siempre es la suma del desglose: `apps` en la proyección por nodo,
    `nodes` en la proyección por app.
    """

    timestamp: datetime
    value: float
    apps: Optional[Dict[str, float]] = None
    nodes: Optional[Dict[str, float]] = None

    @property
    def breakdown(self) -> Dict[str, float]:
        if self.apps is not None:
            return self.apps
        return self.nodes or {}


# Entradas ordenadas por timestamp ascendente, timestamps únicos.
TimelineBucket = List[TimelineEntry]


@dataclass
class TimelineView:
    """Ambas proyecciones; by_app ya viene ordenado por nombre corto."""

    by_node: Dict[str, TimelineBucket] = field(default_factory=dict)
    by_app: Dict[str, TimelineBucket] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.by_node and not self.by_app


@dataclass(frozen=True)
class Job:
    """Job desplegado en el fleet: nodos donde corre e imágenes de sus plugins."""

    name: str
    nodes: Tuple[str, ...] = ()
    images: Tuple[str, ...] = ()
