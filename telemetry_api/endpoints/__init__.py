"""Módulo de endpoints HTTP.

Contiene los endpoints de la API de telemetría organizados por función.
"""

from .health import router as health_router
from .nodes import router as nodes_router
from .timeline import router as timeline_router

__all__ = [
    "health_router",
    "nodes_router",
    "timeline_router",
]
