"""Excepciones del pipeline de telemetría.

Solo TransportError y FleetUnavailableError cruzan límites de componente;
DecodeError se recupera localmente descartando el registro.
"""

from __future__ import annotations

from typing import Optional, Sequence


class TelemetryError(Exception):
    """Base de los errores del pipeline."""


class TransportError(TelemetryError):
    """Una llamada a RecordSource falló (red, HTTP, status no-2xx)."""

    def __init__(self, source: str, message: str, status_code: Optional[int] = None):
        self.source = source
        self.status_code = status_code
        detail = f" status={status_code}" if status_code is not None else ""
        super().__init__(f"{source} request failed:{detail} {message}")


class DecodeError(TelemetryError):
    """Un registro (una línea NDJSON) no se pudo decodificar."""

    def __init__(self, message: str, line: Optional[str] = None):
        self.line = line
        super().__init__(message)


class ConsistencyError(TelemetryError):
    """Datos que referencian nodos desconocidos para el inventario.

    Por defecto esos datos se excluyen en silencio; solo se lanza en modo
    estricto (`filter_by_nodes(..., strict=True)`).
    """

    def __init__(self, unknown_nodes: Sequence[str]):
        self.unknown_nodes = sorted(unknown_nodes)
        super().__init__(f"rollup references unknown nodes: {', '.join(self.unknown_nodes)}")


class FleetUnavailableError(TelemetryError):
    """Todas las fuentes fallaron en el primer ciclo: no hay nada que publicar."""

    def __init__(self, pipeline: str, failed_sources: Sequence[str]):
        self.pipeline = pipeline
        self.failed_sources = list(failed_sources)
        super().__init__(
            f"Pipeline '{pipeline}' has no data: all sources failed "
            f"({', '.join(self.failed_sources)})"
        )
