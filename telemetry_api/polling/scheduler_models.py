"""Modelos y configuración del PollingScheduler.

Extraído de scheduler.py para mantener el loop separado de sus datos.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

T = TypeVar("T")


class SchedulerState(str, Enum):
    """Estados del loop fetch -> merge -> publish -> wait."""
    IDLE = "idle"
    FETCHING = "fetching"
    MERGING = "merging"
    PUBLISHED = "published"
    WAITING = "waiting"
    CANCELLED = "cancelled"


@dataclass
class SchedulerConfig:
    """Configuración del scheduler."""
    interval_seconds: float = 5.0

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        return cls(
            interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "5")),
        )


class CancellationToken:
    """Flag de cancelación que captura cada loop al arrancar."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


@dataclass(frozen=True)
class PublishedSnapshot(Generic[T]):
    """Último resultado publicado; se reemplaza entero en cada tick."""
    value: T
    updated_at: datetime
    tick: int
    failed_sources: Tuple[str, ...] = ()


@dataclass
class SchedulerStats:
    """Estadísticas del scheduler."""
    ticks: int = 0
    publishes: int = 0
    discarded: int = 0
    source_failures: int = 0
    last_tick_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticks": self.ticks,
            "publishes": self.publishes,
            "discarded": self.discarded,
            "source_failures": self.source_failures,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
            "last_error": self.last_error,
        }
