"""Dependencias FastAPI compartidas por los endpoints.

Los schedulers viven en app.state (los crea el lifespan de main.py); los
tests los reemplazan con app.dependency_overrides.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, Request

from common.config import Settings, get_settings

from .polling import PollingScheduler, PublishedSnapshot


def get_app_settings(request: Request) -> Settings:
    settings: Optional[Settings] = getattr(request.app.state, "settings", None)
    return settings or get_settings()


def get_status_scheduler(request: Request) -> PollingScheduler:
    return _scheduler(request, "status_scheduler")


def get_timeline_scheduler(request: Request) -> PollingScheduler:
    return _scheduler(request, "timeline_scheduler")


def require_snapshot(scheduler: PollingScheduler) -> PublishedSnapshot:
    """Snapshot vigente; 503 mientras no se haya publicado nada."""
    snapshot = scheduler.snapshot
    if snapshot is None:
        raise HTTPException(status_code=503, detail=f"{scheduler.name} not available yet")
    return snapshot


def _scheduler(request: Request, attr: str) -> PollingScheduler:
    scheduler = getattr(request.app.state, attr, None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="poller not started")
    return scheduler
