"""Health and readiness endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_status_scheduler, get_timeline_scheduler
from ..polling import PollingScheduler

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe, always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(
    status_scheduler: PollingScheduler = Depends(get_status_scheduler),
    timeline_scheduler: PollingScheduler = Depends(get_timeline_scheduler),
):
    """Readiness probe: listo cuando el estado del fleet ya se publicó.

    El timeline no bloquea el readiness; solo se informa.
    """
    if status_scheduler.snapshot is None:
        raise HTTPException(status_code=503, detail="not ready")
    return {
        "status": "ready",
        "pollers": {
            "status": status_scheduler.stats(),
            "timeline": timeline_scheduler.stats(),
        },
    }
