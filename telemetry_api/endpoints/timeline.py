"""Endpoint de timelines de actividad (por nodo o por app)."""

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_timeline_scheduler, require_snapshot
from ..polling import PollingScheduler
from ..schemas import TimelineEntryOut, TimelineGroup, TimelineResponse

router = APIRouter(tags=["timeline"])


@router.get("/timeline", response_model=TimelineResponse)
def get_timeline(
    group: TimelineGroup = Query(default=TimelineGroup.NODES),
    scheduler: PollingScheduler = Depends(get_timeline_scheduler),
):
    snapshot = require_snapshot(scheduler)
    timeline = snapshot.value
    buckets = timeline.view.by_node if group == TimelineGroup.NODES else timeline.view.by_app

    return TimelineResponse(
        group=group,
        updated_at=snapshot.updated_at,
        start=timeline.start,
        time=timeline.time,
        series={
            key: [TimelineEntryOut.from_entry(entry) for entry in bucket]
            for key, bucket in buckets.items()
        },
    )
