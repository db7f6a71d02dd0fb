from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.config import get_settings
from common.logging_setup import configure_logging

from .endpoints import health_router, nodes_router, timeline_router
from .errors import FleetUnavailableError
from .polling import (
    PollingScheduler,
    SchedulerConfig,
    StatusPipeline,
    TimelinePipeline,
)
from .sources import HttpRecordSource

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    source = HttpRecordSource(settings)
    config = SchedulerConfig(interval_seconds=settings.poll_interval_seconds)
    schedulers = {
        "status_scheduler": PollingScheduler(StatusPipeline(source, settings), config),
        "timeline_scheduler": PollingScheduler(TimelinePipeline(source, settings), config),
    }

    app.state.settings = settings
    for attr, scheduler in schedulers.items():
        setattr(app.state, attr, scheduler)
        try:
            await scheduler.start()
        except FleetUnavailableError as e:
            # El loop sigue programado; los endpoints responden 503 hasta que publique.
            logger.error("[STARTUP] %s", e)

    yield

    for scheduler in schedulers.values():
        scheduler.stop()
    for scheduler in schedulers.values():
        await scheduler.join()
    await source.aclose()


app = FastAPI(title="Fleet Telemetry Service", version="0.1.0", lifespan=lifespan)
app.include_router(health_router)
app.include_router(nodes_router)
app.include_router(timeline_router)
