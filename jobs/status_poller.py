"""CLI entry point del poller del fleet.

    python -m jobs.status_poller --once
    python -m jobs.status_poller --interval 10 --project SAGE --timeline
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

from common.config import Settings, get_settings
from common.logging_setup import configure_logging
from telemetry_api.errors import FleetUnavailableError
from telemetry_api.polling import (
    PollingScheduler,
    PublishedSnapshot,
    SchedulerConfig,
    StatusPipeline,
    TimelinePipeline,
)
from telemetry_api.sources import HttpRecordSource

logger = logging.getLogger(__name__)


def log_status_snapshot(snapshot: PublishedSnapshot) -> None:
    nodes = snapshot.value
    reporting = sum(1 for node in nodes if node.is_reporting)
    logger.info(
        "STATUS tick=%d nodes=%d reporting=%d not_reporting=%d failed=%s",
        snapshot.tick,
        len(nodes),
        reporting,
        len(nodes) - reporting,
        ",".join(snapshot.failed_sources) or "-",
    )


def log_timeline_snapshot(snapshot: PublishedSnapshot) -> None:
    view = snapshot.value.view
    logger.info(
        "TIMELINE tick=%d nodes=%d apps=%d failed=%s",
        snapshot.tick,
        len(view.by_node),
        len(view.by_app),
        ",".join(snapshot.failed_sources) or "-",
    )


def build_schedulers(
    source: HttpRecordSource,
    settings: Settings,
    *,
    interval: float,
    project: Optional[str],
    timeline: bool,
) -> List[PollingScheduler]:
    config = SchedulerConfig(interval_seconds=interval)
    schedulers = [
        PollingScheduler(
            StatusPipeline(source, settings, project=project),
            config,
            on_publish=log_status_snapshot,
        )
    ]
    if timeline:
        schedulers.append(
            PollingScheduler(
                TimelinePipeline(source, settings, project=project),
                config,
                on_publish=log_timeline_snapshot,
            )
        )
    return schedulers


async def run(args: argparse.Namespace, settings: Settings) -> int:
    source = HttpRecordSource(settings)
    interval = args.interval if args.interval is not None else settings.poll_interval_seconds
    schedulers = build_schedulers(
        source,
        settings,
        interval=interval,
        project=args.project,
        timeline=args.timeline,
    )

    try:
        if args.once:
            for scheduler in schedulers:
                try:
                    await scheduler.run_once()
                except FleetUnavailableError as e:
                    logger.error("%s", e)
                    return 1
            return 0

        for scheduler in schedulers:
            try:
                await scheduler.start()
            except FleetUnavailableError as e:
                logger.error("%s (retrying every %.1fs)", e, interval)

        await asyncio.gather(*(scheduler.join() for scheduler in schedulers))
        return 0
    finally:
        for scheduler in schedulers:
            scheduler.stop()
        await source.aclose()


def main() -> None:
    p = argparse.ArgumentParser(description="Fleet status poller (status + timeline)")
    p.add_argument("--interval", type=float, default=None, help="seconds between ticks")
    p.add_argument("--project", default=None, help="only nodes of this project")
    p.add_argument("--timeline", action="store_true", help="also poll the activity timeline")
    p.add_argument("--once", action="store_true", help="run a single tick and exit")
    args = p.parse_args()

    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Fleet poller started: beehive=%s beekeeper=%s", settings.beehive_url, settings.beekeeper_url)

    try:
        code = asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        logger.info("Fleet poller interrupted")
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
