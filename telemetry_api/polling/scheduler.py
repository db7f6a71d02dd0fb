"""PollingScheduler - loop fetch -> merge -> publish -> wait.

Cada tick pide al pipeline sus fetches, las despacha todas a la vez, las
resuelve con settle_all y publica el resultado del reducer reemplazando el
snapshot entero. La cancelación es cooperativa: stop() marca el token que
capturó el loop y despierta la espera; una fetch en vuelo no se aborta pero
su resultado se descarta.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from ..errors import FleetUnavailableError
from .pipelines import Pipeline
from .scheduler_models import (
    CancellationToken,
    PublishedSnapshot,
    SchedulerConfig,
    SchedulerState,
    SchedulerStats,
)
from .settle import settle_all

logger = logging.getLogger(__name__)

T = TypeVar("T")

PublishCallback = Callable[[PublishedSnapshot], Any]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PollingScheduler(Generic[T]):
    """Scheduler de un pipeline.

    Uso:
        scheduler = PollingScheduler(StatusPipeline(source, settings))
        await scheduler.start()
        ...
        nodes = scheduler.snapshot.value
        scheduler.stop()
        await scheduler.join()
    """

    def __init__(
        self,
        pipeline: Pipeline[T],
        config: Optional[SchedulerConfig] = None,
        on_publish: Optional[PublishCallback] = None,
        clock: Optional[Clock] = None,
    ):
        self._pipeline = pipeline
        self._config = config or SchedulerConfig.from_env()
        self._on_publish = on_publish
        self._clock = clock or _utcnow

        self._state = SchedulerState.IDLE
        self._snapshot: Optional[PublishedSnapshot[T]] = None
        self._token = CancellationToken()
        self._wake: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None
        self._tick_lock: Optional[asyncio.Lock] = None
        self._tick_count = 0
        self._stats = SchedulerStats()

        logger.info(
            "PollingScheduler initialized: pipeline=%s, interval=%.1fs",
            pipeline.name,
            self._config.interval_seconds,
        )

    @property
    def name(self) -> str:
        return self._pipeline.name

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def snapshot(self) -> Optional[PublishedSnapshot[T]]:
        """Último snapshot publicado, o None si todavía no hay ninguno."""
        return self._snapshot

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # -------------------------------------------------------------------------
    # Ciclo de vida
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Ejecuta el primer tick y lanza el loop en background.

        Raises:
            FleetUnavailableError: si todas las fuentes fallan en el primer
                tick. El loop queda igualmente programado.
        """
        if self.running:
            return

        token = CancellationToken()
        self._token = token
        self._wake = asyncio.Event()

        first_error: Optional[FleetUnavailableError] = None
        try:
            await self._tick(token)
        except FleetUnavailableError as e:
            self._stats.last_error = str(e)
            first_error = e

        if not token.cancelled:
            self._task = asyncio.create_task(self._run_loop(token))
            logger.info("PollingScheduler started: pipeline=%s", self.name)

        if first_error is not None:
            raise first_error

    def stop(self) -> None:
        """Cancela el loop. No espera: usar join() para eso."""
        self._token.cancel()
        if self._wake is not None:
            self._wake.set()
        self._state = SchedulerState.CANCELLED
        logger.info("PollingScheduler stopped: pipeline=%s", self.name)

    async def join(self) -> None:
        """Espera a que el loop termine después de stop()."""
        if self._task is not None:
            await self._task

    async def run_once(self) -> Optional[PublishedSnapshot[T]]:
        """Un único tick, sin loop. Devuelve el snapshot vigente."""
        await self._tick(self._token)
        return self._snapshot

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    async def _run_loop(self, token: CancellationToken) -> None:
        wake = self._wake
        while not token.cancelled:
            self._state = SchedulerState.WAITING
            try:
                await asyncio.wait_for(wake.wait(), timeout=self._config.interval_seconds)
            except asyncio.TimeoutError:
                pass
            if token.cancelled:
                break

            try:
                await self._tick(token)
            except FleetUnavailableError as e:
                self._stats.last_error = str(e)
                logger.warning("TICK_FAILED name=%s err=%s", self.name, e)
            except Exception as e:
                self._stats.last_error = f"{type(e).__name__}: {e}"
                logger.exception("PollingScheduler tick error: %s", e)

        self._state = SchedulerState.CANCELLED

    async def _tick(self, token: CancellationToken) -> None:
        if self._tick_lock is None:
            self._tick_lock = asyncio.Lock()

        async with self._tick_lock:
            self._tick_count += 1
            tick = self._tick_count
            self._stats.ticks += 1
            self._state = SchedulerState.FETCHING

            previous = self._snapshot.value if self._snapshot is not None else None
            results = await settle_all(self._pipeline.fetches(previous))
            now = self._clock()
            self._stats.last_tick_at = now

            if token.cancelled:
                self._stats.discarded += 1
                logger.info("TICK_DISCARDED name=%s tick=%d", self.name, tick)
                return

            failed = tuple(name for name, settled in results.items() if not settled.ok)
            self._stats.source_failures += len(failed)

            if results and len(failed) == len(results):
                if previous is None:
                    self._state = SchedulerState.WAITING
                    raise FleetUnavailableError(self.name, failed)
                logger.warning(
                    "TICK_STALE name=%s tick=%d failed=%s", self.name, tick, ",".join(failed)
                )
                self._state = SchedulerState.PUBLISHED
                return

            self._state = SchedulerState.MERGING
            value = self._pipeline.reduce(previous, results, now)
            if value is None:
                logger.debug("TICK_EMPTY name=%s tick=%d", self.name, tick)
                self._state = SchedulerState.PUBLISHED
                return

            snapshot = PublishedSnapshot(
                value=value,
                updated_at=now,
                tick=tick,
                failed_sources=failed,
            )
            self._snapshot = snapshot
            self._stats.publishes += 1
            self._state = SchedulerState.PUBLISHED
            logger.info(
                "TICK_PUBLISHED name=%s tick=%d failed=%d",
                self.name,
                tick,
                len(failed),
            )

        if self._on_publish is not None:
            result = self._on_publish(snapshot)
            if inspect.isawaitable(result):
                await result

    def stats(self) -> dict:
        """Estadísticas del scheduler."""
        data = self._stats.to_dict()
        data.update({
            "pipeline": self.name,
            "state": self._state.value,
            "running": self.running,
            "published": self._snapshot is not None,
            "config": {"interval_seconds": self._config.interval_seconds},
        })
        return data
