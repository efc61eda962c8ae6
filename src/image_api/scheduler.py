"""Timer-driven scheduling of sync cycles.

Holds at most one pending timer. After every cycle the next one is
scheduled from the cycle's own answer: the remaining freshness window when
it was skipped, the full interval after it completed. Overlap between
cycles is prevented by the engine's lock, so a timer that fires while a
manual sync is running just yields a "busy" result.
"""

import asyncio
import logging

from image_api import metrics
from image_api.connectors.github.sync import STATUS_BUSY, ImageSyncEngine, SyncResult

logger = logging.getLogger("image_api.scheduler")


class SyncScheduler:
    """Runs ImageSyncEngine.run_cycle on the event loop's timers.

    Attributes:
        engine: Sync engine to drive
        default_interval: Seconds to wait after a failed cycle
    """

    def __init__(self, engine: ImageSyncEngine, default_interval: float) -> None:
        self.engine = engine
        self.default_interval = default_interval
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._stopped = True

    @property
    def next_run_scheduled(self) -> bool:
        return self._timer is not None

    def start(self, force_first: bool = True) -> None:
        """Schedule the first cycle immediately."""
        self._stopped = False
        self.schedule(0, force=force_first)

    def schedule(self, delay: float, force: bool = False) -> None:
        """Replace any pending timer with one firing after ``delay`` seconds."""
        if self._stopped:
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(max(0.0, delay), self._fire, force)
        logger.debug("Next sync cycle in %.0f seconds (force=%s)", delay, force)

    def _fire(self, force: bool) -> None:
        self._timer = None
        self._task = asyncio.create_task(self._run(force))

    async def _run(self, force: bool) -> SyncResult | None:
        try:
            result = await self.engine.run_cycle(force=force)
        except Exception as e:
            logger.exception("Sync cycle failed: %s", e)
            metrics.sync_cycles_total.labels(status="failed").inc()
            self.schedule(self.default_interval)
            return None

        if result.status != STATUS_BUSY and result.next_run_seconds is not None:
            self.schedule(result.next_run_seconds)
        return result

    async def trigger(self, force: bool = True) -> SyncResult:
        """Run a cycle now and reschedule from its result.

        Raises:
            Exception: Whatever the engine raised; the default interval is
                scheduled first
        """
        try:
            result = await self.engine.run_cycle(force=force)
        except Exception:
            metrics.sync_cycles_total.labels(status="failed").inc()
            self.schedule(self.default_interval)
            raise
        if result.status != STATUS_BUSY and result.next_run_seconds is not None:
            self.schedule(result.next_run_seconds)
        return result

    async def stop(self) -> None:
        """Cancel the pending timer and wait for the in-flight cycle."""
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._task is not None and not self._task.done():
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
