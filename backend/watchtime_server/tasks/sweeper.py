from __future__ import annotations
import asyncio
import logging
import time
from typing import Callable, Optional

from watchtime_server.core.dependencies import get_progress_service
from watchtime_server.core.system_settings import get_value as sys_get
from watchtime_server.models.progress import SweepReport
from watchtime_server.services.progress import WatchProgressService

_log = logging.getLogger(__name__)


class ProgressSweeper:
    """Periodic reconciliation of sessions whose client never synced.

    - One cycle in flight at a time: ``run_once`` callers queue on a lock, so
      an overlapping request starts only after the running cycle finishes.
    - The loop sleeps a full interval after each cycle, so slow cycles push
      the next start back instead of overlapping it.
    - Reconciliation itself is blocking work guarded by thread locks and runs
      in a worker thread.
    """

    def __init__(self, service_provider: Callable[[], WatchProgressService] = get_progress_service):
        self._provider = service_provider
        self._loop_interval = 30.0
        self._runner_started = False
        self._task: Optional[asyncio.Task] = None
        self._cycle_lock = asyncio.Lock()
        self.cycles = 0
        self.last_report: SweepReport | None = None
        self.last_finished_at: float | None = None
        self.reload_configuration()

    def reload_configuration(self) -> None:
        current = getattr(self, '_loop_interval', 30.0)
        try:
            value = sys_get('SWEEP_INTERVAL_SECONDS', current)
            if value is not None and float(value) > 0:
                self._loop_interval = float(value)
        except (TypeError, ValueError):
            self._loop_interval = current

    @property
    def interval(self) -> float:
        return self._loop_interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def busy(self) -> bool:
        return self._cycle_lock.locked()

    async def run_once(self) -> SweepReport:
        async with self._cycle_lock:
            service = self._provider()
            started = time.perf_counter()
            report = await asyncio.to_thread(service.sweep_pending)
            self.cycles += 1
            self.last_report = report
            self.last_finished_at = time.time()
            if report.keys_reconciled:
                _log.info(
                    "sweep cycle=%d reconciled=%d/%d merged=%d dropped=%d in %.1fms",
                    self.cycles,
                    report.keys_reconciled,
                    report.keys_visited,
                    report.intervals_merged,
                    report.intervals_dropped,
                    (time.perf_counter() - started) * 1000.0,
                )
            else:
                _log.debug("sweep cycle=%d nothing pending", self.cycles)
            return report

    async def start(self):
        if self._runner_started:
            return
        self.reload_configuration()
        self._runner_started = True
        _log.info("starting progress sweeper interval=%ss", self._loop_interval)
        self._task = asyncio.create_task(self._main_loop())

    async def stop(self):
        task = self._task
        self._task = None
        self._runner_started = False
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        _log.info("progress sweeper stopped after %d cycle(s)", self.cycles)

    async def _main_loop(self):
        while True:
            await asyncio.sleep(self._loop_interval)
            try:
                await self.run_once()
            except Exception:
                _log.exception("sweep cycle failed")


sweeper = ProgressSweeper()
