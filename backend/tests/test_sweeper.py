"""Tests for the background sweep loop."""

import asyncio
import threading
import time

import pytest

from watchtime_server.core.system_settings import set_value
from watchtime_server.models.progress import Interval, SweepReport
from watchtime_server.tasks.sweeper import ProgressSweeper


class _SlowService:
    """Stands in for the engine and records how many sweeps overlap."""

    def __init__(self, delay: float):
        self.delay = delay
        self.active = 0
        self.peak = 0
        self.calls = 0
        self._lock = threading.Lock()

    def sweep_pending(self) -> SweepReport:
        with self._lock:
            self.active += 1
            self.calls += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.delay)
        with self._lock:
            self.active -= 1
        return SweepReport()


@pytest.mark.asyncio
async def test_run_once_reconciles_pending(service, key):
    service.track(key, Interval(0.0, 10.0), 11.0)
    sweeper = ProgressSweeper(lambda: service)

    report = await sweeper.run_once()

    assert report.keys_reconciled == 1
    assert sweeper.cycles == 1
    assert sweeper.last_report is report
    assert service.get_total_watch_time(key) == pytest.approx(10.0)
    assert service.get_resume_point(key) == 11.0


@pytest.mark.asyncio
@pytest.mark.timeout(30)
async def test_overlapping_cycles_are_serialized(service):
    slow = _SlowService(delay=0.1)
    sweeper = ProgressSweeper(lambda: slow)

    await asyncio.gather(*(sweeper.run_once() for _ in range(4)))

    assert slow.calls == 4
    assert slow.peak == 1
    assert sweeper.cycles == 4
    assert not sweeper.busy


@pytest.mark.asyncio
@pytest.mark.timeout(30)
async def test_loop_sweeps_on_interval(service, key):
    set_value('SWEEP_INTERVAL_SECONDS', 0.05)
    sweeper = ProgressSweeper(lambda: service)
    service.track(key, Interval(0.0, 5.0), 5.0)

    await sweeper.start()
    try:
        assert sweeper.running
        deadline = time.time() + 5
        while time.time() < deadline and service.pending_count(key):
            await asyncio.sleep(0.02)
    finally:
        await sweeper.stop()

    assert not sweeper.running
    assert sweeper.cycles >= 1
    assert service.get_total_watch_time(key) == pytest.approx(5.0)


@pytest.mark.asyncio
async def test_start_is_idempotent_and_stop_without_start(service):
    sweeper = ProgressSweeper(lambda: service)
    await sweeper.stop()
    await sweeper.start()
    first = sweeper._task
    await sweeper.start()
    assert sweeper._task is first
    await sweeper.stop()


def test_invalid_interval_keeps_previous(service):
    sweeper = ProgressSweeper(lambda: service)
    set_value('SWEEP_INTERVAL_SECONDS', -1)
    sweeper.reload_configuration()
    assert sweeper.interval == 3600.0
