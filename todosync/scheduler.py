"""Periodic driver for the sync engine"""

import logging
from typing import Optional

from apscheduler.events import EVENT_SCHEDULER_START
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler

from .results import SyncCancelled, SyncCycleResult
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 10


def clamp_interval(interval_seconds: int) -> int:
    """Keep the sync interval above the minimum to avoid hot-looping"""
    if interval_seconds < MIN_INTERVAL_SECONDS:
        logger.warning(f"Sync interval {interval_seconds}s is below the minimum, "
                       f"using {MIN_INTERVAL_SECONDS}s")
        return MIN_INTERVAL_SECONDS
    return interval_seconds


class SyncScheduler:
    """
    Runs one sync cycle per interval, never overlapping

    A failing cycle is logged and the next tick starts from a fresh snapshot.
    """

    JOB_ID = 'sync_job'

    def __init__(self, engine: SyncEngine, interval_seconds: int = 60):
        self.engine = engine
        self.interval_seconds = clamp_interval(interval_seconds)
        self.scheduler: Optional[BlockingScheduler] = None

    def run_tick(self) -> Optional[SyncCycleResult]:
        """Run one cycle; exceptions are logged, never raised"""
        if self.engine.stop_event.is_set():
            self._stop_scheduler()
            return None

        try:
            return self.engine.sync_once()
        except SyncCancelled:
            logger.info("Sync cycle stopped by shutdown request")
        except Exception:
            logger.exception("Sync failed")
        return None

    def build_scheduler(self) -> BlockingScheduler:
        # Single worker thread plus max_instances=1 keeps cycles sequential
        executors = {
            'default': ThreadPoolExecutor(1)
        }
        scheduler = BlockingScheduler(executors=executors, timezone='UTC')
        scheduler.add_job(
            self.run_tick,
            'interval',
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        scheduler.add_listener(self._on_scheduler_started, EVENT_SCHEDULER_START)
        return scheduler

    def start(self) -> None:
        """Run an initial cycle, then block running cycles every interval"""
        logger.info(f"Starting sync loop with {self.interval_seconds}s intervals")
        self.engine.stop_event.clear()

        self.run_tick()
        if self.engine.stop_event.is_set():
            return

        self.scheduler = self.build_scheduler()
        # Stops requested from here on are caught by the start listener
        if self.engine.stop_event.is_set():
            return
        self.scheduler.start()

    def shutdown(self) -> None:
        """Request cancellation of the running cycle and stop scheduling new ones"""
        logger.info("Stopping sync scheduler...")
        self.engine.stop_event.set()
        self._stop_scheduler()

    def _stop_scheduler(self) -> None:
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def _on_scheduler_started(self, event) -> None:
        # The scheduler already counts as running here, so later shutdowns reach it
        if self.engine.stop_event.is_set():
            logger.info("Stop requested while the scheduler was starting")
            self._stop_scheduler()
