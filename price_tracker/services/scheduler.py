# price_tracker/services/scheduler.py

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from price_tracker.services.monitor import CheckResult, PriceMonitor, SweepResult

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "price_sweep"


class SweepScheduler:
    """
    Runs ``PriceMonitor.check_all`` every ``interval_hours`` in a background
    thread, plus manual triggers that can be called at any time.

    Scheduled sweeps never overlap: APScheduler keeps one job instance and
    a tick that still finds a sweep in flight is skipped. Manual triggers
    are not gated; the monitor's per-product lock serializes them against
    the scheduled sweep.
    """

    def __init__(
        self,
        monitor: PriceMonitor,
        interval_hours: float = 6.0,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.monitor = monitor
        self.interval_hours = interval_hours
        self._scheduler = scheduler or BackgroundScheduler(timezone="UTC")
        self._sweep_guard = threading.Lock()
        self.last_result: Optional[SweepResult] = None
        self.last_sweep_at: Optional[datetime] = None

    def start(self, run_now: bool = False) -> None:
        job_kwargs = {}
        if run_now:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)
        self._scheduler.add_job(
            self.run_scheduled_sweep,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id=SWEEP_JOB_ID,
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True,
            misfire_grace_time=300,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info("Scheduler: price sweep every %s h", self.interval_hours)

    def shutdown(self, wait: bool = False) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def sweep_in_progress(self) -> bool:
        return self._sweep_guard.locked()

    @property
    def next_run_time(self) -> Optional[datetime]:
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        return getattr(job, "next_run_time", None) if job else None

    def run_scheduled_sweep(self) -> Optional[SweepResult]:
        if not self._sweep_guard.acquire(blocking=False):
            logger.warning("Previous sweep still running; skipping this tick")
            return None
        try:
            logger.info("Running scheduled price check...")
            result = self.monitor.check_all()
            self.last_result = result
            self.last_sweep_at = datetime.now(timezone.utc)
            logger.info(
                "Price check completed. %d/%d products checked, %d new alerts, %d failed.",
                result.checked_count, result.total_products, len(result.alerts), len(result.failed),
            )
            return result
        finally:
            self._sweep_guard.release()

    def trigger_all(self) -> SweepResult:
        logger.info("Manual price check for all products")
        return self.monitor.check_all()

    def trigger_product(self, product_id: str) -> CheckResult:
        logger.info("Manual price check for product %s", product_id)
        return self.monitor.check_product(product_id)
