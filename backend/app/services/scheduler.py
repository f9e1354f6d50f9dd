"""
Scheduler service for background maintenance jobs.

Uses APScheduler to run the login attempt retention sweep: every interval it
deletes ledger rows older than the lockout window, which no future lockout
check can see anyway. A failed sweep is logged and simply retried on the
next tick.
"""

import asyncio
import logging
from datetime import datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings as app_settings
from app.core.exceptions import StorageUnavailableError, SweepFailedError
from app.db.base import utcnow
from app.services.login_ledger import AttemptLedger, Clock

logger = logging.getLogger(__name__)

LOGIN_ATTEMPT_SWEEP_JOB_ID = "login_attempt_sweep"
SHUTDOWN_POLL_LIMIT = 100


class SchedulerService:
    """Owns the background scheduler and its jobs.

    Constructed once at startup; ``start()`` and ``stop()`` are driven by the
    application lifespan (or directly by tests).
    """

    def __init__(
        self,
        ledger: AttemptLedger,
        lockout_duration: timedelta,
        sweep_interval: timedelta | None = None,
        clock: Clock = utcnow,
        scheduler: AsyncIOScheduler | None = None,
    ):
        self.ledger = ledger
        self.lockout_duration = lockout_duration
        self.sweep_interval = sweep_interval or timedelta(
            minutes=app_settings.LOGIN_ATTEMPT_SWEEP_INTERVAL_MINUTES
        )
        self.clock = clock
        self.scheduler = scheduler or AsyncIOScheduler(timezone="UTC")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self):
        """Start the scheduler and register the sweep job."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Scheduler started")
        self._schedule_login_attempt_sweep()

    async def stop(self):
        """Stop the scheduler and wait until it reports stopped.

        AsyncIOScheduler may finish shutting down on a later loop iteration,
        so yield to the loop until it has.
        """
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=False)
        for _ in range(SHUTDOWN_POLL_LIMIT):
            if not self.scheduler.running:
                break
            await asyncio.sleep(0)
        else:
            logger.warning("Scheduler still running after shutdown request")
            return
        logger.info("Scheduler stopped")

    def _schedule_login_attempt_sweep(self):
        """Schedule the login attempt retention sweep."""
        interval_seconds = int(self.sweep_interval.total_seconds())
        self.scheduler.add_job(
            self._run_login_attempt_sweep,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=LOGIN_ATTEMPT_SWEEP_JOB_ID,
            name="login attempt retention sweep",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=interval_seconds,
        )
        logger.info("Scheduled %s job (every %s seconds)", LOGIN_ATTEMPT_SWEEP_JOB_ID, interval_seconds)

    def get_next_run_time(self, job_id: str = LOGIN_ATTEMPT_SWEEP_JOB_ID) -> datetime | None:
        """Get the next scheduled run time for a job."""
        job = self.scheduler.get_job(job_id)
        if job:
            return job.next_run_time
        return None

    async def sweep_login_attempts(self) -> int:
        """
        Delete login attempts older than the lockout window.

        Returns:
            Number of rows deleted

        Raises:
            SweepFailedError: if the ledger could not be cleaned
        """
        cutoff = self.clock() - self.lockout_duration
        try:
            deleted = await self.ledger.delete_before(cutoff)
        except StorageUnavailableError as e:
            raise SweepFailedError(e.reason) from e

        if deleted > 0:
            logger.info("Login attempt sweep: removed %s old attempt(s)", deleted)
        else:
            logger.debug("Login attempt sweep: nothing to remove")
        return deleted

    async def _run_login_attempt_sweep(self):
        """Scheduled entry point; never lets a failure escape into the scheduler."""
        try:
            await self.sweep_login_attempts()
        except SweepFailedError as e:
            logger.warning("%s; retrying at next run (%s)", e, self.get_next_run_time())
