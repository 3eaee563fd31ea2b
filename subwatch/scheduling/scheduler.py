"""APScheduler wrapper for background notification jobs.

Provides:
- Async-compatible scheduler
- Job management (add, remove, pause, resume)
- One-shot date jobs used as precise notification timers
- Graceful shutdown handling
- Integration with Prometheus metrics

Usage:
    scheduler = NotificationJobScheduler()

    # Periodic sweep over due notifications
    scheduler.add_job(NotificationSweepJob(notifier), job_id="sweep",
                      trigger="interval", seconds=60)

    # One-shot timer
    scheduler.add_job(fire, job_id="timer-123", trigger="date",
                      run_date=when, args=["123"])

    # Start scheduler
    await scheduler.start()

    # Stop gracefully
    await scheduler.shutdown()
"""

import asyncio
import signal
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog
from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MISSED,
    JobExecutionEvent,
)
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from subwatch.observability.metrics import SCHEDULER_JOBS

logger = structlog.get_logger()


class NotificationJobScheduler:
    """Async scheduler for subwatch background jobs.

    Wraps APScheduler's AsyncIOScheduler with:
    - Job lifecycle management
    - Error handling and logging
    - Prometheus metrics integration
    - Graceful shutdown
    """

    def __init__(
        self,
        timezone: str = "UTC",
        max_instances: int = 1,
        coalesce: bool = True,
        misfire_grace_time: int = 300,
    ):
        """Initialize job scheduler.

        Args:
            timezone: Timezone for job scheduling
            max_instances: Max concurrent instances per job
            coalesce: Coalesce missed executions
            misfire_grace_time: Grace time for missed jobs (seconds)
        """
        self.scheduler = AsyncIOScheduler(
            timezone=timezone,
            job_defaults={
                "max_instances": max_instances,
                "coalesce": coalesce,
                "misfire_grace_time": misfire_grace_time,
            },
        )

        self._running = False
        self._shutdown_event = asyncio.Event()

        self.scheduler.add_listener(self._on_job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._on_job_error, EVENT_JOB_ERROR)
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

        logger.info("scheduler_initialized", timezone=timezone)

    def add_job(
        self,
        func: Callable,
        job_id: str,
        trigger: str = "cron",
        args: Optional[Sequence[Any]] = None,
        **trigger_args: Any,
    ) -> str:
        """Add a job to the scheduler.

        Args:
            func: Async function to execute
            job_id: Unique job identifier; an existing job with the same ID
                is replaced
            trigger: Trigger type ('cron', 'interval', 'date')
            args: Positional arguments passed to func
            **trigger_args: Trigger-specific arguments

        Returns:
            Job ID

        Raises:
            ValueError: If the trigger type is unknown

        Example:
            # Every minute
            scheduler.add_job(
                sweep,
                job_id="notification_sweep",
                trigger="interval",
                seconds=60,
            )

            # Nightly at 03:00
            scheduler.add_job(
                cleanup,
                job_id="fingerprint_cleanup",
                trigger="cron",
                hour=3,
            )
        """
        if trigger == "cron":
            trigger_obj = CronTrigger(**trigger_args)
        elif trigger == "interval":
            trigger_obj = IntervalTrigger(**trigger_args)
        elif trigger == "date":
            trigger_obj = DateTrigger(**trigger_args)
        else:
            raise ValueError(f"Unknown trigger type: {trigger}")

        job = self.scheduler.add_job(
            func,
            trigger=trigger_obj,
            args=list(args) if args else None,
            id=job_id,
            name=job_id,
            replace_existing=True,
        )

        next_run = getattr(job, "next_run_time", None)
        logger.debug(
            "job_added",
            job_id=job_id,
            trigger=trigger,
            next_run=str(next_run) if next_run else "not scheduled",
        )

        self._update_metrics()
        return job_id

    def remove_job(self, job_id: str) -> bool:
        """Remove a job from the scheduler.

        Args:
            job_id: Job ID to remove

        Returns:
            True if job was removed, False if not found
        """
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            logger.debug("job_not_found", job_id=job_id)
            return False

        logger.debug("job_removed", job_id=job_id)
        self._update_metrics()
        return True

    def has_job(self, job_id: str) -> bool:
        """Check whether a job with this ID is scheduled."""
        return self.scheduler.get_job(job_id) is not None

    def pause_job(self, job_id: str) -> bool:
        """Pause a job.

        Returns:
            True if paused, False if not found
        """
        try:
            self.scheduler.pause_job(job_id)
        except JobLookupError:
            logger.warning("job_pause_failed", job_id=job_id)
            return False

        logger.info("job_paused", job_id=job_id)
        return True

    def resume_job(self, job_id: str) -> bool:
        """Resume a paused job.

        Returns:
            True if resumed, False if not found
        """
        try:
            self.scheduler.resume_job(job_id)
        except JobLookupError:
            logger.warning("job_resume_failed", job_id=job_id)
            return False

        logger.info("job_resumed", job_id=job_id)
        return True

    def get_jobs(self) -> List[Dict[str, Any]]:
        """Get list of all scheduled jobs.

        Returns:
            List of job information dictionaries
        """
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            pending = getattr(job, "pending", False)
            jobs.append(
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": str(next_run) if next_run else None,
                    "pending": pending,
                }
            )
        return jobs

    async def start(self) -> None:
        """Start the scheduler.

        Begins executing scheduled jobs and blocks until shutdown.
        """
        if self._running:
            logger.warning("scheduler_already_running")
            return

        self.start_background()

        loop = asyncio.get_running_loop()  # pragma: no cover
        for sig in (signal.SIGTERM, signal.SIGINT):  # pragma: no cover
            loop.add_signal_handler(sig, self._signal_handler)  # pragma: no cover

        await self._shutdown_event.wait()  # pragma: no cover

    def start_background(self) -> None:
        """Start executing jobs without blocking.

        Must be called from within a running event loop.
        """
        if self._running:
            return

        self._running = True
        self._shutdown_event.clear()

        self.scheduler.start()
        logger.info("scheduler_started", jobs=len(self.scheduler.get_jobs()))

        self._update_metrics()

    async def shutdown(self, wait: bool = True) -> None:
        """Shutdown the scheduler gracefully.

        Args:
            wait: Wait for running jobs to complete
        """
        if not self._running:
            return

        logger.info("scheduler_shutting_down")

        self.scheduler.shutdown(wait=wait)
        self._running = False
        self._shutdown_event.set()

        logger.info("scheduler_stopped")

    def _signal_handler(self) -> None:
        """Handle termination signals."""
        logger.info("shutdown_signal_received")
        asyncio.create_task(self.shutdown())

    def _on_job_executed(self, event: JobExecutionEvent) -> None:
        """Handle successful job execution."""
        logger.debug(
            "job_executed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _on_job_error(self, event: JobExecutionEvent) -> None:
        """Handle job execution error."""
        logger.error(
            "job_failed",
            job_id=event.job_id,
            exception=str(event.exception),
            traceback=event.traceback,
        )
        self._update_metrics()

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        """Handle missed job execution."""
        logger.warning(
            "job_missed",
            job_id=event.job_id,
            scheduled_run_time=str(event.scheduled_run_time),
        )
        self._update_metrics()

    def _update_metrics(self) -> None:
        """Update Prometheus metrics."""
        jobs = self.scheduler.get_jobs()
        pending = sum(1 for j in jobs if getattr(j, "pending", False))

        SCHEDULER_JOBS.labels(status="pending").set(pending)
        SCHEDULER_JOBS.labels(status="active").set(len(jobs) - pending)

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._running
