"""Scheduling module.

Provides:
- APScheduler wrapper for background jobs and one-shot notification timers
- Pre-defined jobs (notification sweep, fingerprint cleanup)
- Integration with CLI for daemon mode

Usage:
    from subwatch.scheduling import NotificationJobScheduler, NotificationSweepJob

    job_scheduler = NotificationJobScheduler()
    job_scheduler.add_job(
        NotificationSweepJob(notification_scheduler),
        job_id="notification_sweep",
        trigger="interval",
        seconds=60,
    )

    await job_scheduler.start()
"""

from subwatch.scheduling.scheduler import NotificationJobScheduler
from subwatch.scheduling.jobs import (
    BaseJob,
    FingerprintCleanupJob,
    NotificationSweepJob,
)

__all__ = [
    "NotificationJobScheduler",
    "NotificationSweepJob",
    "FingerprintCleanupJob",
    "BaseJob",
]
