"""Scheduled job definitions for the subwatch daemon.

Provides pre-configured jobs:
- NotificationSweepJob: Deliver due notifications and arm near-term timers
- FingerprintCleanupJob: Expire old SMS fingerprints

Usage:
    from subwatch.scheduling.jobs import NotificationSweepJob

    job = NotificationSweepJob(notification_scheduler)
    await job()
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

import structlog

from subwatch.models.subscription import SubscriptionMessage
from subwatch.observability.context import clear_correlation_id, set_correlation_id
from subwatch.utils.dates import utc_now

logger = structlog.get_logger()


class BaseJob(ABC):
    """Base class for scheduled jobs.

    Provides common functionality:
    - Correlation ID management
    - Error handling and logging
    - Execution timing
    """

    def __init__(self, name: str):
        """Initialize job.

        Args:
            name: Job name for logging
        """
        self.name = name
        self.last_run: Optional[datetime] = None
        self.last_success: Optional[datetime] = None
        self.run_count: int = 0
        self.error_count: int = 0

    async def __call__(self) -> Any:
        """Execute the job with correlation ID and error handling."""
        start = time.monotonic()
        corr_id = set_correlation_id(
            f"{self.name}-{utc_now().strftime('%Y%m%d-%H%M%S')}"
        )

        logger.debug("job_starting", job_name=self.name)

        try:
            result = await self.run()

            self.last_run = utc_now()
            self.last_success = self.last_run
            self.run_count += 1

            logger.debug(
                "job_completed",
                job_name=self.name,
                duration_seconds=round(time.monotonic() - start, 2),
                correlation_id=corr_id,
            )

            return result

        except Exception as e:
            self.last_run = utc_now()
            self.error_count += 1

            logger.error(
                "job_failed",
                job_name=self.name,
                error=str(e),
                correlation_id=corr_id,
                exc_info=True,
            )
            raise

        finally:
            clear_correlation_id()

    @abstractmethod
    async def run(self) -> Any:
        """Execute the job logic.

        Subclasses must implement this method.

        Returns:
            Job result (implementation-specific)
        """
        pass  # pragma: no cover (abstract method)

    def get_status(self) -> Dict[str, Any]:
        """Get job status information.

        Returns:
            Dictionary with job status
        """
        return {
            "name": self.name,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "last_success": (
                self.last_success.isoformat() if self.last_success else None
            ),
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class NotificationSweepJob(BaseJob):
    """Periodic sweep over due notifications.

    Delivers every due pending notification, then arms one-shot timers for
    notifications coming due within the timer window (including ones
    written to the store by other processes).
    """

    def __init__(self, notification_scheduler: Any):
        """Initialize sweep job.

        Args:
            notification_scheduler: NotificationScheduler to drive
        """
        super().__init__("notification_sweep")
        self.notification_scheduler = notification_scheduler

    async def run(self) -> Dict[str, int]:
        delivered = await self.notification_scheduler.process_scheduled_notifications()
        armed = await self.notification_scheduler.arm_upcoming_timers()

        return {"delivered": delivered, "timers_armed": armed}


class FingerprintCleanupJob(BaseJob):
    """Strip SMS fingerprints older than the retention window.

    Messages are read from and written back through caller-supplied
    callables, since message storage lives outside subwatch.
    """

    def __init__(
        self,
        detector: Any,
        load_messages: Callable[[], Sequence[SubscriptionMessage]],
        save_messages: Callable[[List[SubscriptionMessage]], None],
        days_to_keep: int = 90,
    ):
        """Initialize cleanup job.

        Args:
            detector: DuplicateDetector performing the cleanup
            load_messages: Returns the messages to inspect
            save_messages: Persists the updated messages
            days_to_keep: Fingerprint retention in days
        """
        super().__init__("fingerprint_cleanup")
        self.detector = detector
        self.load_messages = load_messages
        self.save_messages = save_messages
        self.days_to_keep = days_to_keep

    async def run(self) -> Dict[str, int]:
        messages = self.load_messages()
        updated = self.detector.cleanup_old_fingerprints(
            messages, days_to_keep=self.days_to_keep
        )
        if updated:
            self.save_messages(updated)

        logger.info(
            "fingerprint_cleanup_completed",
            inspected=len(messages),
            updated=len(updated),
        )
        return {"inspected": len(messages), "updated": len(updated)}
