"""Health check implementations for the notification daemon.

Provides checks for:
- Background job scheduler state
- Notification store readability
- Overdue notification backlog
- Data directory writability

Usage:
    checker = HealthChecker(
        store=notification_store,
        job_scheduler=job_scheduler,
        data_dir=Path("data"),
    )

    # Run all checks
    report = await checker.check_all()

    # Run specific check
    backlog = await checker.check_overdue_backlog()
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog

from subwatch.utils.dates import utc_now

logger = structlog.get_logger()


class HealthStatus(str, Enum):
    """Overall health status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class CheckStatus(str, Enum):
    """Individual check status."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: CheckStatus
    message: str
    duration_ms: float = 0.0
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class HealthReport:
    """Complete health report with all check results."""

    status: HealthStatus
    checks: List[CheckResult]
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": self.status.value,
            "checks": [c.to_dict() for c in self.checks],
            "timestamp": self.timestamp.isoformat(),
        }


class HealthChecker:
    """Health checker for the subwatch daemon.

    Every collaborator is optional; checks whose collaborator is missing
    are skipped.
    """

    def __init__(
        self,
        store: Optional[Any] = None,
        job_scheduler: Optional[Any] = None,
        data_dir: Optional[Path] = None,
        overdue_warning_minutes: int = 10,
        overdue_warning_count: int = 1,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize health checker.

        Args:
            store: NotificationStore to probe
            job_scheduler: NotificationJobScheduler whose state is reported
            data_dir: Directory the JSON stores write to
            overdue_warning_minutes: A pending notification this late counts
                as overdue
            overdue_warning_count: Overdue notifications needed for a warning
            clock: Returns the current aware UTC datetime
        """
        self.store = store
        self.job_scheduler = job_scheduler
        self.data_dir = data_dir
        self.overdue_warning_minutes = overdue_warning_minutes
        self.overdue_warning_count = overdue_warning_count
        self._clock = clock

    async def check_all(self) -> HealthReport:
        """Run all health checks and return comprehensive report.

        Returns:
            HealthReport with status and all check results
        """
        pending_checks = []
        if self.job_scheduler is not None:
            pending_checks.append(self.check_scheduler())
        if self.store is not None:
            pending_checks.append(self.check_store())
            pending_checks.append(self.check_overdue_backlog())
        if self.data_dir is not None:
            pending_checks.append(self.check_data_directory())

        results = await asyncio.gather(*pending_checks, return_exceptions=True)

        checks: List[CheckResult] = []
        for result in results:
            if isinstance(result, Exception):
                checks.append(
                    CheckResult(
                        name="unknown",
                        status=CheckStatus.FAIL,
                        message=f"Check failed: {str(result)}",
                    )
                )
            elif isinstance(result, CheckResult):
                checks.append(result)

        return HealthReport(status=self._determine_overall_status(checks), checks=checks)

    def _determine_overall_status(self, checks: List[CheckResult]) -> HealthStatus:
        if any(c.status == CheckStatus.FAIL for c in checks):
            return HealthStatus.UNHEALTHY
        if any(c.status == CheckStatus.WARN for c in checks):
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    async def check_scheduler(self) -> CheckResult:
        """Check that the background job scheduler is running."""
        start = time.monotonic()
        name = "job_scheduler"

        running = bool(self.job_scheduler.is_running)
        jobs = self.job_scheduler.get_jobs()

        return CheckResult(
            name=name,
            status=CheckStatus.PASS if running else CheckStatus.FAIL,
            message="Scheduler running" if running else "Scheduler not running",
            duration_ms=(time.monotonic() - start) * 1000,
            details={"jobs": len(jobs)},
        )

    async def check_store(self) -> CheckResult:
        """Check that the notification store can be queried."""
        start = time.monotonic()
        name = "notification_store"

        try:
            await self.store.list_due(self._clock(), limit=1)
        except Exception as e:
            logger.error("store_check_failed", error=str(e))
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=f"Store unreadable: {str(e)}",
                duration_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Store readable",
            duration_ms=(time.monotonic() - start) * 1000,
        )

    async def check_overdue_backlog(self) -> CheckResult:
        """Warn when pending notifications are well past their time."""
        start = time.monotonic()
        name = "overdue_backlog"

        cutoff = self._clock() - timedelta(minutes=self.overdue_warning_minutes)
        try:
            overdue = await self.store.list_due(cutoff, limit=1000)
        except Exception as e:
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=f"Backlog check failed: {str(e)}",
                duration_ms=(time.monotonic() - start) * 1000,
            )

        details: Dict[str, Any] = {
            "overdue": len(overdue),
            "threshold_minutes": self.overdue_warning_minutes,
        }
        if overdue:
            details["oldest"] = overdue[0].scheduled_for.isoformat()

        if len(overdue) >= self.overdue_warning_count:
            return CheckResult(
                name=name,
                status=CheckStatus.WARN,
                message=f"{len(overdue)} notifications overdue",
                duration_ms=(time.monotonic() - start) * 1000,
                details=details,
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="No overdue notifications",
            duration_ms=(time.monotonic() - start) * 1000,
            details=details,
        )

    async def check_data_directory(self) -> CheckResult:
        """Check data directory accessibility."""
        start = time.monotonic()
        name = "data_directory"

        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)

            test_file = self.data_dir / ".health_check"
            test_file.write_text("health_check")
            test_file.unlink()

        except OSError as e:
            return CheckResult(
                name=name,
                status=CheckStatus.FAIL,
                message=f"Data directory not writable: {str(e)}",
                duration_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name=name,
            status=CheckStatus.PASS,
            message="Data directory accessible",
            duration_ms=(time.monotonic() - start) * 1000,
            details={"path": str(self.data_dir.absolute())},
        )

    async def is_alive(self) -> bool:
        """Check if service is alive (basic liveness).

        Returns:
            True always (service is running if this is called)
        """
        return True
