"""Tests for daemon health checks."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from subwatch.health.checks import (
    CheckResult,
    CheckStatus,
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from subwatch.models.notification import NotificationType, ScheduledNotification
from subwatch.services.notification.store import InMemoryNotificationStore

UTC = timezone.utc
NOW = datetime(2026, 4, 1, 12, 0, tzinfo=UTC)


def _pending(notification_id: str, minutes_ago: int) -> ScheduledNotification:
    return ScheduledNotification(
        id=notification_id,
        user_id="user-1",
        title="Reminder",
        message="Body",
        type=NotificationType.SYSTEM,
        scheduled_for=NOW - timedelta(minutes=minutes_ago),
    )


class TestCheckResult:
    """Tests for CheckResult and HealthReport serialization."""

    def test_to_dict(self):
        """Should serialize enums and round durations."""
        result = CheckResult(
            name="store", status=CheckStatus.PASS, message="ok", duration_ms=1.23456
        )

        data = result.to_dict()

        assert data["status"] == "pass"
        assert data["duration_ms"] == 1.23
        assert "timestamp" in data

    def test_report_to_dict(self):
        """Should include every check."""
        report = HealthReport(
            status=HealthStatus.DEGRADED,
            checks=[CheckResult(name="a", status=CheckStatus.WARN, message="slow")],
        )

        data = report.to_dict()

        assert data["status"] == "degraded"
        assert [c["name"] for c in data["checks"]] == ["a"]


class TestHealthChecker:
    """Tests for HealthChecker."""

    @pytest.mark.asyncio
    async def test_no_collaborators_is_healthy(self):
        """Should report healthy with no checks configured."""
        report = await HealthChecker().check_all()

        assert report.status == HealthStatus.HEALTHY
        assert report.checks == []

    @pytest.mark.asyncio
    async def test_scheduler_running(self):
        """Should pass when the job scheduler runs."""
        job_scheduler = MagicMock()
        job_scheduler.is_running = True
        job_scheduler.get_jobs.return_value = [{"id": "sweep"}]

        result = await HealthChecker(job_scheduler=job_scheduler).check_scheduler()

        assert result.status == CheckStatus.PASS
        assert result.details == {"jobs": 1}

    @pytest.mark.asyncio
    async def test_scheduler_stopped(self):
        """Should fail when the job scheduler is stopped."""
        job_scheduler = MagicMock()
        job_scheduler.is_running = False
        job_scheduler.get_jobs.return_value = []

        report = await HealthChecker(job_scheduler=job_scheduler).check_all()

        assert report.status == HealthStatus.UNHEALTHY

    @pytest.mark.asyncio
    async def test_store_readable(self):
        """Should pass for a working store."""
        checker = HealthChecker(store=InMemoryNotificationStore(), clock=lambda: NOW)

        result = await checker.check_store()

        assert result.status == CheckStatus.PASS

    @pytest.mark.asyncio
    async def test_store_unreadable(self):
        """Should fail when the store raises."""
        store = MagicMock()
        store.list_due = AsyncMock(side_effect=OSError("disk error"))

        report = await HealthChecker(store=store, clock=lambda: NOW).check_all()

        assert report.status == HealthStatus.UNHEALTHY
        assert {c.name for c in report.checks} == {"notification_store", "overdue_backlog"}
        assert all(c.status == CheckStatus.FAIL for c in report.checks)

    @pytest.mark.asyncio
    async def test_overdue_backlog_warns(self):
        """Should warn when pending notifications are past the threshold."""
        store = InMemoryNotificationStore()
        await store.create(_pending("late", minutes_ago=30))
        await store.create(_pending("fresh", minutes_ago=2))
        checker = HealthChecker(store=store, clock=lambda: NOW)

        result = await checker.check_overdue_backlog()

        assert result.status == CheckStatus.WARN
        assert result.details["overdue"] == 1
        assert result.details["oldest"] == (NOW - timedelta(minutes=30)).isoformat()

    @pytest.mark.asyncio
    async def test_overdue_backlog_passes(self):
        """Should pass when nothing is late beyond the threshold."""
        store = InMemoryNotificationStore()
        await store.create(_pending("fresh", minutes_ago=2))
        checker = HealthChecker(store=store, clock=lambda: NOW)

        report = await checker.check_all()

        assert report.status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_overdue_count_threshold(self):
        """Should only warn once enough notifications are overdue."""
        store = InMemoryNotificationStore()
        await store.create(_pending("late", minutes_ago=30))
        checker = HealthChecker(store=store, overdue_warning_count=2, clock=lambda: NOW)

        result = await checker.check_overdue_backlog()

        assert result.status == CheckStatus.PASS

    @pytest.mark.asyncio
    async def test_data_directory_writable(self, tmp_path):
        """Should pass and clean up its probe file."""
        data_dir = tmp_path / "data"

        result = await HealthChecker(data_dir=data_dir).check_data_directory()

        assert result.status == CheckStatus.PASS
        assert list(data_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_data_directory_not_writable(self, tmp_path):
        """Should fail when the path cannot be a directory."""
        blocker = tmp_path / "data"
        blocker.write_text("not a directory")

        result = await HealthChecker(data_dir=blocker).check_data_directory()

        assert result.status == CheckStatus.FAIL

    @pytest.mark.asyncio
    async def test_is_alive(self):
        """Should always report alive."""
        assert await HealthChecker().is_alive() is True
