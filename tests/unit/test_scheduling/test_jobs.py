"""Tests for scheduled jobs."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from subwatch.models.subscription import SubscriptionMessage
from subwatch.observability.context import get_correlation_id
from subwatch.scheduling.jobs import (
    BaseJob,
    FingerprintCleanupJob,
    NotificationSweepJob,
)
from subwatch.services.dedup_service import DuplicateDetector


class ConcreteJob(BaseJob):
    """Concrete implementation for testing BaseJob."""

    def __init__(self, name: str = "test_job", should_fail: bool = False):
        super().__init__(name)
        self.should_fail = should_fail
        self.seen_correlation_id = None

    async def run(self):
        self.seen_correlation_id = get_correlation_id()
        if self.should_fail:
            raise ValueError("Test failure")
        return {"status": "success"}


class TestBaseJob:
    """Tests for BaseJob class."""

    def test_init_sets_name(self):
        """Should set job name."""
        job = ConcreteJob("my_job")

        assert job.name == "my_job"
        assert job.run_count == 0
        assert job.error_count == 0
        assert job.last_run is None

    @pytest.mark.asyncio
    async def test_successful_execution(self):
        """Should track successful runs."""
        job = ConcreteJob()

        result = await job()

        assert result == {"status": "success"}
        assert job.run_count == 1
        assert job.last_success is not None

    @pytest.mark.asyncio
    async def test_failed_execution(self):
        """Should count errors and re-raise."""
        job = ConcreteJob(should_fail=True)

        with pytest.raises(ValueError):
            await job()

        assert job.error_count == 1
        assert job.last_success is None
        assert job.last_run is not None

    @pytest.mark.asyncio
    async def test_correlation_id_scoped_to_run(self):
        """Should set a correlation ID during the run and clear it after."""
        job = ConcreteJob("notification_sweep")

        await job()

        assert job.seen_correlation_id.startswith("notification_sweep-")
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_get_status(self):
        """Should report counters and timestamps."""
        job = ConcreteJob()
        await job()

        status = job.get_status()

        assert status["name"] == "test_job"
        assert status["run_count"] == 1
        assert status["error_count"] == 0
        assert status["last_success"] is not None


class TestNotificationSweepJob:
    """Tests for NotificationSweepJob."""

    @pytest.mark.asyncio
    async def test_sweeps_and_arms(self):
        """Should deliver due notifications then arm upcoming timers."""
        notifier = MagicMock()
        notifier.process_scheduled_notifications = AsyncMock(return_value=3)
        notifier.arm_upcoming_timers = AsyncMock(return_value=2)
        job = NotificationSweepJob(notifier)

        result = await job()

        assert result == {"delivered": 3, "timers_armed": 2}
        assert job.name == "notification_sweep"

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        """Should surface sweep failures to the job scheduler."""
        notifier = MagicMock()
        notifier.process_scheduled_notifications = AsyncMock(
            side_effect=RuntimeError("store offline")
        )
        job = NotificationSweepJob(notifier)

        with pytest.raises(RuntimeError):
            await job()

        assert job.error_count == 1


class TestFingerprintCleanupJob:
    """Tests for FingerprintCleanupJob."""

    @pytest.mark.asyncio
    async def test_strips_expired_fingerprints(self):
        """Should write back only the messages that changed."""
        now = datetime.now(timezone.utc)
        messages = [
            SubscriptionMessage(
                id="old",
                user_id="u",
                sender="S",
                message_body="old",
                detected_at=now - timedelta(days=120),
                extracted_data={"fingerprint": "abc"},
            ),
            SubscriptionMessage(
                id="new",
                user_id="u",
                sender="S",
                message_body="new",
                detected_at=now,
                extracted_data={"fingerprint": "def"},
            ),
        ]
        save = MagicMock()
        job = FingerprintCleanupJob(DuplicateDetector(), lambda: messages, save)

        result = await job()

        assert result == {"inspected": 2, "updated": 1}
        saved = save.call_args.args[0]
        assert [m.id for m in saved] == ["old"]
        assert "fingerprint" not in saved[0].extracted_data

    @pytest.mark.asyncio
    async def test_nothing_to_save(self):
        """Should not call the writer when nothing expired."""
        save = MagicMock()
        job = FingerprintCleanupJob(DuplicateDetector(), lambda: [], save)

        assert await job() == {"inspected": 0, "updated": 0}
        save.assert_not_called()
