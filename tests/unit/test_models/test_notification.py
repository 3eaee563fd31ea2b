"""Unit tests for notification scheduling models.

Tests Pydantic validation and business logic for:
- NotificationStatus
- RecurrencePattern
- NotificationRequest
- ScheduledNotification
- BulkScheduleResult
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from subwatch.models.notification import (
    BulkScheduleResult,
    NotificationMetadata,
    NotificationPriority,
    NotificationRequest,
    NotificationStatus,
    NotificationType,
    RecurrenceFrequency,
    RecurrencePattern,
    ScheduledNotification,
)

UTC = timezone.utc
WHEN = datetime(2026, 6, 1, 9, 0, tzinfo=UTC)


def _request(**overrides) -> NotificationRequest:
    data = {
        "user_id": "user-1",
        "title": "Payment Reminder: Netflix",
        "message": "Your Netflix payment is due in 3 days.",
        "type": NotificationType.PAYMENT_REMINDER,
        "scheduled_for": WHEN,
    }
    data.update(overrides)
    return NotificationRequest(**data)


class TestNotificationStatus:
    """Tests for NotificationStatus."""

    def test_terminal_statuses(self) -> None:
        """Test sent, failed and cancelled are terminal."""
        assert NotificationStatus.SENT.is_terminal
        assert NotificationStatus.FAILED.is_terminal
        assert NotificationStatus.CANCELLED.is_terminal

    def test_non_terminal_statuses(self) -> None:
        """Test pending and processing can still transition."""
        assert not NotificationStatus.PENDING.is_terminal
        assert not NotificationStatus.PROCESSING.is_terminal


class TestRecurrencePattern:
    """Tests for RecurrencePattern model."""

    def test_defaults(self) -> None:
        """Test interval defaults to 1 and limits are unset."""
        pattern = RecurrencePattern(frequency=RecurrenceFrequency.DAILY)

        assert pattern.interval == 1
        assert pattern.end_date is None
        assert pattern.max_occurrences is None

    def test_interval_must_be_positive(self) -> None:
        """Test zero interval is rejected."""
        with pytest.raises(ValidationError):
            RecurrencePattern(frequency=RecurrenceFrequency.DAILY, interval=0)

    def test_max_occurrences_must_be_positive(self) -> None:
        """Test zero max_occurrences is rejected."""
        with pytest.raises(ValidationError):
            RecurrencePattern(frequency=RecurrenceFrequency.DAILY, max_occurrences=0)

    def test_naive_end_date_is_utc(self) -> None:
        """Test naive end dates are interpreted as UTC."""
        pattern = RecurrencePattern(
            frequency=RecurrenceFrequency.WEEKLY, end_date=datetime(2026, 12, 31)
        )
        assert pattern.end_date == datetime(2026, 12, 31, tzinfo=UTC)

    def test_frequency_from_string(self) -> None:
        """Test frequency accepts its string value."""
        pattern = RecurrencePattern(frequency="monthly")
        assert pattern.frequency == RecurrenceFrequency.MONTHLY


class TestNotificationRequest:
    """Tests for NotificationRequest model."""

    def test_defaults(self) -> None:
        """Test priority defaults to medium."""
        request = _request()

        assert request.priority == NotificationPriority.MEDIUM
        assert request.recurrence is None
        assert request.metadata.occurrence == 1

    def test_empty_title_rejected(self) -> None:
        """Test title must not be empty."""
        with pytest.raises(ValidationError):
            _request(title="")

    def test_title_too_long_rejected(self) -> None:
        """Test title length is capped at 200 characters."""
        with pytest.raises(ValidationError):
            _request(title="x" * 201)

    def test_unknown_type_rejected(self) -> None:
        """Test type must be a known notification type."""
        with pytest.raises(ValidationError):
            _request(type="carrier_pigeon")

    def test_naive_scheduled_for_is_utc(self) -> None:
        """Test naive scheduled times are interpreted as UTC."""
        request = _request(scheduled_for=datetime(2026, 6, 1, 9, 0))
        assert request.scheduled_for == WHEN


class TestScheduledNotification:
    """Tests for ScheduledNotification model."""

    def test_from_request(self) -> None:
        """Test new notifications start pending with zero retries."""
        request = _request(
            priority=NotificationPriority.HIGH,
            related_entity_id="sub-1",
            related_entity_type="subscription",
            metadata=NotificationMetadata(extra={"amount": "9.99"}),
        )

        notification = ScheduledNotification.from_request(request)

        assert notification.id
        assert notification.status == NotificationStatus.PENDING
        assert notification.retry_count == 0
        assert notification.priority == NotificationPriority.HIGH
        assert notification.related_entity_id == "sub-1"
        assert notification.metadata.extra == {"amount": "9.99"}
        assert notification.metadata.original_scheduled_for == WHEN

    def test_from_request_copies_metadata(self) -> None:
        """Test request metadata is not shared with the notification."""
        request = _request(metadata=NotificationMetadata(extra={"k": "v"}))
        notification = ScheduledNotification.from_request(request)

        notification.metadata.extra["k"] = "changed"

        assert request.metadata.extra == {"k": "v"}

    def test_unique_ids(self) -> None:
        """Test each notification gets its own ID."""
        request = _request()
        first = ScheduledNotification.from_request(request)
        second = ScheduledNotification.from_request(request)

        assert first.id != second.id

    def test_is_due(self) -> None:
        """Test only pending notifications at or past their time are due."""
        notification = ScheduledNotification.from_request(_request())

        assert notification.is_due(WHEN)
        assert notification.is_due(WHEN + timedelta(minutes=1))
        assert not notification.is_due(WHEN - timedelta(seconds=1))

        sent = notification.model_copy(update={"status": NotificationStatus.SENT})
        assert not sent.is_due(WHEN + timedelta(days=1))

    def test_json_round_trip(self) -> None:
        """Test serialized notifications validate back unchanged."""
        notification = ScheduledNotification.from_request(
            _request(
                recurrence=RecurrencePattern(
                    frequency=RecurrenceFrequency.MONTHLY, max_occurrences=12
                )
            )
        )

        restored = ScheduledNotification.model_validate(
            notification.model_dump(mode="json")
        )

        assert restored == notification


class TestBulkScheduleResult:
    """Tests for BulkScheduleResult model."""

    def test_counts(self) -> None:
        """Test counts reflect scheduled and rejected requests."""
        result = BulkScheduleResult(
            scheduled=[ScheduledNotification.from_request(_request())],
            errors=[{"index": 1, "title": "Bad", "error": "in the past"}],
        )

        assert result.scheduled_count == 1
        assert result.error_count == 1

    def test_empty(self) -> None:
        """Test empty result has zero counts."""
        result = BulkScheduleResult()

        assert result.scheduled_count == 0
        assert result.error_count == 0
