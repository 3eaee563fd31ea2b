"""Notification scheduling models.

Provides Pydantic models for:
- RecurrencePattern: How a notification repeats
- NotificationMetadata: Typed status/retry/recurrence tracking fields
- NotificationRequest: Input to NotificationScheduler.schedule_notification
- ScheduledNotification: A persisted notification and its delivery state
- BulkScheduleResult: Outcome of scheduling several requests at once

State machine (status):
    pending -> processing -> sent
    pending -> processing -> pending   (retry with backoff)
    pending -> processing -> failed    (retry cap exceeded)
    pending -> cancelled

Usage:
    from subwatch.models.notification import NotificationRequest, NotificationType

    request = NotificationRequest(
        user_id="user-1",
        title="Payment Reminder: Netflix",
        message="Your Netflix payment is due in 3 days.",
        type=NotificationType.PAYMENT_REMINDER,
        scheduled_for=due_date - timedelta(days=3),
    )
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class NotificationType(str, Enum):
    """Kinds of user-facing notifications."""

    SUBSCRIPTION_DUE = "subscription_due"
    SUBSCRIPTION_CREATED = "subscription_created"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    PAYMENT_REMINDER = "payment_reminder"
    CANCELLATION_DEADLINE = "cancellation_deadline"
    PRICE_CHANGE = "price_change"
    SYSTEM = "system"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationStatus(str, Enum):
    """Delivery status of a scheduled notification."""

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are possible."""
        return self in (
            NotificationStatus.SENT,
            NotificationStatus.FAILED,
            NotificationStatus.CANCELLED,
        )


class RecurrenceFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecurrencePattern(BaseModel):
    """Repeat rule for a notification.

    Attributes:
        frequency: Unit of repetition.
        interval: Number of units between occurrences (weekly = 7 days/unit).
        end_date: No occurrence is scheduled after this moment.
        max_occurrences: Total number of occurrences including the first.
    """

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1, le=1000)
    end_date: Optional[datetime] = None
    max_occurrences: Optional[int] = Field(default=None, ge=1)

    @field_validator("end_date")
    @classmethod
    def normalize_end_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


class NotificationMetadata(BaseModel):
    """Typed tracking fields attached to a scheduled notification.

    Attributes:
        occurrence: 1-based occurrence number within a recurrence series.
        previous_occurrence_id: ID of the notification this one follows.
        processing_started_at: When the current/last delivery attempt began.
        delivered_at: When delivery succeeded.
        last_error: Error message of the last failed attempt.
        last_retry_at: When the last failure was recorded.
        cancelled_at: When the notification was cancelled.
        cancel_reason: Why it was cancelled ("user", "disabled_by_preferences").
        original_scheduled_for: Time the caller asked for. Retries and
            quiet-hours deferrals move scheduled_for but not this; the next
            recurrence is computed from it.
        rescheduled_at: When scheduled_for was last changed by the caller.
        previous_scheduled_for: scheduled_for before the last reschedule.
        deferred_until: Resume time set when delivery fell in quiet hours.
        extra: Free-form caller data.
    """

    occurrence: int = Field(default=1, ge=1)
    previous_occurrence_id: Optional[str] = None
    processing_started_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_retry_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    original_scheduled_for: Optional[datetime] = None
    rescheduled_at: Optional[datetime] = None
    previous_scheduled_for: Optional[datetime] = None
    deferred_until: Optional[datetime] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class NotificationRequest(BaseModel):
    """Request to schedule a notification."""

    user_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType
    scheduled_for: datetime
    priority: NotificationPriority = NotificationPriority.MEDIUM
    deep_link_url: Optional[str] = None
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    recurrence: Optional[RecurrencePattern] = None
    metadata: NotificationMetadata = Field(default_factory=NotificationMetadata)

    @field_validator("scheduled_for")
    @classmethod
    def normalize_scheduled_for(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC."""
        return _as_utc(v)  # type: ignore[return-value]


class ScheduledNotification(BaseModel):
    """A persisted notification and its delivery state."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.MEDIUM
    scheduled_for: datetime
    status: NotificationStatus = NotificationStatus.PENDING
    retry_count: int = Field(default=0, ge=0)
    related_entity_id: Optional[str] = None
    related_entity_type: Optional[str] = None
    deep_link_url: Optional[str] = None
    recurrence: Optional[RecurrencePattern] = None
    metadata: NotificationMetadata = Field(default_factory=NotificationMetadata)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("scheduled_for", "created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC."""
        return _as_utc(v)  # type: ignore[return-value]

    @classmethod
    def from_request(cls, request: NotificationRequest) -> "ScheduledNotification":
        """Build a new pending notification from a request."""
        return cls(
            user_id=request.user_id,
            title=request.title,
            message=request.message,
            type=request.type,
            priority=request.priority,
            scheduled_for=request.scheduled_for,
            related_entity_id=request.related_entity_id,
            related_entity_type=request.related_entity_type,
            deep_link_url=request.deep_link_url,
            recurrence=request.recurrence,
            metadata=request.metadata.model_copy(
                deep=True,
                update={"original_scheduled_for": request.scheduled_for},
            ),
        )

    def is_due(self, now: datetime) -> bool:
        """Whether the notification is pending and its time has come."""
        return (
            self.status == NotificationStatus.PENDING and self.scheduled_for <= now
        )

    def claimed_at(self) -> datetime:
        """When the current processing attempt started."""
        return self.metadata.processing_started_at or self.updated_at


class BulkScheduleResult(BaseModel):
    """Result of NotificationScheduler.bulk_schedule_notifications.

    Attributes:
        scheduled: Notifications that were created.
        errors: One entry per rejected request: {"index", "title", "error"}.
    """

    scheduled: List[ScheduledNotification] = Field(default_factory=list)
    errors: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def scheduled_count(self) -> int:
        return len(self.scheduled)

    @property
    def error_count(self) -> int:
        return len(self.errors)
