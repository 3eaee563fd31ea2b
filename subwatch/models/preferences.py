"""Notification preference models.

Provides Pydantic models for:
- NotificationTypePreferences: Per-type toggles and advance notice
- NotificationGeneralSettings: Quiet hours, daily digest and timezone
- NotificationPreferences: Complete per-user preferences
- DeliveryDecision: Outcome of a delivery-policy check

Stored preferences are always merged field-by-field over the defaults
defined here, so partially-populated records never lose fields.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from subwatch.models.notification import NotificationType

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class NotificationTypePreferences(BaseModel):
    """Preferences for one notification type."""

    enabled: bool = True
    push_enabled: bool = True
    email_enabled: bool = False
    in_app_enabled: bool = True
    advance_notice_days: Optional[int] = Field(default=None, ge=0, le=365)


class NotificationGeneralSettings(BaseModel):
    """User-wide notification settings.

    Attributes:
        quiet_hours_enabled: Suppress delivery inside the quiet window.
        quiet_hours_start: Window start, "HH:MM" 24-hour.
        quiet_hours_end: Window end, "HH:MM" 24-hour. May be earlier than
            the start, in which case the window spans midnight.
        daily_digest_enabled: Bundle notifications into a daily digest.
        digest_time: Digest delivery time, "HH:MM" 24-hour.
        timezone: IANA timezone the quiet window is evaluated in.
    """

    quiet_hours_enabled: bool = False
    quiet_hours_start: str = Field(default="22:00", pattern=HHMM_PATTERN)
    quiet_hours_end: str = Field(default="08:00", pattern=HHMM_PATTERN)
    daily_digest_enabled: bool = False
    digest_time: str = Field(default="09:00", pattern=HHMM_PATTERN)
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Timezone must be a known IANA name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v


def default_type_preferences() -> Dict[NotificationType, NotificationTypePreferences]:
    """Documented per-type defaults."""
    notice_days = {
        NotificationType.PAYMENT_REMINDER: 3,
        NotificationType.CANCELLATION_DEADLINE: 7,
        NotificationType.SUBSCRIPTION_DUE: 1,
    }
    return {
        notification_type: NotificationTypePreferences(
            advance_notice_days=notice_days.get(notification_type)
        )
        for notification_type in NotificationType
    }


class NotificationPreferences(BaseModel):
    """Complete notification preferences for a user."""

    general: NotificationGeneralSettings = Field(
        default_factory=NotificationGeneralSettings
    )
    by_type: Dict[NotificationType, NotificationTypePreferences] = Field(
        default_factory=default_type_preferences
    )

    def for_type(self, notification_type: NotificationType) -> NotificationTypePreferences:
        """Preferences for a type, falling back to the type's default."""
        prefs = self.by_type.get(notification_type)
        if prefs is None:
            return default_type_preferences()[notification_type]
        return prefs


class DeliveryVerdict(str, Enum):
    ALLOW = "allow"
    TYPE_DISABLED = "type_disabled"
    QUIET_HOURS = "quiet_hours"


class DeliveryDecision(BaseModel):
    """Whether a notification may be delivered right now.

    Attributes:
        verdict: The policy outcome.
        resume_at: For QUIET_HOURS, the UTC moment the quiet window ends.
    """

    verdict: DeliveryVerdict
    resume_at: Optional[datetime] = None

    @property
    def allowed(self) -> bool:
        return self.verdict == DeliveryVerdict.ALLOW
