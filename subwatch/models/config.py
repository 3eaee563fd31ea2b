"""Application configuration models.

Loaded from YAML by ConfigManager. Every section has code-level defaults,
so a config file only needs to list the values it overrides.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, HttpUrl, field_validator, model_validator

from subwatch.models.dedup import DuplicateDetectionConfig

MAX_RETRY_COUNT = 3
SWEEP_INTERVAL_SECONDS = 60
PRECISE_TIMER_WINDOW_MINUTES = 60
SWEEP_BATCH_SIZE = 20
PROCESSING_LEASE_MINUTES = 10
FINGERPRINT_RETENTION_DAYS = 90


class SchedulerSettings(BaseModel):
    """Notification scheduler tunables.

    Attributes:
        sweep_interval_seconds: Period of the batch sweep over due notifications.
        max_retry_count: Failed attempts tolerated before a notification fails.
        backoff_base_minutes: Retry n waits backoff_base_minutes ** n minutes.
        precise_timer_window_minutes: Notifications due within this window
            also get a one-shot timer.
        sweep_batch_size: Maximum notifications handled per sweep.
        processing_lease_minutes: A claim older than this whose attempt never
            finished is treated as a failed attempt by the next sweep.
        timezone: Timezone of the background job scheduler.
    """

    sweep_interval_seconds: int = Field(default=SWEEP_INTERVAL_SECONDS, ge=1, le=3600)
    max_retry_count: int = Field(default=MAX_RETRY_COUNT, ge=0, le=20)
    backoff_base_minutes: int = Field(default=2, ge=1, le=10)
    precise_timer_window_minutes: int = Field(
        default=PRECISE_TIMER_WINDOW_MINUTES, ge=0, le=24 * 60
    )
    sweep_batch_size: int = Field(default=SWEEP_BATCH_SIZE, ge=1, le=1000)
    processing_lease_minutes: int = Field(
        default=PROCESSING_LEASE_MINUTES, ge=1, le=24 * 60
    )
    timezone: str = "UTC"

    def backoff_minutes(self, retry_count: int) -> int:
        """Delay before retry number ``retry_count`` (1-based)."""
        return self.backoff_base_minutes**retry_count


class StorageSettings(BaseModel):
    """File locations for the JSON-backed stores."""

    notifications_path: Path = Path("data/notifications.json")
    preferences_path: Path = Path("data/preferences.json")
    fingerprint_retention_days: int = Field(
        default=FINGERPRINT_RETENTION_DAYS, ge=1, le=3650
    )


class DeliverySettings(BaseModel):
    """How due notifications are delivered.

    Attributes:
        method: "log" writes a structured log line; "webhook" POSTs JSON.
        webhook_url: Target for the webhook method (from ${SUBWATCH_WEBHOOK_URL}).
        timeout_seconds: HTTP timeout for webhook calls.
    """

    method: Literal["log", "webhook"] = "log"
    webhook_url: Optional[HttpUrl] = None
    timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)

    @field_validator("webhook_url", mode="before")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or unsubstituted values as unset."""
        if v is None or v == "" or v == "${SUBWATCH_WEBHOOK_URL}":
            return None
        return v

    @model_validator(mode="after")
    def require_webhook_url(self) -> "DeliverySettings":
        """Webhook delivery needs a target URL."""
        if self.method == "webhook" and self.webhook_url is None:
            raise ValueError("delivery.webhook_url is required when method is 'webhook'")
        return self


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True


class AppConfig(BaseModel):
    """Root configuration document."""

    dedup: DuplicateDetectionConfig = Field(default_factory=DuplicateDetectionConfig)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    delivery: DeliverySettings = Field(default_factory=DeliverySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
