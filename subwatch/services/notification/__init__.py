"""Notification scheduling services.

Provides:
- NotificationScheduler: Schedules, delivers, retries and recurs notifications
- NotificationStore backends: in-memory and JSON file
- NotificationDeliverer backends: structured log and HTTP webhook
- Request builders for payment, cancellation and price-change notifications

Usage:
    from subwatch.services.notification import (
        InMemoryNotificationStore,
        LogDeliverer,
        NotificationScheduler,
    )

    scheduler = NotificationScheduler(InMemoryNotificationStore(), LogDeliverer())
    await scheduler.schedule_payment_reminder(
        "user-1", "sub-1", "Netflix", due_date, amount=15.49
    )
"""

from subwatch.services.notification.builders import (
    build_cancellation_deadline,
    build_payment_reminder,
    build_price_change_alert,
)
from subwatch.services.notification.delivery import (
    LogDeliverer,
    NotificationDeliverer,
    WebhookDeliverer,
    create_deliverer,
)
from subwatch.services.notification.scheduler import NotificationScheduler
from subwatch.services.notification.store import (
    InMemoryNotificationStore,
    JsonFileNotificationStore,
    NotificationStore,
)

__all__ = [
    "NotificationScheduler",
    "NotificationStore",
    "InMemoryNotificationStore",
    "JsonFileNotificationStore",
    "NotificationDeliverer",
    "LogDeliverer",
    "WebhookDeliverer",
    "create_deliverer",
    "build_payment_reminder",
    "build_cancellation_deadline",
    "build_price_change_alert",
]
