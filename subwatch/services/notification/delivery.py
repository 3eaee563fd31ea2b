"""Notification delivery backends.

A deliverer hands a due notification to the outside world. Any failure is
reported by raising DeliveryError, which the scheduler records and turns
into a retry with exponential backoff.

Usage:
    from subwatch.services.notification.delivery import create_deliverer

    deliverer = create_deliverer(config.delivery)
    await deliverer.deliver(notification)
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict

import aiohttp
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from subwatch.models.config import DeliverySettings
from subwatch.models.notification import ScheduledNotification
from subwatch.utils.exceptions import DeliveryError

logger = structlog.get_logger()


class NotificationDeliverer(ABC):
    """Abstract base class for delivery backends"""

    @abstractmethod
    async def deliver(self, notification: ScheduledNotification) -> None:
        """Deliver a notification

        Raises:
            DeliveryError: If the notification could not be delivered
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logging"""
        pass


class LogDeliverer(NotificationDeliverer):
    """Delivers by writing a structured log entry."""

    @property
    def name(self) -> str:
        return "log"

    async def deliver(self, notification: ScheduledNotification) -> None:
        logger.info(
            "notification_delivered",
            notification_id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
            priority=notification.priority.value,
            title=notification.title,
        )


def build_webhook_payload(notification: ScheduledNotification) -> Dict[str, Any]:
    """JSON body posted for a notification."""
    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.type.value,
        "priority": notification.priority.value,
        "scheduled_for": notification.scheduled_for.isoformat(),
        "related_entity_id": notification.related_entity_id,
        "related_entity_type": notification.related_entity_type,
        "deep_link_url": notification.deep_link_url,
        "occurrence": notification.metadata.occurrence,
    }


class WebhookDeliverer(NotificationDeliverer):
    """POSTs notifications as JSON to an HTTP endpoint.

    Connection errors and timeouts are retried a few times before the
    attempt is reported as failed. HTTP error statuses are not retried here;
    the scheduler's backoff handles them.
    """

    def __init__(self, url: str, timeout_seconds: float = 10.0):
        """Initialize webhook deliverer.

        Args:
            url: Endpoint receiving notification payloads.
            timeout_seconds: Total timeout per HTTP request.
        """
        self.url = url
        self.timeout_seconds = timeout_seconds

    @property
    def name(self) -> str:
        return "webhook"

    async def deliver(self, notification: ScheduledNotification) -> None:
        payload = build_webhook_payload(notification)

        try:
            status, body = await self._post(payload)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(
                "webhook_delivery_error",
                notification_id=notification.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DeliveryError(f"HTTP error: {e}") from e

        if not 200 <= status < 300:
            logger.warning(
                "webhook_delivery_failed",
                notification_id=notification.id,
                status_code=status,
                response=body[:200],
            )
            raise DeliveryError(f"HTTP {status}: {body[:100]}", status_code=status)

        logger.info(
            "webhook_delivery_succeeded",
            notification_id=notification.id,
            status_code=status,
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type((aiohttp.ClientConnectionError, asyncio.TimeoutError)),
        reraise=True,
    )
    async def _post(self, payload: Dict[str, Any]) -> tuple[int, str]:
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(
                self.url,
                json=payload,
                headers={"Content-Type": "application/json"},
            ) as response:
                return response.status, await response.text()


def create_deliverer(settings: DeliverySettings) -> NotificationDeliverer:
    """Build the deliverer selected by configuration."""
    if settings.method == "webhook":
        return WebhookDeliverer(str(settings.webhook_url), settings.timeout_seconds)
    return LogDeliverer()
