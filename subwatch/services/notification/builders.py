"""Request builders for common subscription notifications.

Pure functions: each returns a NotificationRequest scheduled ``days_before``
days ahead of a subscription event. Scheduling is left to
NotificationScheduler.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Union

from subwatch.models.notification import (
    NotificationMetadata,
    NotificationPriority,
    NotificationRequest,
    NotificationType,
)
from subwatch.utils.dates import ensure_utc

Amount = Union[Decimal, float, int]


def _days_phrase(days: int) -> str:
    return "1 day" if days == 1 else f"{days} days"


def _format_amount(amount: Amount, currency: str) -> str:
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    if currency == "USD":
        return f"${value}"
    return f"{value} {currency}"


def _subscription_link(subscription_id: str) -> str:
    return f"/subscriptions/{subscription_id}"


def build_payment_reminder(
    user_id: str,
    subscription_id: str,
    subscription_name: str,
    due_date: datetime,
    amount: Amount,
    currency: str = "USD",
    days_before: int = 3,
) -> NotificationRequest:
    """Reminder that a subscription payment is coming up."""
    return NotificationRequest(
        user_id=user_id,
        title=f"Payment Reminder: {subscription_name}",
        message=(
            f"Your payment of {_format_amount(amount, currency)} for "
            f"{subscription_name} is due in {_days_phrase(days_before)}."
        ),
        type=NotificationType.PAYMENT_REMINDER,
        priority=NotificationPriority.HIGH,
        scheduled_for=ensure_utc(due_date) - timedelta(days=days_before),
        related_entity_id=subscription_id,
        related_entity_type="subscription",
        deep_link_url=_subscription_link(subscription_id),
        metadata=NotificationMetadata(
            extra={
                "amount": str(amount),
                "currency": currency,
                "due_date": ensure_utc(due_date).isoformat(),
            }
        ),
    )


def build_cancellation_deadline(
    user_id: str,
    subscription_id: str,
    subscription_name: str,
    deadline: datetime,
    days_before: int = 7,
) -> NotificationRequest:
    """Reminder that the window to cancel before renewal is closing."""
    return NotificationRequest(
        user_id=user_id,
        title="Cancellation Deadline Approaching",
        message=(
            f"You have {_days_phrase(days_before)} left to cancel your "
            f"{subscription_name} subscription before renewal."
        ),
        type=NotificationType.CANCELLATION_DEADLINE,
        priority=NotificationPriority.MEDIUM,
        scheduled_for=ensure_utc(deadline) - timedelta(days=days_before),
        related_entity_id=subscription_id,
        related_entity_type="subscription",
        deep_link_url=_subscription_link(subscription_id),
        metadata=NotificationMetadata(
            extra={"deadline": ensure_utc(deadline).isoformat()}
        ),
    )


def build_price_change_alert(
    user_id: str,
    subscription_id: str,
    subscription_name: str,
    old_price: Amount,
    new_price: Amount,
    effective_date: datetime,
    currency: str = "USD",
    days_before: int = 3,
) -> NotificationRequest:
    """Alert that a subscription's price is about to change."""
    direction = "increase" if Decimal(str(new_price)) > Decimal(str(old_price)) else "decrease"

    return NotificationRequest(
        user_id=user_id,
        title=f"Price Change for {subscription_name}",
        message=(
            f"Your subscription price will {direction} from "
            f"{_format_amount(old_price, currency)} to "
            f"{_format_amount(new_price, currency)} in {_days_phrase(days_before)}."
        ),
        type=NotificationType.PRICE_CHANGE,
        priority=NotificationPriority.HIGH,
        scheduled_for=ensure_utc(effective_date) - timedelta(days=days_before),
        related_entity_id=subscription_id,
        related_entity_type="subscription",
        deep_link_url=_subscription_link(subscription_id),
        metadata=NotificationMetadata(
            extra={
                "old_price": str(old_price),
                "new_price": str(new_price),
                "currency": currency,
                "effective_date": ensure_utc(effective_date).isoformat(),
            }
        ),
    )
