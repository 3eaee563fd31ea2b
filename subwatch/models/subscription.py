"""Subscription data models.

Provides Pydantic models for:
- BillingCycle: Supported billing cycles and monthly normalization
- Subscription: A tracked recurring payment
- SubscriptionMessage: An SMS message a subscription was detected from

Usage:
    from subwatch.models.subscription import Subscription, BillingCycle

    sub = Subscription(
        id="sub-1",
        name="Netflix",
        amount=Decimal("9.99"),
        billing_cycle=BillingCycle.MONTHLY,
    )
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from subwatch.utils.exceptions import LinkConflictError


class BillingCycle(str, Enum):
    """How often a subscription is billed."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUALLY = "biannually"
    YEARLY = "yearly"


WEEKS_PER_MONTH = Decimal("4.33")

# Number of months covered by one billing period
MONTHS_PER_CYCLE: Dict[BillingCycle, Decimal] = {
    BillingCycle.MONTHLY: Decimal("1"),
    BillingCycle.QUARTERLY: Decimal("3"),
    BillingCycle.BIANNUALLY: Decimal("6"),
    BillingCycle.YEARLY: Decimal("12"),
}


def normalize_amount_to_monthly(amount: Decimal, billing_cycle: BillingCycle) -> Decimal:
    """Convert an amount billed per ``billing_cycle`` to its monthly equivalent."""
    if billing_cycle == BillingCycle.WEEKLY:
        return amount * WEEKS_PER_MONTH
    return amount / MONTHS_PER_CYCLE[billing_cycle]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Subscription(BaseModel):
    """A recurring payment tracked for a user.

    Created by user action or SMS auto-detection. Records with
    ``auto_detected=False`` were entered by the user.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: Optional[str] = None
    name: str = Field(..., max_length=200)
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    start_date: Optional[date] = None
    next_billing_date: Optional[date] = None
    category_id: Optional[str] = None
    notes: Optional[str] = None
    auto_detected: bool = False
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def monthly_amount(self) -> Decimal:
        """Amount converted to its monthly equivalent."""
        return normalize_amount_to_monthly(self.amount, self.billing_cycle)


class SubscriptionMessage(BaseModel):
    """An SMS message that a subscription was (or may be) detected from.

    Attributes:
        extracted_data: Parsed fields; may carry a ``fingerprint`` hash.
        subscription_id: Linked subscription. Stable once set.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    sender: str
    message_body: str
    detected_at: datetime = Field(default_factory=_utc_now)
    confidence_score: float = Field(default=0.0, ge=0.0, le=1.0)
    extracted_data: Dict[str, Any] = Field(default_factory=dict)
    subscription_id: Optional[str] = None

    @field_validator("detected_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Interpret naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def fingerprint(self) -> Optional[str]:
        """Stored fingerprint, if any."""
        value = self.extracted_data.get("fingerprint")
        return value if isinstance(value, str) else None

    def link_subscription(self, subscription_id: str) -> None:
        """Link this message to a subscription.

        Linking again to the same subscription is a no-op.

        Raises:
            LinkConflictError: If already linked to a different subscription.
        """
        if self.subscription_id is not None and self.subscription_id != subscription_id:
            raise LinkConflictError(
                f"Message {self.id} is already linked to subscription "
                f"{self.subscription_id}"
            )
        self.subscription_id = subscription_id
