"""Tests for subscription models."""

from datetime import datetime
from decimal import Decimal

import pytest

from subwatch.models.subscription import (
    BillingCycle,
    Subscription,
    SubscriptionMessage,
    normalize_amount_to_monthly,
)
from subwatch.utils.exceptions import InvalidInputError, LinkConflictError


class TestNormalizeAmountToMonthly:
    """Tests for normalize_amount_to_monthly."""

    @pytest.mark.parametrize(
        "cycle,amount,expected",
        [
            (BillingCycle.MONTHLY, "9.99", "9.99"),
            (BillingCycle.WEEKLY, "10", "43.30"),
            (BillingCycle.QUARTERLY, "30", "10"),
            (BillingCycle.BIANNUALLY, "60", "10"),
            (BillingCycle.YEARLY, "119.88", "9.99"),
        ],
    )
    def test_conversion(self, cycle, amount, expected):
        """Should convert each billing cycle to a monthly amount."""
        assert normalize_amount_to_monthly(Decimal(amount), cycle) == Decimal(expected)

    def test_monthly_amount_property(self):
        """Should expose the normalized amount on the model."""
        sub = Subscription(
            name="Spotify", amount=Decimal("119.88"), billing_cycle=BillingCycle.YEARLY
        )
        assert sub.monthly_amount == Decimal("9.99")


class TestSubscription:
    """Tests for the Subscription model."""

    def test_defaults(self):
        """Should fill id, timestamps and a monthly cycle."""
        sub = Subscription(name="Netflix")

        assert sub.id
        assert sub.amount == Decimal("0")
        assert sub.billing_cycle == BillingCycle.MONTHLY
        assert sub.auto_detected is False
        assert sub.created_at.tzinfo is not None

    def test_naive_created_at_is_utc(self):
        """Should interpret naive timestamps as UTC."""
        sub = Subscription(name="Netflix", created_at=datetime(2026, 1, 1))
        assert sub.created_at.utcoffset().total_seconds() == 0

    def test_negative_amount_rejected(self):
        """Should reject negative amounts."""
        with pytest.raises(ValueError):
            Subscription(name="Netflix", amount=Decimal("-1"))


class TestSubscriptionMessage:
    """Tests for the SubscriptionMessage model."""

    def _message(self, **kwargs):
        return SubscriptionMessage(
            user_id="user-1", sender="NETFLIX", message_body="Paid $9.99", **kwargs
        )

    def test_fingerprint_from_extracted_data(self):
        """Should read the fingerprint from extracted_data."""
        assert self._message(extracted_data={"fingerprint": "abc"}).fingerprint == "abc"
        assert self._message().fingerprint is None

    def test_link_subscription(self):
        """Should link an unlinked message."""
        message = self._message()
        message.link_subscription("sub-1")
        assert message.subscription_id == "sub-1"

    def test_relink_same_subscription_is_noop(self):
        """Should accept linking to the same subscription again."""
        message = self._message(subscription_id="sub-1")
        message.link_subscription("sub-1")
        assert message.subscription_id == "sub-1"

    def test_relink_different_subscription_rejected(self):
        """Should keep the link stable once set."""
        message = self._message(subscription_id="sub-1")

        with pytest.raises(LinkConflictError):
            message.link_subscription("sub-2")
        assert message.subscription_id == "sub-1"

    def test_link_conflict_is_invalid_input(self):
        """Should be catchable as InvalidInputError."""
        assert issubclass(LinkConflictError, InvalidInputError)
