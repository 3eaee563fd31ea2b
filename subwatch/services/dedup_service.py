"""
Subscription and SMS message duplicate detection.

Subscriptions are scored against existing records on three signals:
1. Service name similarity after alias normalization (up to 60 points)
2. Amount similarity, optionally normalized to a monthly cost (up to 30 points)
3. Creation dates inside a configurable window (10 points)

A record scoring 60 or more is reported as a duplicate. SMS messages are
matched by SHA-256 fingerprint, with plain-text fallbacks.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple, Union

import structlog

from subwatch.models.dedup import (
    DedupStats,
    DuplicateDetectionConfig,
    DuplicateDetectionResult,
    DuplicateReason,
    DuplicateResolution,
)
from subwatch.models.subscription import (
    Subscription,
    SubscriptionMessage,
    normalize_amount_to_monthly,
)
from subwatch.observability.metrics import DUPLICATES_DETECTED, MESSAGE_DUPLICATES
from subwatch.utils.dates import are_dates_within_window, ensure_utc, utc_now
from subwatch.utils.exceptions import EmptyCandidateListError
from subwatch.utils.hash import calculate_message_fingerprint
from subwatch.utils.similarity import calculate_string_similarity, normalize_service_name

logger = structlog.get_logger()

NAME_WEIGHT = 60.0
AMOUNT_WEIGHT = 30.0
DATE_WINDOW_POINTS = 10.0
DUPLICATE_CONFIDENCE_THRESHOLD = 60.0

# Fields counted when ranking duplicates by completeness
COMPLETENESS_FIELDS = (
    "name",
    "amount",
    "billing_cycle",
    "start_date",
    "next_billing_date",
    "category_id",
)
NOTES_POINTS = 0.5
USER_ENTERED_BONUS = 2.0
RECENCY_WINDOW_DAYS = 30


def calculate_amount_similarity(
    sub1: Subscription,
    sub2: Subscription,
    config: Optional[DuplicateDetectionConfig] = None,
) -> float:
    """Calculate how close two subscription amounts are.

    Args:
        sub1: First subscription.
        sub2: Second subscription.
        config: Detection config; controls monthly normalization.

    Returns:
        Similarity percentage: 100 - (|max - min| / max) * 100.
        Two zero amounts are 100% similar; one zero amount is 0%.
    """
    config = config or DuplicateDetectionConfig()

    amount1: Decimal = sub1.amount
    amount2: Decimal = sub2.amount

    if config.normalize_amounts:
        amount1 = normalize_amount_to_monthly(sub1.amount, sub1.billing_cycle)
        amount2 = normalize_amount_to_monthly(sub2.amount, sub2.billing_cycle)

    if amount1 == 0 and amount2 == 0:
        return 100.0
    if amount1 == 0 or amount2 == 0:
        return 0.0

    max_amount = max(amount1, amount2)
    min_amount = min(amount1, amount2)

    return float(100 - ((max_amount - min_amount) / max_amount) * 100)


class DuplicateDetector:
    """
    Detect duplicate subscriptions and already-processed SMS messages.

    All detection methods are pure with respect to their inputs; the only
    state kept is the DedupStats counters.
    """

    def __init__(self, config: Optional[DuplicateDetectionConfig] = None):
        """
        Initialize duplicate detector.

        Args:
            config: Default detection configuration
        """
        self.config = config or DuplicateDetectionConfig()
        self.stats = DedupStats()

        logger.info(
            "duplicate_detector_initialized",
            name_threshold=self.config.service_name_similarity_threshold,
            amount_threshold=self.config.amount_similarity_threshold,
            time_window_days=self.config.time_window_days,
            normalize_amounts=self.config.normalize_amounts,
        )

    def detect_duplicate_subscription(
        self,
        subscription: Subscription,
        existing_subscriptions: Sequence[Subscription],
        config: Optional[DuplicateDetectionConfig] = None,
    ) -> DuplicateDetectionResult:
        """
        Check a subscription against existing records.

        Args:
            subscription: Candidate subscription
            existing_subscriptions: Records to compare against; the candidate
                itself (same id) is skipped
            config: Overrides the detector's default config

        Returns:
            DuplicateDetectionResult listing every qualifying record
        """
        config = config or self.config
        self.stats.total_checked += 1

        duplicates: List[Subscription] = []
        highest_confidence = 0.0
        detection_reason = DuplicateReason.SERVICE_NAME_MATCH

        normalized_new_name = normalize_service_name(subscription.name)

        for existing in existing_subscriptions:
            if existing.id == subscription.id:
                continue

            confidence, reason = self._score_pair(
                subscription, normalized_new_name, existing, config
            )

            if confidence >= DUPLICATE_CONFIDENCE_THRESHOLD:
                duplicates.append(existing)
                logger.debug(
                    "duplicate_candidate",
                    subscription_id=subscription.id,
                    existing_id=existing.id,
                    confidence=round(confidence, 2),
                    reason=reason.value,
                )

                if confidence > highest_confidence:
                    highest_confidence = confidence
                    detection_reason = reason

        if duplicates:
            self.stats.duplicates_found += 1
            self.stats.by_reason[detection_reason.value] = (
                self.stats.by_reason.get(detection_reason.value, 0) + 1
            )
            DUPLICATES_DETECTED.labels(reason=detection_reason.value).inc()
            logger.info(
                "duplicate_subscription_detected",
                subscription_id=subscription.id,
                name=subscription.name[:50],
                duplicates=len(duplicates),
                confidence=round(highest_confidence, 2),
                reason=detection_reason.value,
            )

        return DuplicateDetectionResult(
            is_duplicate=len(duplicates) > 0,
            duplicates=duplicates,
            confidence=min(highest_confidence, 100.0),
            reason=detection_reason,
        )

    def _score_pair(
        self,
        subscription: Subscription,
        normalized_new_name: str,
        existing: Subscription,
        config: DuplicateDetectionConfig,
    ) -> Tuple[float, DuplicateReason]:
        """
        Score one candidate/existing pair.

        Returns:
            Tuple of (confidence 0-100, dominant reason)
        """
        normalized_existing_name = normalize_service_name(existing.name)
        name_similarity = calculate_string_similarity(
            normalized_new_name, normalized_existing_name
        )
        amount_similarity = calculate_amount_similarity(subscription, existing, config)
        dates_within_window = are_dates_within_window(
            subscription.created_at, existing.created_at, config.time_window_days
        )

        confidence = 0.0
        reason = DuplicateReason.SERVICE_NAME_MATCH

        if name_similarity >= config.service_name_similarity_threshold:
            confidence += name_similarity * NAME_WEIGHT

        if amount_similarity >= 100 - config.amount_similarity_threshold:
            reason = (
                DuplicateReason.MULTIPLE_FACTORS
                if confidence > 0
                else DuplicateReason.AMOUNT_TIME_MATCH
            )
            confidence += (amount_similarity / 100) * AMOUNT_WEIGHT

        if dates_within_window:
            if confidence == 0:
                reason = DuplicateReason.AMOUNT_TIME_MATCH
            confidence += DATE_WINDOW_POINTS

        return confidence, reason

    def is_message_duplicate(
        self,
        message: Union[str, SubscriptionMessage],
        existing_messages: Sequence[SubscriptionMessage],
    ) -> bool:
        """
        Check if a message has been processed before.

        Matching order per existing message:
        1. Stored fingerprint in extracted_data equals the new fingerprint
        2. Raw string input: fingerprint of the existing body matches
        3. Structured input: sender and body both match exactly

        Args:
            message: Raw message text or structured message
            existing_messages: Previously processed messages

        Returns:
            True if any existing message matches
        """
        self.stats.messages_checked += 1
        fingerprint = calculate_message_fingerprint(message)

        for existing in existing_messages:
            if existing.fingerprint is not None and existing.fingerprint == fingerprint:
                return self._record_message_duplicate(existing, "fingerprint")

            if isinstance(message, str):
                if calculate_message_fingerprint(existing.message_body) == fingerprint:
                    return self._record_message_duplicate(existing, "body_hash")
            elif (
                message.message_body == existing.message_body
                and message.sender == existing.sender
            ):
                return self._record_message_duplicate(existing, "sender_and_body")

        return False

    def _record_message_duplicate(
        self, existing: SubscriptionMessage, matched_by: str
    ) -> bool:
        self.stats.message_duplicates_found += 1
        MESSAGE_DUPLICATES.inc()
        logger.debug(
            "message_duplicate_detected",
            existing_message_id=existing.id,
            matched_by=matched_by,
        )
        return True

    def determine_preferred_subscription(
        self,
        subscriptions: Sequence[Subscription],
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Pick the record to keep from a set of duplicates.

        Score per record:
        - +1 for each populated field among name, amount, billing_cycle,
          start_date, next_billing_date, category_id; +0.5 for notes
        - +2 if entered by the user (not auto-detected)
        - recency bonus decaying linearly from 1 to 0 over 30 days

        Ties keep the first record encountered.

        Args:
            subscriptions: Duplicate group
            now: Reference time for the recency bonus

        Returns:
            The preferred subscription

        Raises:
            EmptyCandidateListError: If subscriptions is empty
        """
        if not subscriptions:
            raise EmptyCandidateListError(
                "Cannot determine preferred subscription from empty list"
            )

        if len(subscriptions) == 1:
            return subscriptions[0]

        now = ensure_utc(now) if now else utc_now()

        best = subscriptions[0]
        best_score = self._preference_score(best, now)
        for candidate in subscriptions[1:]:
            score = self._preference_score(candidate, now)
            if score > best_score:
                best, best_score = candidate, score

        return best

    @staticmethod
    def _preference_score(subscription: Subscription, now: datetime) -> float:
        score = 0.0

        for field_name in COMPLETENESS_FIELDS:
            if getattr(subscription, field_name):
                score += 1
        if subscription.notes:
            score += NOTES_POINTS

        if not subscription.auto_detected:
            score += USER_ENTERED_BONUS

        age_days = (now - subscription.created_at).total_seconds() / 86400
        score += max(0.0, 1 - age_days / RECENCY_WINDOW_DAYS)

        return score

    def find_duplicate_groups(
        self,
        subscriptions: Sequence[Subscription],
        config: Optional[DuplicateDetectionConfig] = None,
    ) -> List[List[Subscription]]:
        """
        Partition subscriptions into duplicate groups.

        Each group is a seed record followed by its detected duplicates.
        A record belongs to at most one group; records without duplicates
        are omitted.

        Args:
            subscriptions: Records to scan
            config: Overrides the detector's default config

        Returns:
            List of duplicate groups
        """
        grouped_ids = set()
        groups: List[List[Subscription]] = []

        for index, seed in enumerate(subscriptions):
            if seed.id in grouped_ids:
                continue

            remaining = [
                sub for sub in subscriptions[index + 1 :] if sub.id not in grouped_ids
            ]
            result = self.detect_duplicate_subscription(seed, remaining, config)
            if not result.is_duplicate:
                continue

            group = [seed] + result.duplicates
            grouped_ids.update(sub.id for sub in group)
            groups.append(group)

        logger.info(
            "duplicate_scan_complete",
            total=len(subscriptions),
            groups=len(groups),
            duplicates=sum(len(g) - 1 for g in groups),
        )
        return groups

    def resolve_duplicates(
        self,
        group: Sequence[Subscription],
        now: Optional[datetime] = None,
    ) -> DuplicateResolution:
        """
        Decide which record of a duplicate group to keep.

        Raises:
            EmptyCandidateListError: If the group is empty
        """
        keep = self.determine_preferred_subscription(group, now)
        remove = [sub for sub in group if sub.id != keep.id]
        return DuplicateResolution(keep=keep, remove=remove)

    def cleanup_old_fingerprints(
        self,
        messages: Sequence[SubscriptionMessage],
        days_to_keep: int = 90,
        now: Optional[datetime] = None,
    ) -> List[SubscriptionMessage]:
        """
        Strip fingerprints from messages older than the retention window.

        Args:
            messages: Messages to inspect
            days_to_keep: Retention window in days
            now: Reference time

        Returns:
            Updated copies of the messages that need to be written back
        """
        now = ensure_utc(now) if now else utc_now()
        cutoff = now - timedelta(days=days_to_keep)

        to_update: List[SubscriptionMessage] = []
        for message in messages:
            if message.detected_at >= cutoff or "fingerprint" not in message.extracted_data:
                continue

            extracted = dict(message.extracted_data)
            del extracted["fingerprint"]
            to_update.append(message.model_copy(update={"extracted_data": extracted}))

        if to_update:
            logger.info(
                "fingerprints_expired",
                messages=len(to_update),
                days_to_keep=days_to_keep,
            )
        return to_update

    def get_stats(self) -> DedupStats:
        """Get deduplication statistics."""
        return self.stats
