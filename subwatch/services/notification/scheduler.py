"""Notification scheduling, delivery and retry state machine.

Notifications move through:

    pending -> processing -> sent
    pending -> processing -> pending    (retry after 2^n minutes)
    pending -> processing -> failed     (retry cap exceeded)
    pending -> processing -> cancelled  (type disabled in preferences)
    pending -> processing -> pending    (deferred past quiet hours)
    pending -> cancelled                (explicit cancel)

Two triggers drive delivery: a periodic sweep over all due notifications
(the source of truth) and one-shot timers armed for notifications due
within the next hour. Both go through the same claim step, a conditional
pending -> processing update, so a record is only ever handled once per
attempt regardless of which trigger reaches it first.

Usage:
    from subwatch.services.notification import NotificationScheduler

    scheduler = NotificationScheduler(store, LogDeliverer())
    notification = await scheduler.schedule_notification(request)
    delivered = await scheduler.process_scheduled_notifications()
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import (
    Any,
    Callable,
    Dict,
    List,
    NoReturn,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

import structlog

from subwatch.models.config import SchedulerSettings
from subwatch.models.notification import (
    BulkScheduleResult,
    NotificationMetadata,
    NotificationRequest,
    NotificationStatus,
    NotificationType,
    ScheduledNotification,
)
from subwatch.models.preferences import DeliveryVerdict, default_type_preferences
from subwatch.observability.context import correlation_id_context
from subwatch.observability.metrics import (
    ARMED_TIMERS,
    CLAIM_CONFLICTS,
    DELIVERY_LATENCY,
    NOTIFICATION_CANCELLATIONS,
    NOTIFICATION_DELIVERIES,
    NOTIFICATIONS_SCHEDULED,
    SWEEP_DURATION,
)
from subwatch.services.notification.builders import (
    build_cancellation_deadline,
    build_payment_reminder,
    build_price_change_alert,
)
from subwatch.services.notification.delivery import NotificationDeliverer
from subwatch.services.notification.store import NotificationStore
from subwatch.utils.dates import add_recurrence_interval, ensure_utc, utc_now
from subwatch.utils.exceptions import (
    DeliveryError,
    InvalidInputError,
    InvalidStatusTransitionError,
    NotificationNotFoundError,
    ScheduleTimeError,
    SubwatchError,
)

logger = structlog.get_logger()

CANCEL_REASON_USER = "user"
CANCEL_REASON_PREFERENCES = "disabled_by_preferences"

# Used when neither the caller nor the user's preferences give a notice period
DEFAULT_NOTICE_DAYS = {
    NotificationType.PAYMENT_REMINDER: 3,
    NotificationType.CANCELLATION_DEADLINE: 7,
    NotificationType.PRICE_CHANGE: 3,
}


def timer_job_id(notification_id: str) -> str:
    """Job scheduler ID of a notification's one-shot timer."""
    return f"notification-timer-{notification_id}"


class NotificationScheduler:
    """
    Schedule, deliver, retry and recur user notifications.

    Collaborators are injected:
    - store: NotificationStore holding every notification record
    - deliverer: NotificationDeliverer performing the actual dispatch
    - preferences: optional NotificationPreferencesService consulted
      before each delivery
    - job_scheduler: optional NotificationJobScheduler used for precise
      one-shot timers; without it only the periodic sweep delivers
    - clock: returns the current aware UTC datetime
    """

    def __init__(
        self,
        store: NotificationStore,
        deliverer: NotificationDeliverer,
        preferences: Optional[Any] = None,
        job_scheduler: Optional[Any] = None,
        settings: Optional[SchedulerSettings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.deliverer = deliverer
        self.preferences = preferences
        self.job_scheduler = job_scheduler
        self.settings = settings or SchedulerSettings()
        self._clock = clock
        self._armed: Set[str] = set()

        logger.info(
            "notification_scheduler_initialized",
            deliverer=deliverer.name,
            preferences_enabled=preferences is not None,
            precise_timers=job_scheduler is not None,
            max_retry_count=self.settings.max_retry_count,
        )

    def _now(self) -> datetime:
        return ensure_utc(self._clock())

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    async def schedule_notification(
        self, request: NotificationRequest
    ) -> ScheduledNotification:
        """
        Persist a new pending notification.

        Args:
            request: What to send and when

        Returns:
            The stored notification (status pending, retry_count 0)

        Raises:
            ScheduleTimeError: If scheduled_for is not strictly in the future
        """
        now = self._now()
        if request.scheduled_for <= now:
            raise ScheduleTimeError(
                f"Scheduled time must be in the future "
                f"(got {request.scheduled_for.isoformat()}, now {now.isoformat()})"
            )

        notification = ScheduledNotification.from_request(request)
        return await self._create(notification, now)

    async def _create(
        self, notification: ScheduledNotification, now: datetime
    ) -> ScheduledNotification:
        notification = notification.model_copy(
            update={"created_at": now, "updated_at": now}
        )
        created = await self.store.create(notification)

        NOTIFICATIONS_SCHEDULED.labels(type=created.type.value).inc()
        logger.info(
            "notification_scheduled",
            notification_id=created.id,
            user_id=created.user_id,
            type=created.type.value,
            scheduled_for=created.scheduled_for.isoformat(),
            occurrence=created.metadata.occurrence,
        )

        self._arm_timer_if_near(created, now)
        return created

    async def bulk_schedule_notifications(
        self,
        requests: Sequence[Union[NotificationRequest, Dict[str, Any]]],
    ) -> BulkScheduleResult:
        """
        Schedule several notifications, collecting per-request errors.

        Invalid requests (failed validation or a past time) are reported in
        the result; the valid ones are still scheduled.
        """
        result = BulkScheduleResult()

        for index, raw in enumerate(requests):
            title = raw.title if isinstance(raw, NotificationRequest) else raw.get("title")
            try:
                request = (
                    raw
                    if isinstance(raw, NotificationRequest)
                    else NotificationRequest.model_validate(raw)
                )
                result.scheduled.append(await self.schedule_notification(request))
            except (ValueError, InvalidInputError) as e:
                result.errors.append({"index": index, "title": title, "error": str(e)})

        logger.info(
            "bulk_schedule_complete",
            scheduled=result.scheduled_count,
            errors=result.error_count,
        )
        return result

    # ------------------------------------------------------------------
    # Convenience builders
    # ------------------------------------------------------------------

    async def _notice_days(
        self,
        user_id: str,
        notification_type: NotificationType,
        days_before: Optional[int],
    ) -> int:
        """Resolve the notice period: explicit value, preference, default."""
        if days_before is not None:
            return days_before

        if self.preferences is not None:
            prefs = await self.preferences.get_preferences(user_id)
            configured = prefs.for_type(notification_type).advance_notice_days
        else:
            configured = default_type_preferences()[notification_type].advance_notice_days

        if configured is not None:
            return configured
        return DEFAULT_NOTICE_DAYS[notification_type]

    async def schedule_payment_reminder(
        self,
        user_id: str,
        subscription_id: str,
        subscription_name: str,
        due_date: datetime,
        amount: Union[Decimal, float, int],
        currency: str = "USD",
        days_before: Optional[int] = None,
    ) -> ScheduledNotification:
        """Schedule a reminder ``days_before`` days ahead of a payment."""
        days = await self._notice_days(
            user_id, NotificationType.PAYMENT_REMINDER, days_before
        )
        return await self.schedule_notification(
            build_payment_reminder(
                user_id,
                subscription_id,
                subscription_name,
                due_date,
                amount,
                currency=currency,
                days_before=days,
            )
        )

    async def schedule_cancellation_deadline(
        self,
        user_id: str,
        subscription_id: str,
        subscription_name: str,
        deadline: datetime,
        days_before: Optional[int] = None,
    ) -> ScheduledNotification:
        """Schedule a reminder ``days_before`` days ahead of a cancellation deadline."""
        days = await self._notice_days(
            user_id, NotificationType.CANCELLATION_DEADLINE, days_before
        )
        return await self.schedule_notification(
            build_cancellation_deadline(
                user_id,
                subscription_id,
                subscription_name,
                deadline,
                days_before=days,
            )
        )

    async def schedule_price_change_alert(
        self,
        user_id: str,
        subscription_id: str,
        subscription_name: str,
        old_price: Union[Decimal, float, int],
        new_price: Union[Decimal, float, int],
        effective_date: datetime,
        currency: str = "USD",
        days_before: Optional[int] = None,
    ) -> ScheduledNotification:
        """Schedule an alert ``days_before`` days ahead of a price change."""
        days = await self._notice_days(
            user_id, NotificationType.PRICE_CHANGE, days_before
        )
        return await self.schedule_notification(
            build_price_change_alert(
                user_id,
                subscription_id,
                subscription_name,
                old_price,
                new_price,
                effective_date,
                currency=currency,
                days_before=days,
            )
        )

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_scheduled_notifications(self) -> int:
        """
        Attempt delivery of every due pending notification.

        Handles at most ``sweep_batch_size`` notifications per call; the
        rest are picked up by the next sweep. Claims whose attempt never
        finished within ``processing_lease_minutes`` are first returned to
        the retry cycle. A failing notification is logged and skipped so
        it cannot stall the rest of the batch.

        Returns:
            Number of notifications delivered successfully
        """
        with SWEEP_DURATION.time():
            now = self._now()
            await self._reclaim_stale_claims(now)
            due = await self.store.list_due(now, self.settings.sweep_batch_size)

            delivered = 0
            for notification in due:
                try:
                    if await self._attempt_delivery(notification.id, now):
                        delivered += 1
                except Exception:
                    logger.exception(
                        "notification_attempt_error", notification_id=notification.id
                    )

        if due:
            logger.info("sweep_complete", due=len(due), delivered=delivered)
        else:
            logger.debug("sweep_complete", due=0, delivered=0)
        return delivered

    async def _reclaim_stale_claims(self, now: datetime) -> int:
        """Count abandoned in-flight attempts as failures."""
        lease = self.settings.processing_lease_minutes
        stale = await self.store.list_stale_processing(
            now - timedelta(minutes=lease), self.settings.sweep_batch_size
        )

        for notification in stale:
            logger.warning(
                "notification_claim_expired",
                notification_id=notification.id,
                claimed_at=notification.claimed_at().isoformat(),
            )
            try:
                await self._handle_failure(
                    notification,
                    DeliveryError(f"Delivery attempt did not finish within {lease} minutes"),
                    now,
                )
            except Exception:
                logger.exception(
                    "notification_reclaim_error", notification_id=notification.id
                )

        return len(stale)

    async def process_notification(self, notification_id: str) -> bool:
        """
        Attempt delivery of one notification if it is due.

        Entry point of the one-shot timers. A record that is missing, no
        longer pending or not yet due is left alone.

        Returns:
            True if the notification was delivered
        """
        now = self._now()
        notification = await self.store.get(notification_id)

        if notification is None or not notification.is_due(now):
            logger.debug(
                "notification_not_due",
                notification_id=notification_id,
                status=notification.status.value if notification else None,
            )
            return False

        return await self._attempt_delivery(notification_id, now)

    async def _on_timer(self, notification_id: str) -> None:
        """One-shot timer callback."""
        self._armed.discard(notification_id)
        ARMED_TIMERS.set(len(self._armed))

        with correlation_id_context(f"timer-{notification_id}"):
            await self.process_notification(notification_id)

    async def _attempt_delivery(self, notification_id: str, now: datetime) -> bool:
        """
        Claim, gate and deliver one notification.

        Returns:
            True if the notification was delivered
        """
        claimed = await self.store.compare_and_update(
            notification_id,
            NotificationStatus.PENDING,
            {"status": NotificationStatus.PROCESSING, "updated_at": now},
        )
        if claimed is None:
            CLAIM_CONFLICTS.inc()
            logger.debug("notification_claim_skipped", notification_id=notification_id)
            return False

        try:
            return await self._deliver_claimed(claimed, now)
        except Exception as e:
            # Dispatch and store failures are transient until the retry cap is hit
            await self._handle_failure(claimed, e, now)
            return False

    async def _deliver_claimed(
        self, claimed: ScheduledNotification, now: datetime
    ) -> bool:
        """Gate and deliver a notification this worker has claimed."""
        notification_id = claimed.id
        claimed = await self.store.update(
            notification_id,
            {
                "metadata": claimed.metadata.model_copy(
                    update={"processing_started_at": now}
                ),
                "updated_at": now,
            },
        )

        if self.preferences is not None:
            decision = await self.preferences.get_delivery_decision(
                claimed.user_id, claimed.type, now=now
            )
            if decision.verdict == DeliveryVerdict.TYPE_DISABLED:
                await self._suppress(claimed, now)
                return False
            if decision.verdict == DeliveryVerdict.QUIET_HOURS:
                await self._defer(claimed, decision.resume_at, now)
                return False

        await self.deliverer.deliver(claimed)

        sent = await self.store.update(
            notification_id,
            {
                "status": NotificationStatus.SENT,
                "metadata": claimed.metadata.model_copy(update={"delivered_at": now}),
                "updated_at": now,
            },
        )
        self._disarm_timer(notification_id)

        NOTIFICATION_DELIVERIES.labels(outcome="sent").inc()
        DELIVERY_LATENCY.observe(max(0.0, (now - sent.scheduled_for).total_seconds()))
        logger.info(
            "notification_sent",
            notification_id=notification_id,
            user_id=sent.user_id,
            type=sent.type.value,
            retry_count=sent.retry_count,
        )

        if sent.recurrence is not None:
            try:
                await self._schedule_next_recurrence(sent, now)
            except SubwatchError as e:
                logger.error(
                    "recurrence_schedule_failed",
                    notification_id=notification_id,
                    error=str(e),
                )

        return True

    async def _suppress(self, notification: ScheduledNotification, now: datetime) -> None:
        """Cancel a notification whose type the user has disabled."""
        await self.store.update(
            notification.id,
            {
                "status": NotificationStatus.CANCELLED,
                "metadata": notification.metadata.model_copy(
                    update={
                        "cancelled_at": now,
                        "cancel_reason": CANCEL_REASON_PREFERENCES,
                    }
                ),
                "updated_at": now,
            },
        )
        self._disarm_timer(notification.id)

        NOTIFICATION_DELIVERIES.labels(outcome="suppressed").inc()
        NOTIFICATION_CANCELLATIONS.labels(reason=CANCEL_REASON_PREFERENCES).inc()
        logger.info(
            "notification_suppressed",
            notification_id=notification.id,
            user_id=notification.user_id,
            type=notification.type.value,
        )

    async def _defer(
        self,
        notification: ScheduledNotification,
        resume_at: Optional[datetime],
        now: datetime,
    ) -> None:
        """Return a notification to pending until quiet hours end."""
        resume_at = resume_at or now + timedelta(
            minutes=self.settings.backoff_minutes(1)
        )

        deferred = await self.store.update(
            notification.id,
            {
                "status": NotificationStatus.PENDING,
                "scheduled_for": resume_at,
                "metadata": notification.metadata.model_copy(
                    update={"deferred_until": resume_at}
                ),
                "updated_at": now,
            },
        )

        NOTIFICATION_DELIVERIES.labels(outcome="deferred").inc()
        logger.info(
            "notification_deferred",
            notification_id=notification.id,
            user_id=notification.user_id,
            resume_at=resume_at.isoformat(),
        )

        self._arm_timer_if_near(deferred, now)

    async def _handle_failure(
        self,
        notification: ScheduledNotification,
        error: Exception,
        now: datetime,
    ) -> None:
        """Record a failed attempt and retry with backoff or give up.

        Only applies while the notification is still processing, so an
        attempt that already reached a final state is left untouched.
        """
        retry_count = notification.retry_count + 1
        metadata = notification.metadata.model_copy(
            update={
                "last_error": str(error),
                "last_retry_at": now,
                "processing_started_at": None,
            }
        )

        if retry_count > self.settings.max_retry_count:
            failed = await self.store.compare_and_update(
                notification.id,
                NotificationStatus.PROCESSING,
                {
                    "status": NotificationStatus.FAILED,
                    "retry_count": retry_count,
                    "metadata": metadata,
                    "updated_at": now,
                },
            )
            if failed is None:
                self._log_failure_skipped(notification.id, error)
                return
            self._disarm_timer(notification.id)

            NOTIFICATION_DELIVERIES.labels(outcome="failed").inc()
            logger.error(
                "notification_failed",
                notification_id=notification.id,
                user_id=notification.user_id,
                retry_count=retry_count,
                error=str(error),
            )
            return

        next_attempt = now + timedelta(minutes=self.settings.backoff_minutes(retry_count))
        retrying = await self.store.compare_and_update(
            notification.id,
            NotificationStatus.PROCESSING,
            {
                "status": NotificationStatus.PENDING,
                "scheduled_for": next_attempt,
                "retry_count": retry_count,
                "metadata": metadata,
                "updated_at": now,
            },
        )
        if retrying is None:
            self._log_failure_skipped(notification.id, error)
            return

        NOTIFICATION_DELIVERIES.labels(outcome="retried").inc()
        logger.warning(
            "notification_retry_scheduled",
            notification_id=notification.id,
            retry_count=retry_count,
            next_attempt=next_attempt.isoformat(),
            error=str(error),
        )

        self._arm_timer_if_near(retrying, now)

    @staticmethod
    def _log_failure_skipped(notification_id: str, error: Exception) -> None:
        logger.warning(
            "notification_failure_not_recorded",
            notification_id=notification_id,
            reason="no_longer_processing",
            error=str(error),
        )

    def next_occurrence(
        self, notification: ScheduledNotification, now: datetime
    ) -> Optional[datetime]:
        """
        When the occurrence after ``notification`` is due, if any.

        The interval is added to the time originally requested for this
        occurrence. A result already in the past is advanced by further
        intervals until it lies in the future; every skipped interval
        counts toward max_occurrences.

        Returns:
            None if the series is complete: max_occurrences reached,
            end_date passed, or the next time falls after end_date
        """
        step = self._next_step(notification, now)
        return step[1] if step else None

    def _next_step(
        self, notification: ScheduledNotification, now: datetime
    ) -> Optional[Tuple[int, datetime]]:
        """Intervals to advance and the resulting time, or None when complete."""
        pattern = notification.recurrence
        if pattern is None:
            return None

        if pattern.end_date is not None and now >= pattern.end_date:
            return None

        anchor = notification.metadata.original_scheduled_for or notification.scheduled_for
        steps = 1
        next_time = add_recurrence_interval(anchor, pattern, steps)
        while next_time <= now:
            steps += 1
            next_time = add_recurrence_interval(anchor, pattern, steps)

        if (
            pattern.max_occurrences is not None
            and notification.metadata.occurrence + steps > pattern.max_occurrences
        ):
            return None

        if pattern.end_date is not None and next_time > pattern.end_date:
            return None

        return steps, next_time

    async def _schedule_next_recurrence(
        self, notification: ScheduledNotification, now: datetime
    ) -> Optional[ScheduledNotification]:
        """Create the next pending occurrence of a recurring notification."""
        step = self._next_step(notification, now)
        if step is None:
            logger.info(
                "recurrence_complete",
                notification_id=notification.id,
                occurrence=notification.metadata.occurrence,
            )
            return None

        steps, next_time = step
        follow_up = ScheduledNotification(
            user_id=notification.user_id,
            title=notification.title,
            message=notification.message,
            type=notification.type,
            priority=notification.priority,
            scheduled_for=next_time,
            related_entity_id=notification.related_entity_id,
            related_entity_type=notification.related_entity_type,
            deep_link_url=notification.deep_link_url,
            recurrence=notification.recurrence,
            metadata=NotificationMetadata(
                occurrence=notification.metadata.occurrence + steps,
                previous_occurrence_id=notification.id,
                original_scheduled_for=next_time,
                extra=dict(notification.metadata.extra),
            ),
        )
        return await self._create(follow_up, now)

    # ------------------------------------------------------------------
    # Cancel / reschedule / queries
    # ------------------------------------------------------------------

    async def _get_pending(
        self, notification_id: str, action: str
    ) -> ScheduledNotification:
        notification = await self.store.get(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        if notification.status != NotificationStatus.PENDING:
            raise InvalidStatusTransitionError(
                notification_id, notification.status.value, action
            )
        return notification

    async def _raise_lost_race(self, notification_id: str, action: str) -> NoReturn:
        current = await self.store.get(notification_id)
        if current is None:
            raise NotificationNotFoundError(notification_id)
        raise InvalidStatusTransitionError(notification_id, current.status.value, action)

    async def cancel_notification(
        self, notification_id: str, reason: str = CANCEL_REASON_USER
    ) -> bool:
        """
        Cancel a pending notification.

        Returns:
            True once the notification is cancelled

        Raises:
            NotificationNotFoundError: If no such notification exists
            InvalidStatusTransitionError: If it is no longer pending
        """
        notification = await self._get_pending(notification_id, "cancel")
        now = self._now()

        cancelled = await self.store.compare_and_update(
            notification_id,
            NotificationStatus.PENDING,
            {
                "status": NotificationStatus.CANCELLED,
                "metadata": notification.metadata.model_copy(
                    update={"cancelled_at": now, "cancel_reason": reason}
                ),
                "updated_at": now,
            },
        )
        if cancelled is None:
            await self._raise_lost_race(notification_id, "cancel")

        self._disarm_timer(notification_id)
        NOTIFICATION_CANCELLATIONS.labels(reason=reason).inc()
        logger.info("notification_cancelled", notification_id=notification_id, reason=reason)
        return True

    async def reschedule_notification(
        self, notification_id: str, new_time: datetime
    ) -> bool:
        """
        Move a pending notification to a new time.

        Returns:
            True once the notification is rescheduled

        Raises:
            ScheduleTimeError: If new_time is not strictly in the future
            NotificationNotFoundError: If no such notification exists
            InvalidStatusTransitionError: If it is no longer pending
        """
        new_time = ensure_utc(new_time)
        now = self._now()
        if new_time <= now:
            raise ScheduleTimeError(
                f"New time must be in the future (got {new_time.isoformat()})"
            )

        notification = await self._get_pending(notification_id, "reschedule")

        rescheduled = await self.store.compare_and_update(
            notification_id,
            NotificationStatus.PENDING,
            {
                "scheduled_for": new_time,
                "metadata": notification.metadata.model_copy(
                    update={
                        "rescheduled_at": now,
                        "previous_scheduled_for": notification.scheduled_for,
                        "original_scheduled_for": new_time,
                    }
                ),
                "updated_at": now,
            },
        )
        if rescheduled is None:
            await self._raise_lost_race(notification_id, "reschedule")

        self._disarm_timer(notification_id)
        self._arm_timer_if_near(rescheduled, now)

        logger.info(
            "notification_rescheduled",
            notification_id=notification_id,
            previous=notification.scheduled_for.isoformat(),
            scheduled_for=new_time.isoformat(),
        )
        return True

    async def get_notification(
        self, notification_id: str
    ) -> Optional[ScheduledNotification]:
        """Fetch a notification by ID."""
        return await self.store.get(notification_id)

    async def list_notifications(
        self,
        user_id: str,
        status: Optional[NotificationStatus] = None,
    ) -> List[ScheduledNotification]:
        """A user's notifications, optionally filtered by status."""
        return await self.store.list_for_user(user_id, status)

    # ------------------------------------------------------------------
    # Precise timers
    # ------------------------------------------------------------------

    def _arm_timer_if_near(self, notification: ScheduledNotification, now: datetime) -> None:
        window = timedelta(minutes=self.settings.precise_timer_window_minutes)
        if notification.scheduled_for - now <= window:
            self._arm_timer(notification.id, notification.scheduled_for)

    def _arm_timer(self, notification_id: str, run_at: datetime) -> None:
        if self.job_scheduler is None:
            return

        self.job_scheduler.add_job(
            self._on_timer,
            job_id=timer_job_id(notification_id),
            trigger="date",
            run_date=run_at,
            args=[notification_id],
        )
        self._armed.add(notification_id)
        ARMED_TIMERS.set(len(self._armed))
        logger.debug(
            "notification_timer_armed",
            notification_id=notification_id,
            run_at=run_at.isoformat(),
        )

    def _disarm_timer(self, notification_id: str) -> None:
        if self.job_scheduler is None or notification_id not in self._armed:
            return

        self.job_scheduler.remove_job(timer_job_id(notification_id))
        self._armed.discard(notification_id)
        ARMED_TIMERS.set(len(self._armed))

    async def arm_upcoming_timers(self) -> int:
        """
        Arm timers for pending notifications due within the timer window.

        Covers notifications created by other processes sharing the store.

        Returns:
            Number of timers newly armed
        """
        if self.job_scheduler is None:
            return 0

        now = self._now()
        horizon = now + timedelta(minutes=self.settings.precise_timer_window_minutes)
        upcoming = await self.store.list_due(horizon, limit=1000)

        armed = 0
        for notification in upcoming:
            if notification.id in self._armed or notification.scheduled_for <= now:
                continue
            self._arm_timer(notification.id, notification.scheduled_for)
            armed += 1
        return armed

    @property
    def armed_timers(self) -> Set[str]:
        """IDs of notifications with an armed one-shot timer."""
        return set(self._armed)

    def shutdown(self) -> None:
        """Disarm every precise timer."""
        for notification_id in list(self._armed):
            self._disarm_timer(notification_id)
        logger.info("notification_scheduler_shutdown")
