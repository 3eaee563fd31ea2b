"""Custom exceptions for duplicate detection and notification scheduling.

This module defines the exception hierarchy for subwatch:
- Validation errors raised synchronously to the caller
- Lookup errors for missing notifications
- Transient delivery errors that drive the retry/backoff state machine
- Storage errors from the notification and preference stores

All exceptions inherit from SubwatchError so callers can catch every
subwatch failure in a single except block when needed.
"""


class SubwatchError(Exception):
    """Base exception for all subwatch errors

    Use this to catch any error raised by the library:
    ```python
    try:
        await scheduler.cancel_notification(notification_id)
    except SubwatchError as e:
        logger.error("cancel_failed", error=str(e))
    ```
    """

    pass


class InvalidInputError(SubwatchError):
    """Caller supplied invalid input

    Raised synchronously and never swallowed. Subclasses narrow down
    the reason.
    """

    pass


class ScheduleTimeError(InvalidInputError):
    """Scheduled time is not strictly in the future

    Raised when:
    - scheduling a notification for a past or current time
    - rescheduling a notification to a past or current time
    """

    pass


class InvalidStatusTransitionError(InvalidInputError):
    """Requested state change is not legal from the current status

    Raised when:
    - cancelling a notification that is no longer pending
    - rescheduling a notification that is no longer pending
    """

    def __init__(
        self, notification_id: str, current_status: str, action: str
    ) -> None:
        super().__init__(
            f"Cannot {action} notification {notification_id}: "
            f"status is '{current_status}', expected 'pending'"
        )
        self.notification_id = notification_id
        self.current_status = current_status
        self.action = action


class EmptyCandidateListError(InvalidInputError):
    """Preferred subscription requested from an empty list"""

    pass


class LinkConflictError(InvalidInputError):
    """Message is already linked to a different subscription

    A message's subscription link is stable once set.
    """

    pass


class NotificationNotFoundError(SubwatchError):
    """No notification exists with the requested ID"""

    def __init__(self, notification_id: str) -> None:
        super().__init__(f"Notification with ID {notification_id} not found")
        self.notification_id = notification_id


class DeliveryError(SubwatchError):
    """Delivering a notification failed

    Transient by default: the scheduler records the error and retries
    with exponential backoff until the retry cap is exceeded.

    Raised when:
    - webhook returns a non-2xx status
    - push/local notification dispatch fails
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreError(SubwatchError):
    """Reading or writing a backing store failed"""

    pass
