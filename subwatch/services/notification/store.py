"""Notification persistence.

The scheduler talks to storage only through NotificationStore. Two backends
are provided:
- InMemoryNotificationStore: process-local, used by tests and embedding apps
- JsonFileNotificationStore: single JSON document written atomically

``compare_and_update`` is the claim primitive: it applies changes only when
the stored status still matches the expected one. Both backends perform the
check and the write without yielding to the event loop, so a sweep and a
one-shot timer racing on the same record cannot both claim it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from subwatch.models.notification import NotificationStatus, ScheduledNotification
from subwatch.utils.dates import ensure_utc, utc_now
from subwatch.utils.exceptions import NotificationNotFoundError, StoreError
from subwatch.utils.persistence import load_json_document, save_json_document

logger = structlog.get_logger()

DEFAULT_NOTIFICATIONS_PATH = Path("data/notifications.json")


class NotificationStore(ABC):
    """Abstract storage for scheduled notifications."""

    @abstractmethod
    async def create(self, notification: ScheduledNotification) -> ScheduledNotification:
        """Persist a new notification

        Raises:
            StoreError: If a notification with the same ID already exists
        """
        pass

    @abstractmethod
    async def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        """Fetch a notification by ID, or None"""
        pass

    @abstractmethod
    async def update(
        self, notification_id: str, changes: Dict[str, Any]
    ) -> ScheduledNotification:
        """Merge ``changes`` into the stored record

        Raises:
            NotificationNotFoundError: If no such notification exists
        """
        pass

    @abstractmethod
    async def compare_and_update(
        self,
        notification_id: str,
        expected_status: NotificationStatus,
        changes: Dict[str, Any],
    ) -> Optional[ScheduledNotification]:
        """Merge ``changes`` only if the stored status equals ``expected_status``

        Returns:
            The updated record, or None if the record is missing or its
            status no longer matches
        """
        pass

    @abstractmethod
    async def list_due(self, now: datetime, limit: int) -> List[ScheduledNotification]:
        """Pending notifications with scheduled_for <= now, oldest first"""
        pass

    @abstractmethod
    async def list_stale_processing(
        self, cutoff: datetime, limit: int
    ) -> List[ScheduledNotification]:
        """Processing notifications claimed at or before ``cutoff``, oldest first"""
        pass

    @abstractmethod
    async def list_for_user(
        self,
        user_id: str,
        status: Optional[NotificationStatus] = None,
    ) -> List[ScheduledNotification]:
        """A user's notifications ordered by scheduled_for"""
        pass


def _merge(
    notification: ScheduledNotification, changes: Dict[str, Any]
) -> ScheduledNotification:
    """Apply a partial update and re-validate the record."""
    data = notification.model_dump()
    data.update(changes)
    if "updated_at" not in changes:
        data["updated_at"] = utc_now()
    return ScheduledNotification.model_validate(data)


class InMemoryNotificationStore(NotificationStore):
    """Dictionary-backed notification store."""

    def __init__(self) -> None:
        self._records: Dict[str, ScheduledNotification] = {}

    def _sync(self) -> None:
        """Hook called before every operation."""

    def _persist(self) -> None:
        """Hook called after every mutation."""

    async def create(self, notification: ScheduledNotification) -> ScheduledNotification:
        self._sync()
        if notification.id in self._records:
            raise StoreError(f"Notification {notification.id} already exists")

        self._records[notification.id] = notification
        self._persist()
        return notification

    async def get(self, notification_id: str) -> Optional[ScheduledNotification]:
        self._sync()
        return self._records.get(notification_id)

    async def update(
        self, notification_id: str, changes: Dict[str, Any]
    ) -> ScheduledNotification:
        self._sync()
        current = self._records.get(notification_id)
        if current is None:
            raise NotificationNotFoundError(notification_id)

        updated = _merge(current, changes)
        self._records[notification_id] = updated
        self._persist()
        return updated

    async def compare_and_update(
        self,
        notification_id: str,
        expected_status: NotificationStatus,
        changes: Dict[str, Any],
    ) -> Optional[ScheduledNotification]:
        self._sync()
        current = self._records.get(notification_id)
        if current is None or current.status != expected_status:
            return None

        updated = _merge(current, changes)
        self._records[notification_id] = updated
        self._persist()
        return updated

    async def list_due(self, now: datetime, limit: int) -> List[ScheduledNotification]:
        self._sync()
        now = ensure_utc(now)
        due = [n for n in self._records.values() if n.is_due(now)]
        due.sort(key=lambda n: n.scheduled_for)
        return due[:limit]

    async def list_stale_processing(
        self, cutoff: datetime, limit: int
    ) -> List[ScheduledNotification]:
        self._sync()
        cutoff = ensure_utc(cutoff)
        stale = [
            n
            for n in self._records.values()
            if n.status == NotificationStatus.PROCESSING and n.claimed_at() <= cutoff
        ]
        stale.sort(key=lambda n: n.claimed_at())
        return stale[:limit]

    async def list_for_user(
        self,
        user_id: str,
        status: Optional[NotificationStatus] = None,
    ) -> List[ScheduledNotification]:
        self._sync()
        records = [
            n
            for n in self._records.values()
            if n.user_id == user_id and (status is None or n.status == status)
        ]
        records.sort(key=lambda n: n.scheduled_for)
        return records

    async def count_by_status(self) -> Dict[str, int]:
        """Number of records per status, for health reporting."""
        self._sync()
        counts: Dict[str, int] = {}
        for notification in self._records.values():
            counts[notification.status.value] = counts.get(notification.status.value, 0) + 1
        return counts


class JsonFileNotificationStore(InMemoryNotificationStore):
    """Notification store persisted to a single JSON document.

    The document is rewritten atomically after each mutation and reloaded
    whenever another process has replaced it, so the CLI and the daemon can
    share one file (last writer wins):

        {"notifications": {"<id>": {...}, ...}, "updated_at": "..."}
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize the store.

        Args:
            path: Location of the JSON document.
        """
        super().__init__()
        self.path = path or DEFAULT_NOTIFICATIONS_PATH
        self._loaded_mtime: Optional[int] = None
        self._load()

        logger.info(
            "notification_store_loaded",
            path=str(self.path),
            records=len(self._records),
        )

    def _current_mtime(self) -> Optional[int]:
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _load(self) -> None:
        records: Dict[str, ScheduledNotification] = {}
        document = load_json_document(self.path)
        for notification_id, raw in document.get("notifications", {}).items():
            try:
                records[notification_id] = ScheduledNotification.model_validate(raw)
            except ValueError as e:
                logger.warning(
                    "notification_record_invalid",
                    notification_id=notification_id,
                    error=str(e),
                )

        self._records = records
        self._loaded_mtime = self._current_mtime()

    def _sync(self) -> None:
        if self._current_mtime() != self._loaded_mtime:
            logger.debug("notification_store_reloaded", path=str(self.path))
            self._load()

    def _persist(self) -> None:
        save_json_document(
            self.path,
            {
                "notifications": {
                    notification_id: notification.model_dump(mode="json")
                    for notification_id, notification in self._records.items()
                },
                "updated_at": utc_now().isoformat(),
            },
        )
        self._loaded_mtime = self._current_mtime()
