"""Per-user notification preferences and delivery policy.

Stored preferences are sparse: only the fields a user changed are kept.
Every read merges them field-by-field over the documented defaults, so a
partially-populated record keeps its values and never breaks a read.

The delivery policy fails open. If preferences cannot be evaluated the
notification is delivered rather than silently dropped.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Type
from zoneinfo import ZoneInfo

import structlog
from pydantic import BaseModel, ValidationError

from subwatch.models.notification import NotificationType
from subwatch.models.preferences import (
    DeliveryDecision,
    DeliveryVerdict,
    NotificationGeneralSettings,
    NotificationPreferences,
    NotificationTypePreferences,
)
from subwatch.utils.dates import ensure_utc, parse_hhmm, utc_now
from subwatch.utils.exceptions import InvalidInputError
from subwatch.utils.persistence import load_json_document, save_json_document

logger = structlog.get_logger()

DEFAULT_PREFERENCES_PATH = Path("data/preferences.json")


class PreferenceStore(ABC):
    """Abstract key-value storage for sparse preference documents."""

    @abstractmethod
    async def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Stored overrides for a user, or None"""
        pass

    @abstractmethod
    async def save(self, user_id: str, data: Dict[str, Any]) -> None:
        """Replace a user's stored overrides"""
        pass


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self, initial: Optional[Dict[str, Dict[str, Any]]] = None):
        self._data: Dict[str, Dict[str, Any]] = dict(initial or {})

    async def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._data.get(user_id)

    async def save(self, user_id: str, data: Dict[str, Any]) -> None:
        self._data[user_id] = data


class JsonFilePreferenceStore(PreferenceStore):
    """Preferences kept in one JSON document: {"users": {"<id>": {...}}}."""

    def __init__(self, path: Optional[Path] = None):
        self.path = path or DEFAULT_PREFERENCES_PATH

    async def load(self, user_id: str) -> Optional[Dict[str, Any]]:
        return load_json_document(self.path).get("users", {}).get(user_id)

    async def save(self, user_id: str, data: Dict[str, Any]) -> None:
        document = load_json_document(self.path)
        document.setdefault("users", {})[user_id] = data
        save_json_document(self.path, document)


def _merge_section(
    model_cls: Type[BaseModel],
    defaults: Dict[str, Any],
    overrides: Any,
) -> Dict[str, Any]:
    """Overlay stored fields on defaults, dropping fields that fail validation."""
    merged = dict(defaults)
    if not isinstance(overrides, dict):
        return merged

    for key, value in overrides.items():
        if key not in model_cls.model_fields:
            continue
        try:
            model_cls.model_validate({key: value})
        except ValidationError:
            logger.warning("preference_field_ignored", field=key)
            continue
        merged[key] = value
    return merged


def merge_preferences(stored: Optional[Dict[str, Any]]) -> NotificationPreferences:
    """Build complete preferences from a sparse stored document."""
    defaults = NotificationPreferences().model_dump(mode="json")
    stored = stored if isinstance(stored, dict) else {}

    general = _merge_section(
        NotificationGeneralSettings, defaults["general"], stored.get("general")
    )

    by_type = defaults["by_type"]
    stored_by_type = stored.get("by_type")
    if isinstance(stored_by_type, dict):
        for type_name, overrides in stored_by_type.items():
            if type_name not in by_type:
                continue
            by_type[type_name] = _merge_section(
                NotificationTypePreferences, by_type[type_name], overrides
            )

    return NotificationPreferences.model_validate(
        {"general": general, "by_type": by_type}
    )


def _deep_update(base: Dict[str, Any], updates: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def is_within_quiet_hours(general: NotificationGeneralSettings, now: datetime) -> bool:
    """Whether ``now`` falls inside the quiet window in the user's timezone.

    A window whose start is later than its end spans midnight.
    """
    local = ensure_utc(now).astimezone(ZoneInfo(general.timezone))
    current = local.time().replace(second=0, microsecond=0)
    start = parse_hhmm(general.quiet_hours_start)
    end = parse_hhmm(general.quiet_hours_end)

    if start > end:
        return current >= start or current < end
    return start <= current < end


def quiet_hours_end(general: NotificationGeneralSettings, now: datetime) -> datetime:
    """Next moment (UTC) the quiet window closes."""
    local = ensure_utc(now).astimezone(ZoneInfo(general.timezone))
    end = parse_hhmm(general.quiet_hours_end)

    candidate = local.replace(hour=end.hour, minute=end.minute, second=0, microsecond=0)
    if candidate <= local:
        candidate = candidate + timedelta(days=1)
    return ensure_utc(candidate)


class NotificationPreferencesService:
    """Read, update and evaluate per-user notification preferences."""

    def __init__(
        self,
        store: Optional[PreferenceStore] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store or InMemoryPreferenceStore()
        self._clock = clock

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Preferences merged over defaults; defaults if the store fails."""
        try:
            stored = await self.store.load(user_id)
        except Exception as e:
            logger.error("preferences_load_failed", user_id=user_id, error=str(e))
            return NotificationPreferences()

        return merge_preferences(stored)

    async def update_preferences(
        self, user_id: str, updates: Dict[str, Any]
    ) -> NotificationPreferences:
        """
        Apply a partial update ({"general": {...}, "by_type": {...}}).

        Raises:
            InvalidInputError: If the update contains invalid values
        """
        stored = await self.store.load(user_id) or {}
        merged = _deep_update(stored, updates)

        defaults = NotificationPreferences().model_dump(mode="json")
        try:
            NotificationPreferences.model_validate(_deep_update(defaults, merged))
        except ValidationError as e:
            raise InvalidInputError(f"Invalid preferences for {user_id}: {e}") from e

        await self.store.save(user_id, merged)
        logger.info("preferences_updated", user_id=user_id, sections=sorted(updates))
        return merge_preferences(merged)

    async def update_type_preferences(
        self,
        user_id: str,
        notification_type: NotificationType,
        updates: Dict[str, Any],
    ) -> NotificationPreferences:
        """Apply a partial update to one notification type's settings."""
        return await self.update_preferences(
            user_id, {"by_type": {notification_type.value: updates}}
        )

    async def get_delivery_decision(
        self,
        user_id: str,
        notification_type: NotificationType,
        now: Optional[datetime] = None,
    ) -> DeliveryDecision:
        """
        Decide whether a notification may be delivered now.

        Returns ALLOW if anything goes wrong while evaluating.
        """
        try:
            now = ensure_utc(now) if now else ensure_utc(self._clock())
            prefs = await self.get_preferences(user_id)

            if not prefs.for_type(notification_type).enabled:
                return DeliveryDecision(verdict=DeliveryVerdict.TYPE_DISABLED)

            general = prefs.general
            if general.quiet_hours_enabled and is_within_quiet_hours(general, now):
                return DeliveryDecision(
                    verdict=DeliveryVerdict.QUIET_HOURS,
                    resume_at=quiet_hours_end(general, now),
                )

            return DeliveryDecision(verdict=DeliveryVerdict.ALLOW)

        except Exception as e:
            logger.warning(
                "delivery_check_failed_open",
                user_id=user_id,
                type=notification_type.value,
                error=str(e),
            )
            return DeliveryDecision(verdict=DeliveryVerdict.ALLOW)

    async def is_delivery_allowed(
        self,
        user_id: str,
        notification_type: NotificationType,
        now: Optional[datetime] = None,
    ) -> bool:
        """False if the type is disabled or quiet hours are in effect."""
        decision = await self.get_delivery_decision(user_id, notification_type, now)
        return decision.allowed

    async def next_quiet_hours_end(
        self, user_id: str, now: Optional[datetime] = None
    ) -> Optional[datetime]:
        """When the user's quiet window next closes, or None if disabled."""
        now = ensure_utc(now) if now else ensure_utc(self._clock())
        general = (await self.get_preferences(user_id)).general
        if not general.quiet_hours_enabled:
            return None
        return quiet_hours_end(general, now)
