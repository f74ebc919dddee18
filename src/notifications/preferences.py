"""User notification preference management.

Holds the single live preference set, validates partial updates, and
answers quiet-hours questions.
"""

import logging
import re
import threading
from datetime import datetime, time
from typing import Any, Callable, Mapping, Optional

from src.notifications.config import (
    Category,
    Channel,
    DigestFrequency,
    TOGGLEABLE_CATEGORIES,
)
from src.notifications.exceptions import ValidationError
from src.notifications.models import NotificationPreferences, QuietHours

logger = logging.getLogger(__name__)

CLOCK_REGEX = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

# Accepted spellings for the quiet hours section
_QUIET_HOURS_KEYS = ("quietHours", "quiet_hours")
_TOP_LEVEL_KEYS = {"channels", "categories", "frequency", *_QUIET_HOURS_KEYS}


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` 24-hour clock string.

    Raises:
        ValidationError: If the string is not a valid time of day.
    """
    if not isinstance(value, str):
        raise ValidationError("time must be an HH:MM string", field="quietHours", value=value)
    match = CLOCK_REGEX.match(value)
    if not match:
        raise ValidationError(f"invalid time of day: {value!r}", field="quietHours", value=value)
    return time(int(match.group(1)), int(match.group(2)))


def is_in_quiet_hours(quiet_hours: QuietHours, now: datetime) -> bool:
    """Check whether ``now`` falls inside the quiet hours window.

    The window includes its start and excludes its end. ``end < start``
    wraps midnight (e.g. 22:00-08:00); ``start == end`` is empty.
    """
    if not quiet_hours.enabled:
        return False

    start = parse_clock(quiet_hours.start)
    end = parse_clock(quiet_hours.end)
    current = now.time().replace(second=0, microsecond=0)

    if start == end:
        return False
    if start > end:
        # Wraps midnight
        return current >= start or current < end
    return start <= current < end


class PreferenceStore:
    """Owns the live preference set.

    Updates are deep-merged into a copy, validated as a whole, then
    swapped in under a lock so a rejected update leaves nothing behind.
    """

    def __init__(self, preferences: Optional[NotificationPreferences] = None) -> None:
        self._lock = threading.RLock()
        self._preferences = (preferences or NotificationPreferences()).copy()
        self._listeners: list[Callable[[NotificationPreferences], None]] = []

    def get(self) -> NotificationPreferences:
        """Return a copy of the current preferences."""
        with self._lock:
            return self._preferences.copy()

    def on_change(self, listener: Callable[[NotificationPreferences], None]) -> None:
        """Register a callback invoked with the new preferences after an update."""
        self._listeners.append(listener)

    def update(self, partial: Mapping[str, Any]) -> NotificationPreferences:
        """Deep-merge a partial update.

        Args:
            partial: Any subset of ``channels``, ``categories``,
                ``quietHours`` (or ``quiet_hours``) and ``frequency``.
                Nested keys update independently.

        Returns:
            The new preferences.

        Raises:
            ValidationError: On unknown keys, non-boolean toggles, an
                unknown frequency, or malformed quiet hours times.
        """
        if not isinstance(partial, Mapping):
            raise ValidationError("preference update must be a mapping", value=partial)

        unknown = set(partial) - _TOP_LEVEL_KEYS
        if unknown:
            raise ValidationError(
                f"unknown preference keys: {', '.join(sorted(unknown))}",
                field=sorted(unknown)[0],
            )

        with self._lock:
            merged = self._preferences.copy()

            if "channels" in partial:
                self._merge_channels(merged, partial["channels"])
            if "categories" in partial:
                self._merge_categories(merged, partial["categories"])
            for key in _QUIET_HOURS_KEYS:
                if key in partial:
                    self._merge_quiet_hours(merged, partial[key])
            if "frequency" in partial:
                merged.frequency = self._parse_frequency(partial["frequency"])

            self._preferences = merged
            result = merged.copy()

        logger.info("Notification preferences updated: %s", ", ".join(sorted(partial)))
        for listener in list(self._listeners):
            listener(result)
        return result

    def replace(self, preferences: NotificationPreferences) -> None:
        """Swap in a complete preference set (snapshot load)."""
        parse_clock(preferences.quiet_hours.start)
        parse_clock(preferences.quiet_hours.end)
        with self._lock:
            self._preferences = preferences.copy()

    @staticmethod
    def _merge_channels(prefs: NotificationPreferences, update: Any) -> None:
        if not isinstance(update, Mapping):
            raise ValidationError("channels must be a mapping", field="channels", value=update)
        for key, enabled in update.items():
            try:
                channel = Channel(key)
            except ValueError:
                raise ValidationError(f"unknown channel: {key}", field="channels", value=key)
            if not isinstance(enabled, bool):
                raise ValidationError(
                    f"channel {key} must be true or false", field=f"channels.{key}", value=enabled,
                )
            prefs.channels[channel] = enabled

    @staticmethod
    def _merge_categories(prefs: NotificationPreferences, update: Any) -> None:
        if not isinstance(update, Mapping):
            raise ValidationError("categories must be a mapping", field="categories", value=update)
        for key, enabled in update.items():
            try:
                category = Category(key)
            except ValueError:
                raise ValidationError(f"unknown category: {key}", field="categories", value=key)
            if category not in TOGGLEABLE_CATEGORIES:
                raise ValidationError(
                    f"category {key} cannot be toggled", field=f"categories.{key}", value=enabled,
                )
            if not isinstance(enabled, bool):
                raise ValidationError(
                    f"category {key} must be true or false", field=f"categories.{key}", value=enabled,
                )
            prefs.categories[category] = enabled

    @staticmethod
    def _merge_quiet_hours(prefs: NotificationPreferences, update: Any) -> None:
        if not isinstance(update, Mapping):
            raise ValidationError("quietHours must be a mapping", field="quietHours", value=update)
        unknown = set(update) - {"enabled", "start", "end"}
        if unknown:
            raise ValidationError(
                f"unknown quietHours keys: {', '.join(sorted(unknown))}", field="quietHours",
            )
        quiet = prefs.quiet_hours
        if "enabled" in update:
            if not isinstance(update["enabled"], bool):
                raise ValidationError(
                    "quietHours.enabled must be true or false",
                    field="quietHours.enabled",
                    value=update["enabled"],
                )
            quiet.enabled = update["enabled"]
        if "start" in update:
            parse_clock(update["start"])
            quiet.start = update["start"]
        if "end" in update:
            parse_clock(update["end"])
            quiet.end = update["end"]

    @staticmethod
    def _parse_frequency(value: Any) -> DigestFrequency:
        try:
            return DigestFrequency(value)
        except ValueError:
            raise ValidationError(f"unknown frequency: {value}", field="frequency", value=value)
