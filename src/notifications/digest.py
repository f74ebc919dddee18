"""Deferred external delivery.

Holds deliveries withheld by quiet hours or batched by a non-realtime
digest frequency, and releases them on the engine tick.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from src.notifications.config import DIGEST_INTERVALS, DigestFrequency, EXTERNAL_CHANNELS
from src.notifications.exceptions import NotFoundError
from src.notifications.models import (
    Notification,
    NotificationCandidate,
    NotificationPreferences,
    _utc_now,
    as_utc,
)
from src.notifications.routing import ChannelRouter

logger = logging.getLogger(__name__)


@dataclass
class PendingDelivery:
    """One notification waiting for external delivery.

    Attributes:
        notification_id: Stored notification to deliver.
        channels: External channels requested when it was routed.
        held: True if withheld by quiet hours rather than batched.
        enqueued_at: When the delivery was deferred.
    """
    notification_id: str
    channels: frozenset
    held: bool = False
    enqueued_at: datetime = field(default_factory=_utc_now)


@dataclass
class ReleasedDelivery:
    """A deferred delivery cleared to go out now."""
    notification: Notification
    channels: frozenset


def candidate_for(notification: Notification, channels: frozenset) -> NotificationCandidate:
    """Rebuild a routable candidate from a stored notification."""
    return NotificationCandidate(
        type=notification.type,
        priority=notification.priority,
        title=notification.title,
        message=notification.message,
        channels=channels,
        metadata=dict(notification.metadata),
        action_url=notification.action_url,
        action_label=notification.action_label,
        category=notification.category,
        rule_id=notification.rule_id,
    )


class DigestQueue:
    """FIFO of deferred deliveries plus the digest flush clock.

    Args:
        intervals: Seconds between flushes per frequency.
        clock: Returns the current UTC time.
    """

    def __init__(
        self,
        intervals: Optional[dict[DigestFrequency, int]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.intervals = dict(intervals or DIGEST_INTERVALS)
        self._clock = clock or _utc_now
        self._lock = threading.Lock()
        self._entries: list[PendingDelivery] = []
        self.last_flush: datetime = self._clock()

    def enqueue(
        self,
        notification_id: str,
        channels: frozenset,
        held: bool = False,
        now: Optional[datetime] = None,
    ) -> Optional[PendingDelivery]:
        """Defer external delivery of a notification.

        In-app is never deferred; an entry with no external channel left
        is not queued.
        """
        external = frozenset(channels) & EXTERNAL_CHANNELS
        if not external:
            return None
        entry = PendingDelivery(
            notification_id=notification_id,
            channels=external,
            held=held,
            enqueued_at=now or self._clock(),
        )
        with self._lock:
            self._entries.append(entry)
        logger.debug(
            "Deferred %s to %s (%s)",
            notification_id,
            ",".join(sorted(c.value for c in external)),
            "quiet hours" if held else "digest",
        )
        return entry

    def pending(self) -> list[PendingDelivery]:
        with self._lock:
            return list(self._entries)

    def cancel(self, notification_id: str) -> int:
        """Drop every pending delivery for a notification."""
        with self._lock:
            before = len(self._entries)
            self._entries = [e for e in self._entries if e.notification_id != notification_id]
            return before - len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries = []

    def is_flush_due(self, frequency: DigestFrequency, now: datetime) -> bool:
        interval = self.intervals.get(frequency, 0)
        if interval <= 0:
            return True
        return as_utc(now) - as_utc(self.last_flush) >= timedelta(seconds=interval)

    def release(
        self,
        preferences: NotificationPreferences,
        router: ChannelRouter,
        lookup: Callable[[str], Notification],
        now: Optional[datetime] = None,
    ) -> list[ReleasedDelivery]:
        """Re-route pending deliveries against the live preferences.

        Entries whose notification was deleted are dropped. Entries the
        live preferences route nowhere are cancelled. Entries still inside
        quiet hours, or batched for a digest that is not yet due, stay
        queued in their original order.

        Args:
            preferences: Preferences read at tick time.
            router: Router used for the original decision.
            lookup: Fetches a stored notification by id.
            now: Tick time; defaults to the injected clock.

        Returns:
            Deliveries to dispatch now, oldest first.
        """
        now = now or self._clock()
        flush_due = self.is_flush_due(preferences.frequency, now)

        with self._lock:
            entries = self._entries
            self._entries = []

        released: list[ReleasedDelivery] = []
        kept: list[PendingDelivery] = []
        dropped = 0

        for entry in entries:
            try:
                notification = lookup(entry.notification_id)
            except NotFoundError:
                dropped += 1
                continue

            decision = router.route(candidate_for(notification, entry.channels), preferences, now)
            held = decision.held & EXTERNAL_CHANNELS
            channels = decision.channels & EXTERNAL_CHANNELS

            if held:
                kept.append(PendingDelivery(entry.notification_id, held, True, entry.enqueued_at))
            elif not channels:
                dropped += 1
                logger.debug("Cancelled deferred delivery %s: %s", entry.notification_id, decision.reasons)
            elif decision.digest and not flush_due:
                kept.append(PendingDelivery(entry.notification_id, channels, False, entry.enqueued_at))
            else:
                released.append(ReleasedDelivery(notification, channels))

        with self._lock:
            # Entries enqueued while releasing go after the survivors
            self._entries = kept + self._entries

        if flush_due and preferences.frequency != DigestFrequency.REALTIME:
            self.last_flush = now
        if released or dropped:
            logger.info(
                "Digest tick: %d released, %d dropped, %d still pending",
                len(released), dropped, len(kept),
            )
        return released

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
