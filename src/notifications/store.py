"""Notification store.

Ordered, newest-first log of notifications. Records are immutable apart
from the read flag; every committed mutation triggers exactly one
broadcast, including bulk operations.
"""

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Callable, Iterable, Optional

from src.notifications.broadcaster import Broadcaster
from src.notifications.exceptions import NotFoundError, StoreClosedError
from src.notifications.models import (
    Notification,
    NotificationCandidate,
    NotificationFilter,
    _new_id,
    _utc_now,
)

logger = logging.getLogger(__name__)


class NotificationStore:
    """Thread-safe in-memory notification log.

    Writers serialize on a reentrant lock. Readers get tuples of frozen
    records, so a snapshot never changes after it is returned.

    Args:
        broadcaster: Receives one notify() per committed mutation.
        clock: Returns the current UTC time.
        max_notifications: Oldest records beyond this are trimmed (0 = no cap).

    Example:
        store = NotificationStore()
        record = store.create(candidate)
        store.mark_read(record.id)
        unread = store.list(NotificationFilter(read=False))
    """

    def __init__(
        self,
        broadcaster: Optional[Broadcaster] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_notifications: int = 0,
    ) -> None:
        self.broadcaster = broadcaster or Broadcaster()
        self._clock = clock or _utc_now
        self.max_notifications = max_notifications
        self._lock = threading.RLock()
        # Newest first
        self._records: list[Notification] = []
        self._last_timestamp: Optional[datetime] = None
        self._closed = False

    def _commit(self) -> None:
        # Called with the lock held so observer queues see mutation order
        self.broadcaster.notify()

    def _index_of(self, notification_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == notification_id:
                return i
        return -1

    # ── Writes ───────────────────────────────────────────────────────

    def create(self, candidate: NotificationCandidate) -> Notification:
        """Store a candidate as a new, unread notification.

        Args:
            candidate: Routed candidate; its channels are snapshotted.

        Returns:
            The stored record.

        Raises:
            ValidationError: If title or message is blank.
            StoreClosedError: If the store has been closed.
        """
        candidate.validate()
        with self._lock:
            if self._closed:
                raise StoreClosedError()

            timestamp = self._clock()
            if self._last_timestamp is not None and timestamp < self._last_timestamp:
                timestamp = self._last_timestamp
            self._last_timestamp = timestamp

            record = Notification(
                id=_new_id(),
                type=candidate.type,
                priority=candidate.priority,
                title=candidate.title,
                message=candidate.message,
                timestamp=timestamp,
                action_url=candidate.action_url,
                action_label=candidate.action_label,
                metadata=dict(candidate.metadata),
                channels=candidate.channels,
                category=candidate.category,
                rule_id=candidate.rule_id,
            )
            self._records.insert(0, record)

            if self.max_notifications and len(self._records) > self.max_notifications:
                del self._records[self.max_notifications:]

            self._commit()

        logger.debug(
            "Stored notification %s (%s/%s)", record.id, record.type.value, record.priority.value,
        )
        return record

    def mark_read(self, notification_id: str) -> bool:
        """Mark one notification read.

        Returns:
            True if the record changed; False if absent or already read.
        """
        with self._lock:
            i = self._index_of(notification_id)
            if i < 0 or self._records[i].read:
                return False
            self._records[i] = dataclasses.replace(self._records[i], read=True)
            self._commit()
        return True

    def mark_read_many(self, notification_ids: Iterable[str]) -> int:
        """Mark several notifications read with a single broadcast.

        Returns:
            Number of records that changed.
        """
        wanted = set(notification_ids)
        with self._lock:
            count = self._flip_read(lambda r: r.id in wanted)
            if count:
                self._commit()
        return count

    def mark_all_read(self) -> int:
        """Mark every unread notification read with a single broadcast.

        Returns:
            Number of records that changed.
        """
        with self._lock:
            count = self._flip_read(lambda r: True)
            if count:
                self._commit()
        if count:
            logger.debug("Marked %d notifications read", count)
        return count

    def _flip_read(self, predicate: Callable[[Notification], bool]) -> int:
        count = 0
        for i, record in enumerate(self._records):
            if not record.read and predicate(record):
                self._records[i] = dataclasses.replace(record, read=True)
                count += 1
        return count

    def delete(self, notification_id: str) -> bool:
        """Hard-delete one notification.

        Returns:
            True if a record was removed; False if it was absent.
        """
        with self._lock:
            i = self._index_of(notification_id)
            if i < 0:
                return False
            del self._records[i]
            self._commit()
        return True

    def delete_many(self, notification_ids: Iterable[str]) -> int:
        """Delete several notifications with a single broadcast."""
        wanted = set(notification_ids)
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.id not in wanted]
            count = before - len(self._records)
            if count:
                self._commit()
        return count

    def clear(self) -> int:
        """Delete every notification with a single broadcast."""
        with self._lock:
            count = len(self._records)
            self._records = []
            if count:
                self._commit()
        return count

    def restore(self, records: Iterable[Notification]) -> None:
        """Replace the whole log (snapshot load and reset tooling).

        Records are re-sorted newest first; read flags are taken as given.
        """
        ordered = sorted(records, key=lambda r: r.timestamp, reverse=True)
        with self._lock:
            self._records = ordered
            self._last_timestamp = ordered[0].timestamp if ordered else None
            self._commit()

    def close(self) -> None:
        """Reject further creates."""
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Reads ────────────────────────────────────────────────────────

    def get(self, notification_id: str) -> Notification:
        """Look up a notification by id.

        Raises:
            NotFoundError: If no such notification exists.
        """
        with self._lock:
            i = self._index_of(notification_id)
            if i < 0:
                raise NotFoundError("notification", notification_id)
            return self._records[i]

    def list(self, notification_filter: Optional[NotificationFilter] = None) -> tuple:
        """Return a newest-first snapshot, optionally filtered."""
        with self._lock:
            records = tuple(self._records)
        if notification_filter is None:
            return records
        matched = tuple(r for r in records if notification_filter.matches(r))
        if notification_filter.limit is not None:
            matched = matched[:notification_filter.limit]
        return matched

    def unread_count(self) -> int:
        with self._lock:
            return sum(1 for r in self._records if not r.read)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, notification_id: object) -> bool:
        with self._lock:
            return any(r.id == notification_id for r in self._records)
