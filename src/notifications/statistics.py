"""Notification statistics.

Counts are derived from a store snapshot on every call; nothing is
cached between calls.
"""

from dataclasses import dataclass, field
from typing import Iterable

import pandas as pd

from src.notifications.config import (
    Category,
    NotificationPriority,
    NotificationType,
)
from src.notifications.models import Notification


@dataclass
class NotificationStatistics:
    """Aggregate counts over the notification feed.

    Attributes:
        total: Number of notifications.
        unread: Number not yet read.
        read: Number read.
        by_type: Count per notification type (every type present, zero-filled).
        by_priority: Count per priority (zero-filled).
        by_category: Count per category (zero-filled).
        critical_unread: Unread notifications at critical priority.
    """
    total: int = 0
    unread: int = 0
    read: int = 0
    by_type: dict[NotificationType, int] = field(default_factory=dict)
    by_priority: dict[NotificationPriority, int] = field(default_factory=dict)
    by_category: dict[Category, int] = field(default_factory=dict)
    critical_unread: int = 0

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "unread": self.unread,
            "read": self.read,
            "byType": {k.value: v for k, v in self.by_type.items()},
            "byPriority": {k.value: v for k, v in self.by_priority.items()},
            "byCategory": {k.value: v for k, v in self.by_category.items()},
            "criticalUnread": self.critical_unread,
        }


def compute_statistics(notifications: Iterable[Notification]) -> NotificationStatistics:
    """Compute statistics over a snapshot.

    Args:
        notifications: Store snapshot (any iterable of records).

    Returns:
        NotificationStatistics with ``total == read + unread``.
    """
    stats = NotificationStatistics(
        by_type={t: 0 for t in NotificationType},
        by_priority={p: 0 for p in NotificationPriority},
        by_category={c: 0 for c in Category},
    )
    for n in notifications:
        stats.total += 1
        if n.read:
            stats.read += 1
        else:
            stats.unread += 1
            if n.priority == NotificationPriority.CRITICAL:
                stats.critical_unread += 1
        stats.by_type[n.type] += 1
        stats.by_priority[n.priority] += 1
        stats.by_category[n.category] += 1
    return stats


def volume_timeline(notifications: Iterable[Notification], freq: str = "D") -> pd.DataFrame:
    """Notification counts per period and priority.

    Args:
        notifications: Store snapshot.
        freq: pandas offset alias for the period (``"h"``, ``"D"``, ``"W"``).

    Returns:
        DataFrame indexed by period start, one column per priority plus
        ``total``. Empty periods between the first and last notification
        are zero-filled; no notifications gives an empty frame.
    """
    columns = [p.value for p in sorted(NotificationPriority, key=lambda p: p.rank)]
    rows = [
        {"timestamp": n.timestamp, "priority": n.priority.value}
        for n in notifications
    ]
    if not rows:
        return pd.DataFrame(columns=columns + ["total"], dtype="int64")

    df = pd.DataFrame(rows)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    counts = (
        df.groupby([pd.Grouper(key="timestamp", freq=freq), "priority"])
        .size()
        .unstack(fill_value=0)
        .reindex(columns=columns, fill_value=0)
        .asfreq(freq, fill_value=0)
    )
    counts["total"] = counts.sum(axis=1)
    counts.index.name = "period"
    return counts.astype("int64")
