"""Notification engine data models.

Dataclasses for notifications, preferences, alert rules, metric samples,
and delivery records.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from src.notifications.config import (
    Category,
    Channel,
    ComparisonOperator,
    ConditionType,
    DEFAULT_OPERATORS,
    DEFAULT_THRESHOLDS,
    DeliveryStatus,
    DigestFrequency,
    NotificationPriority,
    NotificationType,
    RuleType,
    SENTIMENT_SCORES,
    TYPE_CATEGORIES,
)
from src.notifications.exceptions import ValidationError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read a naive datetime as UTC; aware values are converted to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex[:16]


def _channel_set(channels: Optional[Iterable[Any]]) -> frozenset:
    if channels is None:
        return frozenset()
    return frozenset(Channel(c) for c in channels)


@dataclass(frozen=True)
class Notification:
    """A stored notification.

    Records are immutable; the store swaps in a copy with ``read=True``
    when a notification is marked read.

    Attributes:
        id: Unique notification identifier.
        type: Notification type.
        priority: Notification priority.
        title: Display title (non-empty).
        message: Display message (non-empty).
        timestamp: Creation time (UTC).
        read: Whether the user has read it.
        action_url: Optional navigation target.
        action_label: Optional label for the navigation target.
        metadata: Informational key/value bag, read-only.
        channels: Channels the notification was routed to at creation.
        category: Preference category used for gating.
        rule_id: Rule that produced the notification, if any.
    """
    id: str
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    timestamp: datetime
    read: bool = False
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    channels: frozenset = field(default_factory=frozenset)
    category: Optional[Category] = None
    rule_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationError("title must not be empty", field="title", value=self.title)
        if not self.message or not self.message.strip():
            raise ValidationError("message must not be empty", field="message", value=self.message)
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "channels", _channel_set(self.channels))
        if self.category is None:
            object.__setattr__(self, "category", TYPE_CATEGORIES[self.type])

    @property
    def is_external(self) -> bool:
        """Whether the notification was routed to any non in-app channel."""
        return any(c != Channel.IN_APP for c in self.channels)


@dataclass
class NotificationCandidate:
    """A notification before it is routed and stored.

    Produced by the alert rule evaluator or by a direct trigger.
    """
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    channels: frozenset = field(default_factory=lambda: frozenset({Channel.IN_APP}))
    metadata: dict[str, Any] = field(default_factory=dict)
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    category: Optional[Category] = None
    rule_id: Optional[str] = None

    def __post_init__(self) -> None:
        self.channels = _channel_set(self.channels)
        if self.category is None:
            self.category = TYPE_CATEGORIES[self.type]

    def validate(self) -> None:
        """Check display invariants.

        Raises:
            ValidationError: If title or message is blank.
        """
        if not self.title or not self.title.strip():
            raise ValidationError("title must not be empty", field="title", value=self.title)
        if not self.message or not self.message.strip():
            raise ValidationError("message must not be empty", field="message", value=self.message)


@dataclass
class NotificationFilter:
    """Pure predicate over stored notifications.

    Attributes:
        types: Only these notification types.
        priorities: Only these priorities.
        min_priority: Only notifications at or above this priority.
        read: True for read only, False for unread only, None for both.
        since: Inclusive lower bound on timestamp.
        until: Inclusive upper bound on timestamp.
        query: Case-insensitive substring of title or message.
        limit: Maximum number of results (newest first).
    """
    types: Optional[frozenset] = None
    priorities: Optional[frozenset] = None
    min_priority: Optional[NotificationPriority] = None
    read: Optional[bool] = None
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    query: Optional[str] = None
    limit: Optional[int] = None

    def __post_init__(self) -> None:
        self.since = as_utc(self.since)
        self.until = as_utc(self.until)

    def matches(self, notification: Notification) -> bool:
        if self.types and notification.type not in self.types:
            return False
        if self.priorities and notification.priority not in self.priorities:
            return False
        if self.min_priority and notification.priority.rank < self.min_priority.rank:
            return False
        if self.read is not None and notification.read != self.read:
            return False
        if self.since and notification.timestamp < self.since:
            return False
        if self.until and notification.timestamp > self.until:
            return False
        if self.query:
            needle = self.query.lower()
            if needle not in notification.title.lower() and needle not in notification.message.lower():
                return False
        return True


@dataclass
class QuietHours:
    """Do Not Disturb window, ``HH:MM`` local clock strings.

    An ``end`` earlier than ``start`` wraps through midnight.
    """
    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"


def _default_channels() -> dict[Channel, bool]:
    return {
        Channel.IN_APP: True,
        Channel.EMAIL: True,
        Channel.PUSH: False,
        Channel.SLACK: False,
    }


def _default_categories() -> dict[Category, bool]:
    return {
        Category.MENTIONS: True,
        Category.COMPETITORS: True,
        Category.ALERTS: True,
        Category.REPORTS: True,
        Category.SENTIMENT: True,
    }


@dataclass
class NotificationPreferences:
    """The user's notification preferences.

    Attributes:
        channels: Channel -> enabled.
        categories: Category -> enabled. GENERAL is always enabled.
        quiet_hours: Do Not Disturb window.
        frequency: External delivery timing.
    """
    channels: dict[Channel, bool] = field(default_factory=_default_channels)
    categories: dict[Category, bool] = field(default_factory=_default_categories)
    quiet_hours: QuietHours = field(default_factory=QuietHours)
    frequency: DigestFrequency = DigestFrequency.REALTIME

    def channel_enabled(self, channel: Channel) -> bool:
        return self.channels.get(channel, False)

    def category_enabled(self, category: Category) -> bool:
        if category == Category.GENERAL:
            return True
        return self.categories.get(category, True)

    @property
    def enabled_channels(self) -> frozenset:
        return frozenset(c for c, on in self.channels.items() if on)

    def copy(self) -> "NotificationPreferences":
        return copy.deepcopy(self)


@dataclass
class AlertCondition:
    """Single condition within an alert rule.

    Attributes:
        type: Aggregate to compute over the sample batch.
        threshold: Comparison threshold (type default if omitted).
        comparison_operator: Comparison (type default if omitted).
        value: Qualifier; a competitor name for competitor_mention,
            otherwise a platform the samples are restricted to.
    """
    type: ConditionType
    threshold: Optional[float] = None
    comparison_operator: Optional[ComparisonOperator] = None
    value: Optional[str] = None

    @property
    def effective_threshold(self) -> float:
        if self.threshold is None:
            return DEFAULT_THRESHOLDS[self.type]
        return float(self.threshold)

    @property
    def effective_operator(self) -> ComparisonOperator:
        return self.comparison_operator or DEFAULT_OPERATORS[self.type]


@dataclass
class AlertRule:
    """Alert rule definition.

    Attributes:
        id: Unique rule identifier.
        name: Human-readable rule name.
        type: Rule family; drives notification type and default priority.
        conditions: Conditions combined with logical AND.
        channels: Requested delivery channels.
        active: Inactive rules are never evaluated.
        last_triggered: Timestamp of the last fire.
        cooldown_seconds: Minimum seconds between fires (0 = none).
        created_at: Creation timestamp.
    """
    id: str = field(default_factory=_new_id)
    name: str = ""
    type: RuleType = RuleType.MENTION_SPIKE
    conditions: list[AlertCondition] = field(default_factory=list)
    channels: frozenset = field(default_factory=lambda: frozenset({Channel.IN_APP}))
    active: bool = True
    last_triggered: Optional[datetime] = None
    cooldown_seconds: int = 0
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.channels = _channel_set(self.channels)

    def is_in_cooldown(self, now: datetime) -> bool:
        if self.last_triggered is None or self.cooldown_seconds <= 0:
            return False
        elapsed = as_utc(now) - as_utc(self.last_triggered)
        return elapsed < timedelta(seconds=self.cooldown_seconds)


@dataclass(frozen=True)
class MetricSample:
    """One observation from the metrics source.

    ``sentiment`` accepts a score in [-1, 1] or one of the labels
    positive/neutral/negative.
    """
    platform: str
    brand_mentioned: bool = False
    sentiment: float = 0.0
    competitors_mentioned: tuple = ()
    position_delta: Optional[int] = None
    citation_count: Optional[int] = None
    timestamp: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        sentiment = self.sentiment
        if isinstance(sentiment, str):
            try:
                sentiment = SENTIMENT_SCORES[sentiment.lower()]
            except KeyError:
                raise ValidationError(
                    f"unknown sentiment label: {sentiment}", field="sentiment", value=sentiment,
                )
        sentiment = float(sentiment)
        if not -1.0 <= sentiment <= 1.0:
            raise ValidationError(
                "sentiment must be between -1 and 1", field="sentiment", value=sentiment,
            )
        object.__setattr__(self, "sentiment", sentiment)
        object.__setattr__(self, "competitors_mentioned", tuple(self.competitors_mentioned))
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))


@dataclass
class DeliveryIntent:
    """Record of handing a notification to a channel adapter.

    Attributes:
        notification_id: Notification being delivered.
        channel: Target channel.
        status: Delivery outcome.
        payload: Channel-specific message body.
        created_at: When the adapter was invoked.
        error: Failure description, if any.
    """
    notification_id: str
    channel: Channel
    status: DeliveryStatus = DeliveryStatus.SENT
    payload: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)
    error: Optional[str] = None
