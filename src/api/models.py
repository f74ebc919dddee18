"""API request/response models.

Pydantic schemas for all API endpoints.
"""

from datetime import datetime
from typing import Annotated, Any, Optional, Union

from pydantic import BaseModel, Field

from src.notifications import (
    AlertCondition,
    AlertRule,
    Channel,
    ComparisonOperator,
    ConditionType,
    DeliveryIntent,
    MetricSample,
    Notification,
    NotificationCandidate,
    NotificationPreferences,
    NotificationPriority,
    NotificationStatistics,
    NotificationType,
    RuleType,
)


# ─── Common ──────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    components: dict[str, Any] = Field(default_factory=dict)


class CountResponse(BaseModel):
    """Number of records a bulk operation changed."""

    count: int


class ChangedResponse(BaseModel):
    """Whether a single-record operation changed anything."""

    changed: bool


class DeliveryResponse(BaseModel):
    notification_id: str
    channel: Channel
    status: str
    error: Optional[str] = None

    @classmethod
    def from_intent(cls, intent: DeliveryIntent) -> "DeliveryResponse":
        return cls(
            notification_id=intent.notification_id,
            channel=intent.channel,
            status=intent.status.value,
            error=intent.error,
        )


# ─── Notifications ───────────────────────────────────────────────────────


class NotificationResponse(BaseModel):
    """A stored notification."""

    id: str
    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    timestamp: datetime
    read: bool
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    channels: list[Channel] = Field(default_factory=list)
    category: str
    rule_id: Optional[str] = None

    @classmethod
    def from_record(cls, n: Notification) -> "NotificationResponse":
        return cls(
            id=n.id,
            type=n.type,
            priority=n.priority,
            title=n.title,
            message=n.message,
            timestamp=n.timestamp,
            read=n.read,
            action_url=n.action_url,
            action_label=n.action_label,
            metadata=dict(n.metadata),
            channels=sorted(n.channels, key=lambda c: c.value),
            category=n.category.value,
            rule_id=n.rule_id,
        )


class NotificationListResponse(BaseModel):
    """One page of the feed; ``total`` counts every match before the limit."""

    notifications: list[NotificationResponse]
    total: int
    unread: int


class CreateNotificationRequest(BaseModel):
    """Direct trigger of a notification."""

    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=2000)
    channels: list[Channel] = Field(default_factory=lambda: [Channel.IN_APP])
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def to_candidate(self) -> NotificationCandidate:
        return NotificationCandidate(
            type=self.type,
            priority=self.priority,
            title=self.title,
            message=self.message,
            channels=frozenset(self.channels),
            metadata=dict(self.metadata),
            action_url=self.action_url,
            action_label=self.action_label,
        )


class BulkIdsRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class StatisticsResponse(BaseModel):
    total: int
    unread: int
    read: int
    by_type: dict[str, int]
    by_priority: dict[str, int]
    by_category: dict[str, int]
    critical_unread: int

    @classmethod
    def from_stats(cls, stats: NotificationStatistics) -> "StatisticsResponse":
        return cls(
            total=stats.total,
            unread=stats.unread,
            read=stats.read,
            by_type={k.value: v for k, v in stats.by_type.items()},
            by_priority={k.value: v for k, v in stats.by_priority.items()},
            by_category={k.value: v for k, v in stats.by_category.items()},
            critical_unread=stats.critical_unread,
        )


class TimelinePoint(BaseModel):
    period: datetime
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0
    total: int = 0


class TimelineResponse(BaseModel):
    freq: str
    points: list[TimelinePoint]


# ─── Preferences ─────────────────────────────────────────────────────────


class QuietHoursModel(BaseModel):
    enabled: bool
    start: str
    end: str


class PreferencesResponse(BaseModel):
    channels: dict[str, bool]
    categories: dict[str, bool]
    quiet_hours: QuietHoursModel
    frequency: str

    @classmethod
    def from_preferences(cls, p: NotificationPreferences) -> "PreferencesResponse":
        return cls(
            channels={c.value: on for c, on in p.channels.items()},
            categories={c.value: on for c, on in p.categories.items()},
            quiet_hours=QuietHoursModel(
                enabled=p.quiet_hours.enabled,
                start=p.quiet_hours.start,
                end=p.quiet_hours.end,
            ),
            frequency=p.frequency.value,
        )


# ─── Rules ───────────────────────────────────────────────────────────────


class ConditionModel(BaseModel):
    type: ConditionType
    threshold: Optional[float] = None
    comparison_operator: Optional[ComparisonOperator] = None
    value: Optional[str] = None

    def to_condition(self) -> AlertCondition:
        return AlertCondition(
            type=self.type,
            threshold=self.threshold,
            comparison_operator=self.comparison_operator,
            value=self.value,
        )

    @classmethod
    def from_condition(cls, c: AlertCondition) -> "ConditionModel":
        return cls(
            type=c.type,
            threshold=c.threshold,
            comparison_operator=c.comparison_operator,
            value=c.value,
        )


class CreateRuleRequest(BaseModel):
    name: str = Field(..., max_length=120)
    type: RuleType
    conditions: list[ConditionModel]
    channels: list[Channel] = Field(default_factory=lambda: [Channel.IN_APP])
    active: bool = True
    cooldown_seconds: int = 0

    def to_rule(self, created_at: datetime) -> AlertRule:
        return AlertRule(
            name=self.name,
            type=self.type,
            conditions=[c.to_condition() for c in self.conditions],
            channels=frozenset(self.channels),
            active=self.active,
            cooldown_seconds=self.cooldown_seconds,
            created_at=created_at,
        )


class TemplateRuleRequest(BaseModel):
    template: str
    name: Optional[str] = None
    threshold: Optional[float] = None
    channels: Optional[list[Channel]] = None
    cooldown_seconds: Optional[int] = Field(default=None, ge=0)


class ToggleRuleRequest(BaseModel):
    # None flips the current state
    active: Optional[bool] = None


class RuleResponse(BaseModel):
    id: str
    name: str
    type: RuleType
    conditions: list[ConditionModel]
    channels: list[Channel]
    active: bool
    last_triggered: Optional[datetime] = None
    cooldown_seconds: int
    created_at: datetime

    @classmethod
    def from_rule(cls, rule: AlertRule) -> "RuleResponse":
        return cls(
            id=rule.id,
            name=rule.name,
            type=rule.type,
            conditions=[ConditionModel.from_condition(c) for c in rule.conditions],
            channels=sorted(rule.channels, key=lambda c: c.value),
            active=rule.active,
            last_triggered=rule.last_triggered,
            cooldown_seconds=rule.cooldown_seconds,
            created_at=rule.created_at,
        )


class TemplateResponse(BaseModel):
    key: str
    name: str
    description: str
    rule_type: RuleType
    conditions: list[ConditionModel]
    channels: list[Channel]


# ─── Samples / tick ──────────────────────────────────────────────────────


class SampleModel(BaseModel):
    """One metric sample; sentiment is a score or a positive/neutral/negative label."""

    platform: str
    brand_mentioned: bool = False
    sentiment: Union[Annotated[float, Field(ge=-1.0, le=1.0)], str] = 0.0
    competitors_mentioned: list[str] = Field(default_factory=list)
    position_delta: Optional[int] = None
    citation_count: Optional[int] = Field(default=None, ge=0)
    timestamp: Optional[datetime] = None

    def to_sample(self, default_time: datetime) -> MetricSample:
        return MetricSample(
            platform=self.platform,
            brand_mentioned=self.brand_mentioned,
            sentiment=self.sentiment,
            competitors_mentioned=tuple(self.competitors_mentioned),
            position_delta=self.position_delta,
            citation_count=self.citation_count,
            timestamp=self.timestamp or default_time,
        )


class IngestRequest(BaseModel):
    samples: list[SampleModel]


class IngestResponse(BaseModel):
    evaluated: int
    fired_rule_ids: list[str]
    notifications: list[NotificationResponse]
    deliveries: list[DeliveryResponse]


class TickRequest(BaseModel):
    now: Optional[datetime] = None


class TickResponse(BaseModel):
    deliveries: list[DeliveryResponse]
    pending: int
