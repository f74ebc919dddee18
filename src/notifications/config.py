"""Notification engine configuration.

Enums, constants, and configuration dataclasses for the notification
and alerting engine.
"""

import enum
from dataclasses import dataclass, field
from typing import Optional


class NotificationType(enum.Enum):
    """Kinds of notifications shown in the feed."""
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"
    MENTION = "mention"
    COMPETITOR = "competitor"
    ALERT = "alert"
    REPORT = "report"


class NotificationPriority(enum.Enum):
    """Notification priority levels, totally ordered by rank."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]

    def escalate(self) -> "NotificationPriority":
        """Return the next priority level up (critical stays critical)."""
        ordered = sorted(NotificationPriority, key=lambda p: p.rank)
        return ordered[min(self.rank + 1, len(ordered) - 1)]

    def __lt__(self, other: "NotificationPriority") -> bool:
        if not isinstance(other, NotificationPriority):
            return NotImplemented
        return self.rank < other.rank


_PRIORITY_RANKS = {
    NotificationPriority.LOW: 0,
    NotificationPriority.MEDIUM: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.CRITICAL: 3,
}


class Channel(enum.Enum):
    """Delivery surfaces."""
    IN_APP = "inapp"
    EMAIL = "email"
    PUSH = "push"
    SLACK = "slack"


EXTERNAL_CHANNELS = frozenset({Channel.EMAIL, Channel.PUSH, Channel.SLACK})


class Category(enum.Enum):
    """Coarse notification groupings used for preference gating."""
    MENTIONS = "mentions"
    COMPETITORS = "competitors"
    ALERTS = "alerts"
    REPORTS = "reports"
    SENTIMENT = "sentiment"
    GENERAL = "general"  # not user-toggleable


TOGGLEABLE_CATEGORIES = (
    Category.MENTIONS,
    Category.COMPETITORS,
    Category.ALERTS,
    Category.REPORTS,
    Category.SENTIMENT,
)


class DigestFrequency(enum.Enum):
    """External delivery timing."""
    REALTIME = "realtime"
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"


class RuleType(enum.Enum):
    """Alert rule families."""
    MENTION_SPIKE = "mention_spike"
    SENTIMENT_DROP = "sentiment_drop"
    COMPETITOR_ACTIVITY = "competitor_activity"
    KEYWORD_RANKING = "keyword_ranking"


class ConditionType(enum.Enum):
    """Aggregates a rule condition can be evaluated over."""
    MENTION = "mention"
    SENTIMENT_DROP = "sentiment_drop"
    COMPETITOR_MENTION = "competitor_mention"
    POSITION_CHANGE = "position_change"
    NEW_CITATION = "new_citation"


class ComparisonOperator(enum.Enum):
    """Condition comparison operators."""
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="
    EQ = "=="
    NEQ = "!="


class DeliveryStatus(enum.Enum):
    """Outcome recorded on a delivery intent."""
    SENT = "sent"
    FAILED = "failed"
    DEFERRED = "deferred"
    CANCELLED = "cancelled"


# Notification type -> preference category
TYPE_CATEGORIES: dict[NotificationType, Category] = {
    NotificationType.MENTION: Category.MENTIONS,
    NotificationType.COMPETITOR: Category.COMPETITORS,
    NotificationType.ALERT: Category.ALERTS,
    NotificationType.REPORT: Category.REPORTS,
    NotificationType.SUCCESS: Category.GENERAL,
    NotificationType.WARNING: Category.GENERAL,
    NotificationType.ERROR: Category.GENERAL,
    NotificationType.INFO: Category.GENERAL,
}

# Rule type -> notification type of the synthesized candidate
RULE_NOTIFICATION_TYPES: dict[RuleType, NotificationType] = {
    RuleType.MENTION_SPIKE: NotificationType.MENTION,
    RuleType.SENTIMENT_DROP: NotificationType.ALERT,
    RuleType.COMPETITOR_ACTIVITY: NotificationType.COMPETITOR,
    RuleType.KEYWORD_RANKING: NotificationType.ALERT,
}

# Rule type -> default priority before escalation
RULE_PRIORITIES: dict[RuleType, NotificationPriority] = {
    RuleType.MENTION_SPIKE: NotificationPriority.HIGH,
    RuleType.SENTIMENT_DROP: NotificationPriority.MEDIUM,
    RuleType.COMPETITOR_ACTIVITY: NotificationPriority.MEDIUM,
    RuleType.KEYWORD_RANKING: NotificationPriority.LOW,
}

# Suggested cool-down periods for rules created from templates (seconds)
DEFAULT_RULE_COOLDOWNS: dict[NotificationPriority, int] = {
    NotificationPriority.LOW: 3600,       # 1 hour
    NotificationPriority.MEDIUM: 1800,    # 30 minutes
    NotificationPriority.HIGH: 300,       # 5 minutes
    NotificationPriority.CRITICAL: 60,    # 1 minute
}

# Default comparison per condition type, used when a condition omits one
DEFAULT_OPERATORS: dict[ConditionType, ComparisonOperator] = {
    ConditionType.MENTION: ComparisonOperator.GTE,
    ConditionType.SENTIMENT_DROP: ComparisonOperator.LT,
    ConditionType.COMPETITOR_MENTION: ComparisonOperator.GT,
    ConditionType.POSITION_CHANGE: ComparisonOperator.GT,
    ConditionType.NEW_CITATION: ComparisonOperator.GT,
}

DEFAULT_THRESHOLDS: dict[ConditionType, float] = {
    ConditionType.MENTION: 1.0,
    ConditionType.SENTIMENT_DROP: -0.3,
    ConditionType.COMPETITOR_MENTION: 0.0,
    ConditionType.POSITION_CHANGE: 0.0,
    ConditionType.NEW_CITATION: 0.0,
}

# A sample's position moved "significantly" when |delta| exceeds this
POSITION_DELTA_LIMIT = 1

# Sentiment labels accepted from metric sources
SENTIMENT_SCORES: dict[str, float] = {
    "positive": 1.0,
    "neutral": 0.0,
    "negative": -1.0,
}

# Escalate priority when sentiment sits this far below its threshold
SENTIMENT_ESCALATION_MARGIN = 0.5

# Seconds between digest flushes
DIGEST_INTERVALS: dict[DigestFrequency, int] = {
    DigestFrequency.REALTIME: 0,
    DigestFrequency.HOURLY: 3600,
    DigestFrequency.DAILY: 86400,
    DigestFrequency.WEEKLY: 604800,
}


# Pre-built alert rules
RULE_TEMPLATES: dict[str, dict] = {
    "mention_spike": {
        "name": "Mention Volume Spike",
        "description": "Brand mentioned in at least N answers in a batch",
        "rule_type": RuleType.MENTION_SPIKE,
        "conditions": [(ConditionType.MENTION, 3.0)],
        "channels": [Channel.IN_APP, Channel.EMAIL, Channel.SLACK],
    },
    "sentiment_drop": {
        "name": "Sentiment Drop Alert",
        "description": "Average sentiment falls below threshold",
        "rule_type": RuleType.SENTIMENT_DROP,
        "conditions": [(ConditionType.SENTIMENT_DROP, -0.3)],
        "channels": [Channel.IN_APP, Channel.EMAIL],
    },
    "competitor_activity": {
        "name": "Competitor Activity",
        "description": "Any competitor appears alongside the brand",
        "rule_type": RuleType.COMPETITOR_ACTIVITY,
        "conditions": [(ConditionType.COMPETITOR_MENTION, 0.0)],
        "channels": [Channel.IN_APP, Channel.PUSH],
    },
    "ranking_shift": {
        "name": "Keyword Ranking Shift",
        "description": "Answer position moved by more than one place",
        "rule_type": RuleType.KEYWORD_RANKING,
        "conditions": [(ConditionType.POSITION_CHANGE, 0.0)],
        "channels": [Channel.IN_APP],
    },
    "new_citations": {
        "name": "New Citations",
        "description": "Sources citing the brand appeared",
        "rule_type": RuleType.KEYWORD_RANKING,
        "conditions": [(ConditionType.NEW_CITATION, 0.0)],
        "channels": [Channel.IN_APP, Channel.EMAIL],
    },
    "prompt_watch": {
        "name": "Prompt Watch",
        "description": "Brand mentioned while sentiment is slipping",
        "rule_type": RuleType.MENTION_SPIKE,
        "conditions": [
            (ConditionType.MENTION, 1.0),
            (ConditionType.SENTIMENT_DROP, -0.3),
        ],
        "channels": [Channel.IN_APP, Channel.EMAIL],
    },
}


@dataclass
class EmailConfig:
    """Email adapter configuration."""
    recipient: str = ""
    sender_name: str = "MentionWatch Alerts"
    subject_prefix: str = "[MentionWatch]"


@dataclass
class PushConfig:
    """Push adapter configuration."""
    device_tokens: list[str] = field(default_factory=list)
    max_body_length: int = 178


@dataclass
class SlackConfig:
    """Slack adapter configuration."""
    webhook_url: str = ""
    channel: str = ""


@dataclass
class EngineConfig:
    """Top-level engine configuration."""
    max_notifications: int = 500
    max_parallel_rules: int = 4
    digest_intervals: dict[DigestFrequency, int] = field(
        default_factory=lambda: dict(DIGEST_INTERVALS)
    )
    timezone: str = "UTC"
    # Partial preference update applied on engine construction
    default_preferences: Optional[dict] = None
    snapshot_path: Optional[str] = None
    email: EmailConfig = field(default_factory=EmailConfig)
    push: PushConfig = field(default_factory=PushConfig)
    slack: SlackConfig = field(default_factory=SlackConfig)


DEFAULT_ENGINE_CONFIG = EngineConfig()
