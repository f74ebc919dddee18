"""MentionWatch notification and alerting engine.

Ingests metric samples, evaluates alert rules against them, routes the
resulting notifications to delivery channels according to the user's
preferences, and keeps a newest-first notification feed with read state:
- Alert rules with AND-combined conditions and cool-downs
- Channel, category, quiet hours and digest routing
- Email, push and Slack adapters (dry-run unless given a transport)
- Change broadcasting to any number of observers
- Feed statistics and JSON snapshots

Example:
    from src.notifications import MetricSample, NotificationEngine

    engine = NotificationEngine()
    engine.create_rule_from_template("mention_spike", threshold=4)
    engine.ingest([MetricSample(platform="chatgpt", brand_mentioned=True)])
    print(engine.get_statistics().unread)
"""

from src.notifications.config import (
    Category,
    Channel,
    ComparisonOperator,
    ConditionType,
    DeliveryStatus,
    DigestFrequency,
    NotificationPriority,
    NotificationType,
    RuleType,
    EmailConfig,
    PushConfig,
    SlackConfig,
    EngineConfig,
    DEFAULT_ENGINE_CONFIG,
    RULE_TEMPLATES,
)
from src.notifications.exceptions import (
    NotificationError,
    ValidationError,
    NotFoundError,
    AdapterDeliveryError,
    StoreClosedError,
)
from src.notifications.models import (
    Notification,
    NotificationCandidate,
    NotificationFilter,
    QuietHours,
    NotificationPreferences,
    AlertCondition,
    AlertRule,
    MetricSample,
    DeliveryIntent,
)
from src.notifications.broadcaster import Broadcaster, Observer
from src.notifications.store import NotificationStore
from src.notifications.preferences import PreferenceStore, is_in_quiet_hours, parse_clock
from src.notifications.conditions import ConditionBuilder, ConditionEvaluator, ConditionResult
from src.notifications.rules import AlertRuleEvaluator, RuleRegistry
from src.notifications.routing import ChannelRouter, RoutingDecision, category_of
from src.notifications.digest import DigestQueue, PendingDelivery
from src.notifications.channels import ChannelAdapter, EmailAdapter, PushAdapter, SlackAdapter
from src.notifications.statistics import (
    NotificationStatistics,
    compute_statistics,
    volume_timeline,
)
from src.notifications.persistence import (
    EngineSnapshot,
    JsonSnapshotStore,
    snapshot_from_dict,
    snapshot_to_dict,
)
from src.notifications.engine import IngestResult, NotificationEngine

__all__ = [
    # Config
    "Category",
    "Channel",
    "ComparisonOperator",
    "ConditionType",
    "DeliveryStatus",
    "DigestFrequency",
    "NotificationPriority",
    "NotificationType",
    "RuleType",
    "EmailConfig",
    "PushConfig",
    "SlackConfig",
    "EngineConfig",
    "DEFAULT_ENGINE_CONFIG",
    "RULE_TEMPLATES",
    # Errors
    "NotificationError",
    "ValidationError",
    "NotFoundError",
    "AdapterDeliveryError",
    "StoreClosedError",
    # Models
    "Notification",
    "NotificationCandidate",
    "NotificationFilter",
    "QuietHours",
    "NotificationPreferences",
    "AlertCondition",
    "AlertRule",
    "MetricSample",
    "DeliveryIntent",
    # Components
    "Broadcaster",
    "Observer",
    "NotificationStore",
    "PreferenceStore",
    "is_in_quiet_hours",
    "parse_clock",
    "ConditionBuilder",
    "ConditionEvaluator",
    "ConditionResult",
    "AlertRuleEvaluator",
    "RuleRegistry",
    "ChannelRouter",
    "RoutingDecision",
    "category_of",
    "DigestQueue",
    "PendingDelivery",
    "ChannelAdapter",
    "EmailAdapter",
    "PushAdapter",
    "SlackAdapter",
    "NotificationStatistics",
    "compute_statistics",
    "volume_timeline",
    "EngineSnapshot",
    "JsonSnapshotStore",
    "snapshot_from_dict",
    "snapshot_to_dict",
    # Engine
    "IngestResult",
    "NotificationEngine",
]
