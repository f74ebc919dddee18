"""Snapshot persistence.

Serializes the notification feed, preferences and alert rules to a
plain dict with camelCase keys, and stores it as a JSON file.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from src.notifications.config import (
    Category,
    Channel,
    ComparisonOperator,
    ConditionType,
    DigestFrequency,
    NotificationPriority,
    NotificationType,
    RuleType,
)
from src.notifications.exceptions import ValidationError
from src.notifications.models import (
    AlertCondition,
    AlertRule,
    Notification,
    NotificationPreferences,
    QuietHours,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass
class EngineSnapshot:
    """Everything needed to rebuild an engine's state."""
    notifications: list[Notification] = field(default_factory=list)
    preferences: NotificationPreferences = field(default_factory=NotificationPreferences)
    rules: list[AlertRule] = field(default_factory=list)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _channels(channels: frozenset) -> list[str]:
    return sorted(c.value for c in channels)


# ── Encoding ─────────────────────────────────────────────────────────


def notification_to_dict(n: Notification) -> dict[str, Any]:
    return {
        "id": n.id,
        "type": n.type.value,
        "priority": n.priority.value,
        "title": n.title,
        "message": n.message,
        "timestamp": _iso(n.timestamp),
        "read": n.read,
        "actionUrl": n.action_url,
        "actionLabel": n.action_label,
        "metadata": dict(n.metadata),
        "channels": _channels(n.channels),
        "category": n.category.value,
        "ruleId": n.rule_id,
    }


def preferences_to_dict(p: NotificationPreferences) -> dict[str, Any]:
    return {
        "channels": {c.value: on for c, on in p.channels.items()},
        "categories": {c.value: on for c, on in p.categories.items()},
        "quietHours": {
            "enabled": p.quiet_hours.enabled,
            "start": p.quiet_hours.start,
            "end": p.quiet_hours.end,
        },
        "frequency": p.frequency.value,
    }


def rule_to_dict(rule: AlertRule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "type": rule.type.value,
        "conditions": [
            {
                "type": c.type.value,
                "threshold": c.threshold,
                "comparisonOperator": c.comparison_operator.value if c.comparison_operator else None,
                "value": c.value,
            }
            for c in rule.conditions
        ],
        "channels": _channels(rule.channels),
        "active": rule.active,
        "lastTriggered": _iso(rule.last_triggered),
        "cooldownSeconds": rule.cooldown_seconds,
        "createdAt": _iso(rule.created_at),
    }


def snapshot_to_dict(snapshot: EngineSnapshot) -> dict[str, Any]:
    """Encode a snapshot with canonical camelCase keys."""
    return {
        "version": SNAPSHOT_VERSION,
        "notifications": [notification_to_dict(n) for n in snapshot.notifications],
        "preferences": preferences_to_dict(snapshot.preferences),
        "rules": [rule_to_dict(r) for r in snapshot.rules],
    }


# ── Decoding ─────────────────────────────────────────────────────────


def notification_from_dict(data: dict[str, Any]) -> Notification:
    return Notification(
        id=data["id"],
        type=NotificationType(data["type"]),
        priority=NotificationPriority(data["priority"]),
        title=data["title"],
        message=data["message"],
        timestamp=_parse_dt(data["timestamp"]),
        read=bool(data.get("read", False)),
        action_url=data.get("actionUrl"),
        action_label=data.get("actionLabel"),
        metadata=data.get("metadata") or {},
        channels=frozenset(Channel(c) for c in data.get("channels", [])),
        category=Category(data["category"]) if data.get("category") else None,
        rule_id=data.get("ruleId"),
    )


def preferences_from_dict(data: dict[str, Any]) -> NotificationPreferences:
    prefs = NotificationPreferences()
    for key, on in (data.get("channels") or {}).items():
        prefs.channels[Channel(key)] = bool(on)
    for key, on in (data.get("categories") or {}).items():
        prefs.categories[Category(key)] = bool(on)
    quiet = data.get("quietHours") or {}
    prefs.quiet_hours = QuietHours(
        enabled=bool(quiet.get("enabled", False)),
        start=quiet.get("start", "22:00"),
        end=quiet.get("end", "08:00"),
    )
    prefs.frequency = DigestFrequency(data.get("frequency", DigestFrequency.REALTIME.value))
    return prefs


def rule_from_dict(data: dict[str, Any]) -> AlertRule:
    conditions = [
        AlertCondition(
            type=ConditionType(c["type"]),
            threshold=c.get("threshold"),
            comparison_operator=(
                ComparisonOperator(c["comparisonOperator"]) if c.get("comparisonOperator") else None
            ),
            value=c.get("value"),
        )
        for c in data.get("conditions", [])
    ]
    rule = AlertRule(
        id=data["id"],
        name=data["name"],
        type=RuleType(data["type"]),
        conditions=conditions,
        channels=frozenset(Channel(c) for c in data.get("channels", [])),
        active=bool(data.get("active", True)),
        last_triggered=_parse_dt(data.get("lastTriggered")),
        cooldown_seconds=int(data.get("cooldownSeconds", 0)),
    )
    created_at = _parse_dt(data.get("createdAt"))
    if created_at:
        rule.created_at = created_at
    return rule


def snapshot_from_dict(data: dict[str, Any]) -> EngineSnapshot:
    """Decode a snapshot dict.

    Raises:
        ValidationError: If the document is malformed.
    """
    if not isinstance(data, dict):
        raise ValidationError("snapshot must be an object", value=data)
    try:
        return EngineSnapshot(
            notifications=[notification_from_dict(n) for n in data.get("notifications", [])],
            preferences=preferences_from_dict(data.get("preferences") or {}),
            rules=[rule_from_dict(r) for r in data.get("rules", [])],
        )
    except ValidationError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ValidationError(f"malformed snapshot: {e}", field="snapshot") from e


class JsonSnapshotStore:
    """Stores engine snapshots in a single JSON file.

    Writes are atomic (write to .tmp, then rename).

    Args:
        path: Snapshot file location; parent directories are created.

    Example:
        store = JsonSnapshotStore("/tmp/mentionwatch/snapshot.json")
        store.save(engine.snapshot())
        engine.load_snapshot(store.load())
    """

    def __init__(self, path: str) -> None:
        self._lock = threading.Lock()
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, snapshot: EngineSnapshot) -> None:
        """Atomic write: write to .tmp then rename."""
        payload = snapshot_to_dict(snapshot)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_file, "w") as f:
                json.dump(payload, f, indent=2)
            tmp_file.replace(self.path)
        logger.info(
            "Snapshot saved to %s (%d notifications, %d rules)",
            self.path, len(snapshot.notifications), len(snapshot.rules),
        )

    def load(self) -> Optional[EngineSnapshot]:
        """Load the snapshot, or None if no file exists.

        Raises:
            ValidationError: If the file is not a valid snapshot.
        """
        with self._lock:
            if not self.path.exists():
                return None
            try:
                with open(self.path) as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValidationError(f"corrupt snapshot file: {e}", field="snapshot") from e
        return snapshot_from_dict(data)
