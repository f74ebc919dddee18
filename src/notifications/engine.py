"""Notification engine facade.

Wires the stores, rule evaluation, routing, deferred delivery and channel
adapters together behind a single object. The engine owns no timers:
``ingest`` and ``tick`` are driven by the caller.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence

import pandas as pd

from src.logging_config.performance import PerformanceTimer, log_performance
from src.notifications.broadcaster import Broadcaster, ObserverLike
from src.notifications.channels import ChannelAdapter, EmailAdapter, PushAdapter, SlackAdapter
from src.notifications.conditions import ConditionBuilder
from src.notifications.config import (
    Channel,
    DEFAULT_RULE_COOLDOWNS,
    EXTERNAL_CHANNELS,
    EngineConfig,
    RULE_PRIORITIES,
    RULE_TEMPLATES,
)
from src.notifications.digest import DigestQueue
from src.notifications.exceptions import NotFoundError
from src.notifications.models import (
    AlertRule,
    DeliveryIntent,
    MetricSample,
    Notification,
    NotificationCandidate,
    NotificationFilter,
    NotificationPreferences,
    _utc_now,
    as_utc,
)
from src.notifications.persistence import EngineSnapshot, JsonSnapshotStore
from src.notifications.preferences import PreferenceStore
from src.notifications.routing import ChannelRouter, RoutingDecision
from src.notifications.rules import AlertRuleEvaluator, RuleRegistry
from src.notifications.store import NotificationStore
from src.notifications.statistics import (
    NotificationStatistics,
    compute_statistics,
    volume_timeline,
)

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Outcome of one ingest cycle."""
    evaluated: int = 0
    fired_rule_ids: list[str] = field(default_factory=list)
    notifications: list[Notification] = field(default_factory=list)
    deliveries: list[DeliveryIntent] = field(default_factory=list)


def default_adapters(config: EngineConfig) -> dict[Channel, ChannelAdapter]:
    """Dry-run adapters for every external channel."""
    return {
        Channel.EMAIL: EmailAdapter(config.email),
        Channel.PUSH: PushAdapter(config.push),
        Channel.SLACK: SlackAdapter(config.slack),
    }


class NotificationEngine:
    """Notification and alerting engine.

    Args:
        config: Engine configuration.
        clock: Returns the current UTC time; injected for tests.
        adapters: External channel adapters keyed by channel. Defaults to
            dry-run email/push/Slack adapters.
        broadcaster: Change broadcaster shared with observers.

    Example:
        engine = NotificationEngine()
        engine.create_rule_from_template("mention_spike", threshold=4)
        engine.subscribe(lambda: print("feed changed"))
        engine.ingest(samples)
        engine.tick()
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        adapters: Optional[Mapping[Channel, ChannelAdapter]] = None,
        broadcaster: Optional[Broadcaster] = None,
    ) -> None:
        self.config = config or EngineConfig()
        self._clock = clock or _utc_now
        self.broadcaster = broadcaster or Broadcaster()
        self.store = NotificationStore(
            broadcaster=self.broadcaster,
            clock=self._clock,
            max_notifications=self.config.max_notifications,
        )
        self.preferences = PreferenceStore()
        if self.config.default_preferences:
            self.preferences.update(self.config.default_preferences)
        self.preferences.on_change(self._on_preferences_changed)
        self.router = ChannelRouter(clock=self._clock, timezone_name=self.config.timezone)
        self.evaluator = AlertRuleEvaluator(clock=self._clock)
        self.rules = RuleRegistry()
        self.digest = DigestQueue(self.config.digest_intervals, clock=self._clock)
        self.adapters: dict[Channel, ChannelAdapter] = dict(
            adapters if adapters is not None else default_adapters(self.config)
        )
        self._cycle_lock = threading.Lock()

    def now(self) -> datetime:
        return self._clock()

    # ── Observers ────────────────────────────────────────────────────

    def subscribe(self, observer: ObserverLike) -> Callable[[], None]:
        """Register a feed observer; returns its unsubscribe function."""
        return self.broadcaster.subscribe(observer)

    # ── Feed reads ───────────────────────────────────────────────────

    def list(self, notification_filter: Optional[NotificationFilter] = None) -> tuple:
        return self.store.list(notification_filter)

    def get(self, notification_id: str) -> Notification:
        """Raises NotFoundError for an unknown id."""
        return self.store.get(notification_id)

    def unread_count(self) -> int:
        return self.store.unread_count()

    def get_statistics(self) -> NotificationStatistics:
        return compute_statistics(self.store.list())

    def get_timeline(self, freq: str = "D") -> pd.DataFrame:
        return volume_timeline(self.store.list(), freq=freq)

    # ── Feed writes ──────────────────────────────────────────────────

    def mark_read(self, notification_id: str) -> bool:
        return self.store.mark_read(notification_id)

    def mark_read_many(self, notification_ids: Iterable[str]) -> int:
        return self.store.mark_read_many(notification_ids)

    def mark_all_read(self) -> int:
        return self.store.mark_all_read()

    def delete_notification(self, notification_id: str) -> bool:
        """Delete a notification and any delivery still pending for it."""
        removed = self.store.delete(notification_id)
        if removed:
            self.digest.cancel(notification_id)
        return removed

    def clear_notifications(self) -> int:
        count = self.store.clear()
        self.digest.clear()
        return count

    # ── Preferences ──────────────────────────────────────────────────

    def get_preferences(self) -> NotificationPreferences:
        return self.preferences.get()

    def update_preferences(self, partial: Mapping[str, Any]) -> NotificationPreferences:
        """Deep-merge a partial preference update.

        Raises:
            ValidationError: If the update is malformed; nothing is applied.
        """
        return self.preferences.update(partial)

    def _on_preferences_changed(self, preferences: NotificationPreferences) -> None:
        pending = len(self.digest)
        if pending:
            logger.info("Preferences changed; %d deferred deliveries re-route on next tick", pending)

    # ── Rules ────────────────────────────────────────────────────────

    def add_rule(self, rule: AlertRule) -> AlertRule:
        """Register a rule.

        Raises:
            ValidationError: If the rule is malformed.
        """
        return self.rules.add(rule)

    def create_rule_from_template(
        self,
        template_name: str,
        name: Optional[str] = None,
        threshold: Optional[float] = None,
        channels: Optional[Iterable[Channel]] = None,
        cooldown_seconds: Optional[int] = None,
    ) -> AlertRule:
        """Create and register a rule from RULE_TEMPLATES.

        Raises:
            NotFoundError: If the template does not exist.
        """
        template = RULE_TEMPLATES.get(template_name)
        if template is None:
            raise NotFoundError("template", template_name)

        rule_type = template["rule_type"]
        if cooldown_seconds is None:
            cooldown_seconds = DEFAULT_RULE_COOLDOWNS[RULE_PRIORITIES[rule_type]]
        rule = AlertRule(
            name=name or template["name"],
            type=rule_type,
            conditions=ConditionBuilder.from_template(template_name, threshold),
            channels=frozenset(channels) if channels is not None else frozenset(template["channels"]),
            cooldown_seconds=cooldown_seconds,
            created_at=self._clock(),
        )
        return self.rules.add(rule)

    def get_rule(self, rule_id: str) -> AlertRule:
        """Raises NotFoundError for an unknown id."""
        return self.rules.get(rule_id)

    def list_rules(self, active_only: bool = False) -> list[AlertRule]:
        return self.rules.list_rules(active_only=active_only)

    def set_rule_active(self, rule_id: str, active: bool) -> AlertRule:
        return self.rules.set_active(rule_id, active)

    def remove_rule(self, rule_id: str) -> bool:
        return self.rules.remove(rule_id)

    # ── Entry points ─────────────────────────────────────────────────

    @log_performance()
    def ingest(self, samples: Sequence[MetricSample], now: Optional[datetime] = None) -> IngestResult:
        """Evaluate every due rule against a sample batch.

        Rules are evaluated in parallel; fired candidates are then routed,
        stored and dispatched one at a time in rule creation order.

        Args:
            samples: Metric samples from the metrics source.
            now: Evaluation time; defaults to the injected clock.

        Returns:
            IngestResult.
        """
        now = as_utc(now) or self._clock()
        result = IngestResult()

        with self._cycle_lock:
            rules = self.rules.due(now)
            result.evaluated = len(rules)
            if not rules:
                return result

            workers = max(1, min(len(rules), self.config.max_parallel_rules))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self.evaluator.evaluate, rule, samples, now): rule
                    for rule in rules
                }
                fired = [(futures[f], f.result()) for f in futures]

            for rule, candidate in fired:
                if candidate is None:
                    continue
                result.fired_rule_ids.append(rule.id)
                notification, intents = self._accept(candidate, now)
                result.notifications.append(notification)
                result.deliveries.extend(intents)

        logger.info(
            "Ingested %d samples: %d rules evaluated, %d fired",
            len(samples), result.evaluated, len(result.fired_rule_ids),
        )
        return result

    def push(self, candidate: NotificationCandidate, now: Optional[datetime] = None) -> Notification:
        """Route and store a candidate from a direct trigger.

        Raises:
            ValidationError: If title or message is blank.
            StoreClosedError: If the engine has been closed.
        """
        notification, _ = self._accept(candidate, as_utc(now) or self._clock())
        return notification

    @log_performance()
    def tick(self, now: Optional[datetime] = None) -> list[DeliveryIntent]:
        """Release deferred deliveries that are due.

        Pending entries are re-routed against the live preferences.

        Returns:
            Delivery intents produced by this tick.
        """
        now = as_utc(now) or self._clock()
        intents: list[DeliveryIntent] = []
        with self._cycle_lock:
            released = self.digest.release(
                self.preferences.get(), self.router, self.store.get, now,
            )
            for item in released:
                intents.extend(self._dispatch(item.notification, item.channels))
        return intents

    def _accept(
        self,
        candidate: NotificationCandidate,
        now: datetime,
    ) -> tuple[Notification, list[DeliveryIntent]]:
        decision = self.router.route(candidate, self.preferences.get(), now)
        candidate.channels = decision.channels | decision.held
        notification = self.store.create(candidate)
        intents = self._dispatch(notification, decision.immediate)
        self._defer(notification, decision, now)
        return notification, intents

    def _dispatch(self, notification: Notification, channels: frozenset) -> list[DeliveryIntent]:
        intents = []
        for channel in sorted(channels & EXTERNAL_CHANNELS, key=lambda c: c.value):
            adapter = self.adapters.get(channel)
            if adapter is None:
                logger.warning("No adapter configured for %s; skipping %s", channel.value, notification.id)
                continue
            intents.append(adapter.deliver(notification))
        return intents

    def _defer(self, notification: Notification, decision: RoutingDecision, now: datetime) -> None:
        if decision.held:
            self.digest.enqueue(notification.id, decision.held, held=True, now=now)
        if decision.digest:
            self.digest.enqueue(notification.id, decision.channels, held=False, now=now)

    # ── Persistence ──────────────────────────────────────────────────

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            notifications=list(self.store.list()),
            preferences=self.preferences.get(),
            rules=self.rules.list_rules(),
        )

    def load_snapshot(self, snapshot: EngineSnapshot) -> None:
        """Replace feed, preferences and rules; pending deliveries are dropped.

        Raises:
            ValidationError: If the preferences or a rule are malformed.
        """
        self.preferences.replace(snapshot.preferences)
        self.rules.replace(snapshot.rules)
        self.digest.clear()
        self.store.restore(snapshot.notifications)
        logger.info(
            "Loaded snapshot: %d notifications, %d rules",
            len(snapshot.notifications), len(snapshot.rules),
        )

    def save(self, path: Optional[str] = None) -> bool:
        """Write a snapshot to ``path`` or the configured snapshot path.

        Returns:
            False when no path is configured.
        """
        path = path or self.config.snapshot_path
        if not path:
            return False
        with PerformanceTimer("snapshot_save"):
            JsonSnapshotStore(path).save(self.snapshot())
        return True

    def load(self, path: Optional[str] = None) -> bool:
        """Load a snapshot from ``path`` or the configured snapshot path.

        Returns:
            True if a snapshot file was found and loaded.
        """
        path = path or self.config.snapshot_path
        if not path:
            return False
        snapshot = JsonSnapshotStore(path).load()
        if snapshot is None:
            return False
        self.load_snapshot(snapshot)
        return True

    def close(self) -> None:
        """Stop accepting notifications and shut down observer workers."""
        self.store.close()
        self.broadcaster.close()
