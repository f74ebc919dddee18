"""Tests for the notification engine."""

from datetime import datetime, timedelta, timezone

import pytest

from src.notifications import (
    AlertCondition,
    AlertRule,
    Channel,
    ConditionType,
    DeliveryStatus,
    EngineConfig,
    MetricSample,
    NotFoundError,
    NotificationCandidate,
    NotificationEngine,
    NotificationFilter,
    NotificationPriority,
    NotificationType,
    RuleType,
    StoreClosedError,
    ValidationError,
)


def _samples(mentioned, total=None):
    total = total if total is not None else mentioned
    return [
        MetricSample(platform="chatgpt", brand_mentioned=i < mentioned)
        for i in range(total)
    ]


def _candidate(priority=NotificationPriority.MEDIUM, type=NotificationType.MENTION, channels=None):
    return NotificationCandidate(
        type=type,
        priority=priority,
        title="Brand mentioned",
        message="Mentioned in 3 ChatGPT answers",
        channels=channels or [Channel.IN_APP, Channel.EMAIL],
    )


class TestPush:
    """Direct triggers."""

    def test_push_stores_and_delivers(self, engine, adapters):
        notification = engine.push(_candidate())
        assert engine.get(notification.id) == notification
        assert adapters[Channel.EMAIL].sent == [notification.id]
        assert notification.channels == frozenset({Channel.IN_APP, Channel.EMAIL})

    def test_disabled_category_skips_adapters_but_stores(self, engine, adapters):
        engine.update_preferences({"categories": {"mentions": False}})
        notification = engine.push(_candidate())
        assert adapters[Channel.EMAIL].calls == 0
        assert [n.id for n in engine.list()] == [notification.id]

    def test_disabled_channel_not_delivered(self, engine, adapters):
        engine.push(_candidate(channels=[Channel.IN_APP, Channel.SLACK]))
        assert adapters[Channel.SLACK].calls == 0

    def test_adapter_failure_still_stores(self, clock, make_adapter):
        failing = make_adapter(Channel.EMAIL, fail=True)
        engine = NotificationEngine(clock=clock, adapters={Channel.EMAIL: failing})
        notification = engine.push(_candidate())
        assert notification.id in engine.store
        intent = failing.get_delivery_log()[0]
        assert intent.status == DeliveryStatus.FAILED
        assert "provider unavailable" in intent.error
        engine.close()

    def test_missing_adapter_is_skipped(self, clock):
        engine = NotificationEngine(clock=clock, adapters={})
        notification = engine.push(_candidate())
        assert engine.unread_count() == 1
        assert notification.id in engine.store
        engine.close()

    def test_blank_title_rejected(self, engine):
        candidate = _candidate()
        candidate.title = ""
        with pytest.raises(ValidationError):
            engine.push(candidate)
        assert len(engine.list()) == 0

    def test_closed_engine_rejects(self, engine):
        engine.close()
        with pytest.raises(StoreClosedError):
            engine.push(_candidate())


class TestIngest:
    """Rule evaluation cycles."""

    def test_mention_rule_fires(self, engine, adapters):
        rule = engine.add_rule(AlertRule(
            name="Mention spike",
            type=RuleType.MENTION_SPIKE,
            conditions=[AlertCondition(ConditionType.MENTION, threshold=3)],
            channels=[Channel.IN_APP, Channel.EMAIL],
        ))
        result = engine.ingest(_samples(mentioned=4, total=5))
        assert result.evaluated == 1
        assert result.fired_rule_ids == [rule.id]
        notification = result.notifications[0]
        assert notification.type == NotificationType.MENTION
        assert notification.priority == NotificationPriority.HIGH
        assert notification.rule_id == rule.id
        assert [d.channel for d in result.deliveries] == [Channel.EMAIL]
        assert engine.get_rule(rule.id).last_triggered == engine.now()

    def test_below_threshold_no_notification(self, engine):
        engine.create_rule_from_template("mention_spike")
        result = engine.ingest(_samples(mentioned=2))
        assert result.fired_rule_ids == []
        assert len(engine.list()) == 0

    def test_cooldown_suppresses_refire(self, engine, clock):
        rule = engine.create_rule_from_template("mention_spike", cooldown_seconds=600)
        assert engine.ingest(_samples(mentioned=3)).fired_rule_ids == [rule.id]
        clock.advance(minutes=5)
        assert engine.ingest(_samples(mentioned=3)).evaluated == 0
        clock.advance(minutes=5)
        assert engine.ingest(_samples(mentioned=3)).fired_rule_ids == [rule.id]

    def test_naive_evaluation_time_read_as_utc(self, engine):
        rule = engine.create_rule_from_template("mention_spike", cooldown_seconds=600)
        assert engine.ingest(_samples(mentioned=3), now=datetime(2024, 3, 1, 12, 0)).fired_rule_ids == [rule.id]
        assert engine.get_rule(rule.id).last_triggered == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert engine.ingest(_samples(mentioned=3), now=datetime(2024, 3, 1, 12, 5)).evaluated == 0
        assert engine.ingest(_samples(mentioned=3), now=datetime(2024, 3, 1, 12, 10)).evaluated == 1

    def test_parallel_rules_preserve_creation_order(self, engine, clock):
        ids = []
        for i in range(6):
            clock.advance(seconds=1)
            ids.append(engine.create_rule_from_template("competitor_activity", name=f"Rule {i}").id)
        samples = [MetricSample(platform="claude", competitors_mentioned=["Acme"])]
        result = engine.ingest(samples)
        assert result.fired_rule_ids == ids
        assert [n.rule_id for n in engine.list()] == list(reversed(ids))

    def test_no_rules(self, engine):
        result = engine.ingest(_samples(mentioned=10))
        assert result.evaluated == 0
        assert result.notifications == []


class TestDeferredDelivery:
    """Quiet hours and digest release through tick()."""

    def test_quiet_hours_hold_then_release(self, engine, adapters, clock):
        engine.update_preferences({"quietHours": {"enabled": True, "start": "22:00", "end": "08:00"}})
        clock.set(clock().replace(hour=23))
        notification = engine.push(_candidate())
        assert adapters[Channel.EMAIL].calls == 0
        assert notification.channels == frozenset({Channel.IN_APP, Channel.EMAIL})

        clock.advance(hours=2)
        assert engine.tick() == []

        clock.advance(hours=8)
        intents = engine.tick()
        assert [i.notification_id for i in intents] == [notification.id]
        assert adapters[Channel.EMAIL].sent == [notification.id]

    def test_critical_bypasses_quiet_hours(self, engine, adapters, clock):
        engine.update_preferences({"quietHours": {"enabled": True}})
        clock.set(clock().replace(hour=23))
        engine.push(_candidate(priority=NotificationPriority.CRITICAL))
        assert adapters[Channel.EMAIL].calls == 1

    def test_preference_change_cancels_held(self, engine, adapters, clock):
        engine.update_preferences({"quietHours": {"enabled": True}})
        clock.set(clock().replace(hour=23))
        engine.push(_candidate())
        engine.update_preferences({"channels": {"email": False}})
        clock.advance(hours=10)
        assert engine.tick() == []
        assert len(engine.digest) == 0
        assert adapters[Channel.EMAIL].calls == 0

    def test_daily_digest(self, engine, adapters, clock):
        engine.update_preferences({"frequency": "daily"})
        engine.push(_candidate())
        engine.push(_candidate())
        assert adapters[Channel.EMAIL].calls == 0

        clock.advance(hours=23)
        assert engine.tick() == []
        clock.advance(hours=1)
        assert len(engine.tick()) == 2
        assert adapters[Channel.EMAIL].calls == 2

    def test_naive_tick_time_read_as_utc(self, engine, adapters):
        engine.update_preferences({"frequency": "hourly"})
        engine.push(_candidate())
        assert engine.tick(datetime(2024, 3, 1, 12, 30)) == []
        assert len(engine.tick(datetime(2024, 3, 1, 13, 0))) == 1
        assert adapters[Channel.EMAIL].calls == 1

    def test_deleting_cancels_pending(self, engine, clock):
        engine.update_preferences({"frequency": "hourly"})
        notification = engine.push(_candidate())
        assert len(engine.digest) == 1
        assert engine.delete_notification(notification.id) is True
        assert len(engine.digest) == 0


class TestFeed:
    """Feed reads and writes through the engine."""

    def test_statistics(self, engine):
        ids = [engine.push(_candidate()).id for _ in range(3)]
        engine.mark_read(ids[0])
        stats = engine.get_statistics()
        assert (stats.total, stats.unread, stats.read) == (3, 2, 1)

    def test_filter_and_bulk(self, engine):
        engine.push(_candidate(type=NotificationType.REPORT))
        alert = engine.push(_candidate(type=NotificationType.ALERT, priority=NotificationPriority.HIGH))
        high = engine.list(NotificationFilter(min_priority=NotificationPriority.HIGH))
        assert [n.id for n in high] == [alert.id]
        assert engine.mark_all_read() == 2
        assert engine.clear_notifications() == 2

    def test_get_unknown(self, engine):
        with pytest.raises(NotFoundError):
            engine.get("missing")

    def test_subscribe_sees_changes(self, engine):
        calls = []
        unsubscribe = engine.subscribe(lambda: calls.append(1))
        engine.push(_candidate())
        engine.mark_all_read()
        engine.broadcaster.flush()
        unsubscribe()
        assert len(calls) == 2

    def test_timeline(self, engine):
        engine.push(_candidate())
        df = engine.get_timeline("D")
        assert df["total"].sum() == 1


class TestRules:
    """Rule management through the engine."""

    def test_template_defaults(self, engine, clock):
        rule = engine.create_rule_from_template("mention_spike")
        assert rule.name == "Mention Volume Spike"
        assert rule.conditions[0].threshold == 3.0
        assert rule.cooldown_seconds == 300
        assert rule.created_at == clock()
        assert rule.channels == frozenset({Channel.IN_APP, Channel.EMAIL, Channel.SLACK})

    def test_template_overrides(self, engine):
        rule = engine.create_rule_from_template(
            "sentiment_drop", name="Gemini sentiment", threshold=-0.5, channels=[Channel.IN_APP],
        )
        assert rule.name == "Gemini sentiment"
        assert rule.conditions[0].threshold == -0.5
        assert rule.channels == frozenset({Channel.IN_APP})

    def test_unknown_template(self, engine):
        with pytest.raises(NotFoundError):
            engine.create_rule_from_template("nonexistent")

    def test_toggle_and_remove(self, engine):
        rule = engine.create_rule_from_template("ranking_shift")
        engine.set_rule_active(rule.id, False)
        assert engine.list_rules(active_only=True) == []
        assert engine.remove_rule(rule.id) is True
        assert engine.list_rules() == []


class TestSnapshot:
    """Saving and loading engine state."""

    def test_save_and_load(self, engine, clock, tmp_path):
        path = str(tmp_path / "snapshot.json")
        engine.update_preferences({"frequency": "weekly"})
        rule = engine.create_rule_from_template("competitor_activity")
        notification = engine.push(_candidate())
        engine.mark_read(notification.id)
        assert engine.save(path) is True

        other = NotificationEngine(clock=clock, adapters={})
        assert other.load(path) is True
        assert other.get(notification.id).read is True
        assert other.get_rule(rule.id).name == rule.name
        assert other.get_preferences().frequency.value == "weekly"
        other.close()

    def test_no_path_configured(self, engine):
        assert engine.save() is False
        assert engine.load() is False

    def test_missing_file(self, engine, tmp_path):
        assert engine.load(str(tmp_path / "absent.json")) is False

    def test_default_preferences_from_config(self, clock):
        engine = NotificationEngine(
            EngineConfig(default_preferences={"channels": {"slack": True}}), clock=clock, adapters={},
        )
        assert engine.get_preferences().channel_enabled(Channel.SLACK)
        engine.close()
