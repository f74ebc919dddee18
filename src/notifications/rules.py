"""Alert rule evaluation and rule registry.

Decides whether a rule fires for a batch of samples and synthesizes the
candidate notification it produces.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional, Sequence

from src.notifications.config import (
    Category,
    RULE_NOTIFICATION_TYPES,
    RULE_PRIORITIES,
    RuleType,
    TYPE_CATEGORIES,
)
from src.notifications.conditions import ConditionEvaluator, ConditionResult
from src.notifications.exceptions import NotFoundError, ValidationError
from src.notifications.models import (
    AlertRule,
    MetricSample,
    NotificationCandidate,
    _utc_now,
)

logger = logging.getLogger(__name__)


def validate_rule(rule: AlertRule) -> None:
    """Check a rule definition.

    Raises:
        ValidationError: On a blank name, no conditions, a negative
            cool-down, or a non-numeric threshold.
    """
    if not rule.name or not rule.name.strip():
        raise ValidationError("rule name must not be empty", field="name", value=rule.name)
    if not rule.conditions:
        raise ValidationError("rule needs at least one condition", field="conditions")
    if rule.cooldown_seconds < 0:
        raise ValidationError(
            "cooldown must not be negative", field="cooldown_seconds", value=rule.cooldown_seconds,
        )
    for i, condition in enumerate(rule.conditions):
        if condition.threshold is not None and not isinstance(condition.threshold, (int, float)):
            raise ValidationError(
                "threshold must be numeric",
                field=f"conditions[{i}].threshold",
                value=condition.threshold,
            )


class AlertRuleEvaluator:
    """Evaluates alert rules against metric samples.

    A rule fires when all of its conditions hold. Firing stamps
    ``rule.last_triggered`` and yields exactly one candidate.
    """

    def __init__(
        self,
        condition_evaluator: Optional[ConditionEvaluator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._conditions = condition_evaluator or ConditionEvaluator()
        self._clock = clock or _utc_now

    def evaluate(
        self,
        rule: AlertRule,
        samples: Sequence[MetricSample],
        now: Optional[datetime] = None,
    ) -> Optional[NotificationCandidate]:
        """Evaluate one rule.

        Args:
            rule: Rule to evaluate.
            samples: Current sample batch.
            now: Evaluation time; defaults to the injected clock.

        Returns:
            Candidate notification if the rule fired, else None.
        """
        if not rule.active or not rule.conditions:
            return None

        results = self._conditions.evaluate_all(rule.conditions, samples)
        if not all(r.met for r in results):
            return None

        rule.last_triggered = now or self._clock()
        candidate = self._synthesize(rule, results)
        logger.info(
            "Alert rule fired: %s (%s) -> %s/%s",
            rule.name, rule.id, candidate.type.value, candidate.priority.value,
        )
        return candidate

    def _synthesize(
        self,
        rule: AlertRule,
        results: list[ConditionResult],
    ) -> NotificationCandidate:
        notification_type = RULE_NOTIFICATION_TYPES[rule.type]
        priority = RULE_PRIORITIES[rule.type]
        if any(r.severe for r in results):
            priority = priority.escalate()

        if rule.type == RuleType.SENTIMENT_DROP:
            category = Category.SENTIMENT
        else:
            category = TYPE_CATEGORIES[notification_type]

        metadata = {
            "rule_type": rule.type.value,
            "observed": {r.condition.type.value: r.observed for r in results},
        }

        return NotificationCandidate(
            type=notification_type,
            priority=priority,
            title=rule.name,
            message=" | ".join(r.summary for r in results),
            channels=rule.channels,
            metadata=metadata,
            category=category,
            rule_id=rule.id,
        )


class RuleRegistry:
    """Thread-safe collection of alert rules."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._rules: dict[str, AlertRule] = {}

    def add(self, rule: AlertRule) -> AlertRule:
        """Register a rule after validating it.

        Raises:
            ValidationError: If the definition is malformed.
        """
        validate_rule(rule)
        with self._lock:
            self._rules[rule.id] = rule
        logger.debug("Registered rule %s: %s", rule.id, rule.name)
        return rule

    def get(self, rule_id: str) -> AlertRule:
        """Look up a rule.

        Raises:
            NotFoundError: If no such rule exists.
        """
        with self._lock:
            rule = self._rules.get(rule_id)
        if rule is None:
            raise NotFoundError("rule", rule_id)
        return rule

    def list_rules(self, active_only: bool = False) -> list[AlertRule]:
        with self._lock:
            rules = list(self._rules.values())
        if active_only:
            rules = [r for r in rules if r.active]
        return sorted(rules, key=lambda r: r.created_at)

    def remove(self, rule_id: str) -> bool:
        with self._lock:
            return self._rules.pop(rule_id, None) is not None

    def set_active(self, rule_id: str, active: bool) -> AlertRule:
        """Explicitly activate or deactivate a rule.

        Raises:
            NotFoundError: If no such rule exists.
        """
        rule = self.get(rule_id)
        with self._lock:
            rule.active = active
        logger.info("Rule %s %s", rule_id, "activated" if active else "deactivated")
        return rule

    def due(self, now: datetime) -> list[AlertRule]:
        """Active rules outside their cool-down window."""
        return [r for r in self.list_rules(active_only=True) if not r.is_in_cooldown(now)]

    def replace(self, rules: Sequence[AlertRule]) -> None:
        """Swap in a full rule set (snapshot load)."""
        for rule in rules:
            validate_rule(rule)
        with self._lock:
            self._rules = {r.id: r for r in rules}

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)
