"""Condition evaluation.

Reduces a batch of metric samples to the aggregate each condition type
looks at, compares it against the threshold, and builds conditions from
templates.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from src.notifications.config import (
    ComparisonOperator,
    ConditionType,
    POSITION_DELTA_LIMIT,
    RULE_TEMPLATES,
    SENTIMENT_ESCALATION_MARGIN,
)
from src.notifications.models import AlertCondition, MetricSample

logger = logging.getLogger(__name__)


def compare(value: float, operator: ComparisonOperator, threshold: float) -> bool:
    """Apply a comparison operator."""
    if operator == ComparisonOperator.GT:
        return value > threshold
    elif operator == ComparisonOperator.GTE:
        return value >= threshold
    elif operator == ComparisonOperator.LT:
        return value < threshold
    elif operator == ComparisonOperator.LTE:
        return value <= threshold
    elif operator == ComparisonOperator.EQ:
        return value == threshold
    elif operator == ComparisonOperator.NEQ:
        return value != threshold
    return False


@dataclass(frozen=True)
class ConditionResult:
    """Outcome of evaluating one condition over a sample batch.

    Attributes:
        condition: The evaluated condition.
        met: Whether the comparison held.
        observed: The aggregate value compared against the threshold.
        summary: Human-readable description of the aggregate.
        severe: Whether the observation warrants a priority escalation.
    """
    condition: AlertCondition
    met: bool
    observed: float
    summary: str
    severe: bool = False


class ConditionEvaluator:
    """Evaluates alert conditions against a batch of metric samples.

    Stateless; safe to share between rules evaluated in parallel.
    """

    def evaluate(
        self,
        condition: AlertCondition,
        samples: Sequence[MetricSample],
    ) -> ConditionResult:
        """Evaluate a single condition.

        Args:
            condition: Condition to evaluate.
            samples: Current sample batch.

        Returns:
            ConditionResult.
        """
        kind = condition.type
        if kind == ConditionType.COMPETITOR_MENTION:
            scoped = list(samples)
        else:
            scoped = self._scope(condition, samples)

        if kind == ConditionType.MENTION:
            return self._mention(condition, scoped)
        elif kind == ConditionType.SENTIMENT_DROP:
            return self._sentiment(condition, scoped)
        elif kind == ConditionType.COMPETITOR_MENTION:
            return self._competitors(condition, scoped)
        elif kind == ConditionType.POSITION_CHANGE:
            return self._positions(condition, scoped)
        elif kind == ConditionType.NEW_CITATION:
            return self._citations(condition, scoped)

        logger.warning("Unsupported condition type: %s", kind)
        return ConditionResult(condition, False, 0.0, f"unsupported condition {kind}")

    def evaluate_all(
        self,
        conditions: Sequence[AlertCondition],
        samples: Sequence[MetricSample],
    ) -> list[ConditionResult]:
        """Evaluate every condition; callers AND the results."""
        return [self.evaluate(c, samples) for c in conditions]

    @staticmethod
    def _scope(
        condition: AlertCondition,
        samples: Sequence[MetricSample],
    ) -> list[MetricSample]:
        if not condition.value:
            return list(samples)
        platform = condition.value.lower()
        return [s for s in samples if s.platform.lower() == platform]

    @staticmethod
    def _count_severe(condition: AlertCondition, observed: float) -> bool:
        threshold = condition.effective_threshold
        return threshold > 0 and observed >= 2 * threshold

    def _mention(self, condition: AlertCondition, samples: list[MetricSample]) -> ConditionResult:
        count = sum(1 for s in samples if s.brand_mentioned)
        met = compare(count, condition.effective_operator, condition.effective_threshold)
        return ConditionResult(
            condition=condition,
            met=met,
            observed=float(count),
            summary=f"New brand mentions detected: {count} mentions across platforms",
            severe=met and self._count_severe(condition, count),
        )

    def _sentiment(self, condition: AlertCondition, samples: list[MetricSample]) -> ConditionResult:
        if not samples:
            return ConditionResult(condition, False, 0.0, "No samples to score sentiment")

        average = sum(s.sentiment for s in samples) / len(samples)
        threshold = condition.effective_threshold
        met = compare(average, condition.effective_operator, threshold)
        return ConditionResult(
            condition=condition,
            met=met,
            observed=average,
            summary=f"Sentiment has dropped below threshold: {average:.2f}",
            severe=met and average <= threshold - SENTIMENT_ESCALATION_MARGIN,
        )

    def _competitors(self, condition: AlertCondition, samples: list[MetricSample]) -> ConditionResult:
        names: set[str] = set()
        for s in samples:
            names.update(s.competitors_mentioned)
        if condition.value:
            names = {n for n in names if n.lower() == condition.value.lower()}

        met = compare(len(names), condition.effective_operator, condition.effective_threshold)
        listed = ", ".join(sorted(names)) or "none"
        return ConditionResult(
            condition=condition,
            met=met,
            observed=float(len(names)),
            summary=f"Competitors mentioned: {listed}",
            severe=met and self._count_severe(condition, len(names)),
        )

    def _positions(self, condition: AlertCondition, samples: list[MetricSample]) -> ConditionResult:
        moved = [
            s for s in samples
            if s.position_delta is not None and abs(s.position_delta) > POSITION_DELTA_LIMIT
        ]
        met = compare(len(moved), condition.effective_operator, condition.effective_threshold)
        return ConditionResult(
            condition=condition,
            met=met,
            observed=float(len(moved)),
            summary=f"Significant position changes detected in {len(moved)} results",
            severe=met and self._count_severe(condition, len(moved)),
        )

    def _citations(self, condition: AlertCondition, samples: list[MetricSample]) -> ConditionResult:
        total = sum(s.citation_count or 0 for s in samples)
        met = compare(total, condition.effective_operator, condition.effective_threshold)
        return ConditionResult(
            condition=condition,
            met=met,
            observed=float(total),
            summary=f"New citations found: {total} total citations",
            severe=met and self._count_severe(condition, total),
        )


class ConditionBuilder:
    """Builds AlertCondition lists from user input or templates."""

    @staticmethod
    def simple(
        condition_type: ConditionType,
        threshold: Optional[float] = None,
        operator: Optional[ComparisonOperator] = None,
        value: Optional[str] = None,
    ) -> list[AlertCondition]:
        return [
            AlertCondition(
                type=condition_type,
                threshold=threshold,
                comparison_operator=operator,
                value=value,
            )
        ]

    @staticmethod
    def from_template(
        template_name: str,
        threshold_override: Optional[float] = None,
    ) -> list[AlertCondition]:
        """Create conditions from a pre-built template.

        Args:
            template_name: Key from RULE_TEMPLATES.
            threshold_override: Replaces the first condition's threshold.

        Raises:
            ValueError: If the template is unknown.
        """
        template = RULE_TEMPLATES.get(template_name)
        if not template:
            raise ValueError(f"Unknown template: {template_name}")

        conditions = [
            AlertCondition(type=kind, threshold=threshold)
            for kind, threshold in template["conditions"]
        ]
        if threshold_override is not None:
            conditions[0].threshold = threshold_override
        return conditions
