"""Alert evaluation engine."""
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("metricwatch.alerts.engine")

OPERATOR_MAP = {
    "gt": lambda v, t: v > t,
    "gte": lambda v, t: v >= t,
    "lt": lambda v, t: v < t,
    "lte": lambda v, t: v <= t,
    "eq": lambda v, t: v == t,
    "ne": lambda v, t: v != t,
}


@dataclass
class TriggerResult:
    rule_id: str
    rule_name: str
    severity: str
    alert_id: Optional[str]
    created: bool
    in_cooldown: bool = False


class AlertEngine:
    """Evaluates one incoming sample against the organization's active rules.

    Applicability is by metric name only; a rule's aggregation, time window
    and filters are stored but do not gate evaluation of a single sample.
    """

    def __init__(self, rules_manager, lifecycle, db):
        self.rules_manager = rules_manager
        self.lifecycle = lifecycle
        self.db = db

    @staticmethod
    def rule_applies(rule, metric):
        return rule.metric_query.metric_name == metric.metric_name

    @staticmethod
    def evaluate_condition(value, operator, threshold):
        func = OPERATOR_MAP.get(operator)
        if func is None:
            return False
        return func(value, threshold)

    def match_condition(self, rule, value):
        """First satisfied condition in declaration order, or None."""
        for condition in rule.conditions:
            if self.evaluate_condition(value, condition.operator, condition.value):
                return condition
        return None

    def evaluate(self, organization_id, metric):
        """Evaluate all applicable active rules. Returns a TriggerResult per breached rule."""
        results = []
        for rule in self.rules_manager.get_active_rules(organization_id):
            if not self.rule_applies(rule, metric):
                continue
            try:
                result = self._evaluate_rule(rule, metric)
            except Exception as e:
                logger.error(f"Rule '{rule.rule_name}' failed on {metric.metric_name}@{metric.source}: {e}")
                continue
            if result is not None:
                results.append(result)
        return results

    def _evaluate_rule(self, rule, metric):
        if self.lifecycle.is_in_cooldown(rule):
            condition = self.match_condition(rule, metric.value)
            if condition is None:
                return None
            alert_id = self.lifecycle.refresh(rule, metric)
            logger.debug(f"Rule '{rule.rule_name}' in cooldown; refreshed={alert_id is not None}")
            return TriggerResult(rule.id, rule.rule_name, condition.severity, alert_id,
                                 created=False, in_cooldown=True)

        condition = self.match_condition(rule, metric.value)
        if condition is None:
            self.db.record_rule_evaluation(rule.id, self.lifecycle.clock(), alerted=False)
            return None

        alert_id, created = self.lifecycle.trigger(rule, metric, condition)
        self.db.record_rule_evaluation(rule.id, self.lifecycle.clock(), alerted=created)
        return TriggerResult(rule.id, rule.rule_name, condition.severity, alert_id, created=created)

    def test_rules(self, organization_id, metric):
        """Dry run: which rules would fire for this sample, ignoring cooldowns. Writes nothing."""
        results = []
        for rule in self.rules_manager.get_all_rules(organization_id):
            applies = self.rule_applies(rule, metric)
            condition = self.match_condition(rule, metric.value) if applies else None
            results.append({
                "rule_id": rule.id,
                "rule_name": rule.rule_name,
                "metric_name": rule.metric_query.metric_name,
                "applies": applies,
                "would_fire": condition is not None and rule.is_active,
                "severity": condition.severity if condition else None,
                "is_active": rule.is_active,
            })
        return results

    @staticmethod
    def format_alert_summary(alerts):
        """Format active alerts for display."""
        if not alerts:
            return "All clear - no active alerts."
        lines = []
        for a in alerts:
            icon = {"critical": "!!!", "warning": "!!", "info": "i", "low": "."}.get(a.severity, "?")
            lines.append(f"[{icon}] [{a.severity.upper()}] {a.title}: {a.description}")
        return "\n".join(lines)
