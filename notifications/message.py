"""Rendering of a triggered alert into a transport-neutral message."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class NotificationMessage:
    title: str
    body: str
    severity: str
    rule_id: str
    rule_name: str
    metric: dict = field(default_factory=dict)
    condition: dict = field(default_factory=dict)
    alert_id: Optional[str] = None
    organization_id: Optional[str] = None

    @property
    def subject(self):
        return f"[{self.severity.upper()}] {self.title}"

    def to_dict(self):
        return {
            "title": self.title,
            "body": self.body,
            "severity": self.severity,
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "metric": self.metric,
            "condition": self.condition,
            "alert_id": self.alert_id,
            "organization_id": self.organization_id,
        }


def describe_breach(metric, condition):
    return (
        f"Metric {metric.metric_name} exceeded threshold: "
        f"{metric.value:g} {condition.operator} {condition.value:g}"
    )


def render_message(rule, metric, condition, alert_id=None):
    title = f"{rule.rule_name} - {metric.source}"
    body = describe_breach(metric, condition)
    if metric.unit:
        body += f" ({metric.unit})"
    if rule.description:
        body += f" | {rule.description}"
    return NotificationMessage(
        title=title,
        body=body,
        severity=condition.severity,
        rule_id=rule.id,
        rule_name=rule.rule_name,
        metric=metric.to_dict(),
        condition=condition.to_dict(),
        alert_id=alert_id,
        organization_id=rule.organization_id,
    )
