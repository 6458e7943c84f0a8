"""Dataclasses for alert rules, active alerts and notification attempts."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from utils.timeutils import to_iso


@dataclass
class MetricQuery:
    metric_name: str = ""
    aggregation: str = "avg"
    time_window: str = "5m"
    filters: Optional[dict] = None

    def to_dict(self):
        return {
            "metric_name": self.metric_name,
            "aggregation": self.aggregation,
            "time_window": self.time_window,
            "filters": self.filters,
        }


@dataclass
class AlertCondition:
    operator: str = "gt"
    value: float = 0.0
    severity: str = "warning"

    def to_dict(self):
        return {"operator": self.operator, "value": self.value, "severity": self.severity}


@dataclass
class ChannelConfig:
    type: str = ""
    config: dict = field(default_factory=dict)
    severity_filter: Optional[list] = None

    def accepts(self, severity):
        """An unset filter accepts every severity."""
        return self.severity_filter is None or severity in self.severity_filter

    def to_dict(self):
        return {"type": self.type, "config": self.config, "severity_filter": self.severity_filter}


@dataclass
class AlertRule:
    id: str = ""
    organization_id: str = ""
    rule_name: str = ""
    description: Optional[str] = None
    category: str = ""
    metric_query: MetricQuery = field(default_factory=MetricQuery)
    conditions: list = field(default_factory=list)
    evaluation_interval: int = 60
    alert_cooldown: int = 300
    auto_resolve: bool = True
    auto_resolve_timeout: Optional[int] = 3600
    notification_channels: list = field(default_factory=list)
    is_active: bool = True
    evaluation_count: int = 0
    alert_count: int = 0
    last_evaluated: Optional[datetime] = None
    created_by: str = ""
    created_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "rule_name": self.rule_name,
            "description": self.description,
            "category": self.category,
            "metric_query": self.metric_query.to_dict(),
            "conditions": [c.to_dict() for c in self.conditions],
            "evaluation_interval": self.evaluation_interval,
            "alert_cooldown": self.alert_cooldown,
            "auto_resolve": self.auto_resolve,
            "auto_resolve_timeout": self.auto_resolve_timeout,
            "notification_channels": [c.to_dict() for c in self.notification_channels],
            "is_active": self.is_active,
            "evaluation_count": self.evaluation_count,
            "alert_count": self.alert_count,
            "last_evaluated": to_iso(self.last_evaluated),
            "created_by": self.created_by,
            "created_at": to_iso(self.created_at),
        }


@dataclass
class NotificationAttempt:
    channel: str
    timestamp: datetime
    success: bool
    error: Optional[str] = None

    def to_dict(self):
        d = {"channel": self.channel, "timestamp": to_iso(self.timestamp), "success": self.success}
        if self.error:
            d["error"] = self.error
        return d


@dataclass
class ActiveAlert:
    id: str = ""
    organization_id: str = ""
    rule_id: str = ""
    alert_key: str = ""
    title: str = ""
    description: str = ""
    severity: str = "warning"
    status: str = "active"
    trigger_value: float = 0.0
    trigger_timestamp: Optional[datetime] = None
    trigger_metrics: dict = field(default_factory=dict)
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution_note: Optional[str] = None
    notifications_sent: list = field(default_factory=list)
    created_at: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "rule_id": self.rule_id,
            "alert_key": self.alert_key,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "trigger_value": self.trigger_value,
            "trigger_timestamp": to_iso(self.trigger_timestamp),
            "trigger_metrics": self.trigger_metrics,
            "first_seen": to_iso(self.first_seen),
            "last_seen": to_iso(self.last_seen),
            "acknowledged_at": to_iso(self.acknowledged_at),
            "acknowledged_by": self.acknowledged_by,
            "resolved_at": to_iso(self.resolved_at),
            "resolved_by": self.resolved_by,
            "resolution_note": self.resolution_note,
            "notifications_sent": list(self.notifications_sent),
            "created_at": to_iso(self.created_at),
        }


def make_alert_key(rule_id, source, metric_name):
    """Deterministic incident identity: one active alert per (rule, source, metric)."""
    return f"{rule_id}:{source}:{metric_name}"
