"""Data models."""
from models.enums import (
    MetricType, Severity, AlertStatus, Operator, ChannelType,
    OverallStatus, PerformanceStatus,
)
from models.metrics import Metric
from models.alerts import (
    MetricQuery, AlertCondition, ChannelConfig, AlertRule, ActiveAlert,
    NotificationAttempt, make_alert_key,
)
from models.analysis import PerformanceBaseline, ProjectionPoint, CapacityAnalysis, SecurityEvent
