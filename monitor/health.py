"""System health rollup: active alerts, recent security events, key system metrics."""
import logging
from datetime import timedelta

from models.enums import OverallStatus, PerformanceStatus, Severity
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.monitor.health")

DEFAULT_SYSTEM_METRICS = {
    "cpu_usage": "cpu_usage",
    "memory_usage": "memory_usage",
    "disk_usage": "disk_usage",
    "response_time": "response_time",
    "error_rate": "error_rate",
}
DEFAULT_DEGRADED = {"cpu_usage": 80, "memory_usage": 85, "response_time": 1000, "error_rate": 1}
DEFAULT_WARNING = {"cpu_usage": 60, "memory_usage": 70}


def determine_performance_status(system_metrics, degraded=None, warning=None):
    """degraded if any degraded threshold is exceeded, else warning if any warning threshold is, else optimal."""
    degraded = DEFAULT_DEGRADED if degraded is None else degraded
    warning = DEFAULT_WARNING if warning is None else warning
    if any(system_metrics.get(k, 0) > limit for k, limit in degraded.items()):
        return PerformanceStatus.DEGRADED.value
    if any(system_metrics.get(k, 0) > limit for k, limit in warning.items()):
        return PerformanceStatus.WARNING.value
    return PerformanceStatus.OPTIMAL.value


class HealthSummaryAggregator:
    def __init__(self, db, config=None, clock=None):
        self.db = db
        cfg = (config or {}).get("health", {})
        self.security_window = timedelta(hours=cfg.get("security_window_hours", 24))
        self.metric_names = cfg.get("system_metrics") or DEFAULT_SYSTEM_METRICS
        self.degraded = cfg.get("degraded") or DEFAULT_DEGRADED
        self.warning = cfg.get("warning") or DEFAULT_WARNING
        self.clock = clock or utcnow

    def get_system_metrics(self, organization_id):
        """Latest stored value per key system metric. Missing metrics read as 0."""
        metrics = {}
        for key, metric_name in self.metric_names.items():
            value = self.db.get_latest_metric_value(organization_id, metric_name)
            metrics[key] = value if value is not None else 0
        return metrics

    def summary(self, organization_id):
        critical = self.db.count_active_alerts(organization_id, Severity.CRITICAL.value)
        warning = self.db.count_active_alerts(organization_id, Severity.WARNING.value)
        security_events = self.db.count_security_events_since(
            organization_id, self.clock() - self.security_window
        )
        system_metrics = self.get_system_metrics(organization_id)

        if critical > 0:
            overall = OverallStatus.CRITICAL.value
        elif warning > 0:
            overall = OverallStatus.WARNING.value
        else:
            overall = OverallStatus.HEALTHY.value

        return {
            "overall_status": overall,
            "critical_alerts": critical,
            "warning_alerts": warning,
            "security_events": security_events,
            "system_metrics": system_metrics,
            "performance_status": determine_performance_status(system_metrics, self.degraded, self.warning),
        }
