"""Tests for the system health rollup."""
import pytest
from datetime import timedelta

from conftest import ORG, START, make_metric
from models.alerts import ActiveAlert, make_alert_key
from monitor.health import HealthSummaryAggregator, determine_performance_status
from monitor.security import SecurityEventRecorder
from alerts.rules_manager import RulesManager
from conftest import rule_config


def _record_system(db, **values):
    metrics = [make_metric(name=k, value=v, source="host-1") for k, v in values.items()]
    db.insert_metrics(ORG, metrics, [f"sys-{k}" for k in values])


def _open_alert(db, severity, source):
    rule_id = RulesManager(db).create_rule(ORG, rule_config(name=f"rule-{source}"))
    db.upsert_active_alert(ActiveAlert(
        id=f"alert-{source}", organization_id=ORG, rule_id=rule_id,
        alert_key=make_alert_key(rule_id, source, "cpu_usage"), title="t", severity=severity,
        trigger_value=1.0, trigger_timestamp=START, first_seen=START, last_seen=START, created_at=START,
    ))


def test_healthy_and_optimal(temp_db, clock):
    _record_system(temp_db, cpu_usage=50, memory_usage=60, response_time=200, error_rate=0)
    summary = HealthSummaryAggregator(temp_db, clock=clock).summary(ORG)

    assert summary["overall_status"] == "healthy"
    assert summary["performance_status"] == "optimal"
    assert summary["critical_alerts"] == 0
    assert summary["warning_alerts"] == 0
    assert summary["security_events"] == 0
    assert summary["system_metrics"]["cpu_usage"] == 50
    assert summary["system_metrics"]["disk_usage"] == 0


def test_critical_beats_warning(temp_db, clock):
    _open_alert(temp_db, "warning", "a")
    assert HealthSummaryAggregator(temp_db, clock=clock).summary(ORG)["overall_status"] == "warning"
    _open_alert(temp_db, "critical", "b")
    summary = HealthSummaryAggregator(temp_db, clock=clock).summary(ORG)
    assert summary["overall_status"] == "critical"
    assert summary["critical_alerts"] == 1
    assert summary["warning_alerts"] == 1


def test_resolved_alerts_ignored(temp_db, clock):
    _open_alert(temp_db, "critical", "a")
    temp_db.resolve_alert(ORG, "alert-a", None, None, START)
    assert HealthSummaryAggregator(temp_db, clock=clock).summary(ORG)["overall_status"] == "healthy"


def test_security_events_last_24h(temp_db, clock):
    recorder = SecurityEventRecorder(temp_db, clock=clock)
    base = {"event_type": "login_failed", "severity": "warning", "category": "auth",
            "title": "Failed login", "source": "sso"}
    recorder.record(ORG, dict(base, event_timestamp=(START - timedelta(hours=30)).isoformat()))
    recorder.record(ORG, dict(base, event_timestamp=(START - timedelta(hours=2)).isoformat()))
    recorder.record(ORG, base)
    assert HealthSummaryAggregator(temp_db, clock=clock).summary(ORG)["security_events"] == 2


def test_latest_value_wins(temp_db, clock):
    temp_db.insert_metrics(ORG, [
        make_metric(name="cpu_usage", value=95, timestamp=START - timedelta(minutes=5)),
        make_metric(name="cpu_usage", value=40, timestamp=START),
    ], ["old", "new"])
    assert HealthSummaryAggregator(temp_db, clock=clock).get_system_metrics(ORG)["cpu_usage"] == 40


@pytest.mark.parametrize("metrics,expected", [
    ({"cpu_usage": 81}, "degraded"),
    ({"memory_usage": 86}, "degraded"),
    ({"response_time": 1001}, "degraded"),
    ({"error_rate": 1.5}, "degraded"),
    ({"cpu_usage": 61}, "warning"),
    ({"memory_usage": 71}, "warning"),
    ({"cpu_usage": 80, "memory_usage": 85, "response_time": 1000, "error_rate": 1}, "warning"),
    ({"cpu_usage": 60, "memory_usage": 70}, "optimal"),
    ({}, "optimal"),
])
def test_performance_status(metrics, expected):
    assert determine_performance_status(metrics) == expected


def test_configured_metric_names(temp_db, clock):
    temp_db.insert_metrics(ORG, [make_metric(name="node_cpu_pct", value=90)], ["m1"])
    config = {"health": {"system_metrics": {"cpu_usage": "node_cpu_pct"}}}
    summary = HealthSummaryAggregator(temp_db, config, clock=clock).summary(ORG)
    assert summary["system_metrics"] == {"cpu_usage": 90}
    assert summary["performance_status"] == "degraded"
