"""Tests for the Flask JSON API."""
import pytest
from unittest.mock import MagicMock

from conftest import ORG, START, rule_config
from monitor.service import build_service
from web.app import create_app

HEADERS = {"X-Organization-Id": ORG, "X-User-Id": "alice"}


def _metric(value=95.0, source="web-1", name="cpu_usage"):
    return {"metric_name": name, "metric_type": "system_cpu", "source": source,
            "value": value, "timestamp": START.isoformat()}


@pytest.fixture
def client(temp_db, clock, config):
    channel = MagicMock()
    channel.send.return_value = True
    service = build_service(config, temp_db, channels={"console": channel}, clock=clock)
    app = create_app(config, service)
    app.config["TESTING"] = True
    return app.test_client()


def test_missing_org_header(client):
    resp = client.get("/api/health")
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "organization_id"


def test_health(client):
    resp = client.get("/api/health", headers=HEADERS)
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["overall_status"] == "healthy"
    assert data["performance_status"] == "optimal"


def test_record_metric_and_alert_flow(client):
    resp = client.post("/api/rules", json=rule_config(), headers=HEADERS)
    assert resp.status_code == 201
    rule_id = resp.get_json()["id"]

    resp = client.post("/api/metrics", json=_metric(), headers=HEADERS)
    assert resp.status_code == 201

    alerts = client.get("/api/alerts?status=active", headers=HEADERS).get_json()
    assert alerts["count"] == 1
    alert_id = alerts["alerts"][0]["id"]
    assert alerts["alerts"][0]["rule_id"] == rule_id

    resp = client.post(f"/api/alerts/{alert_id}/acknowledge", headers=HEADERS)
    assert resp.get_json()["acknowledged_by"] == "alice"

    resp = client.post(f"/api/alerts/{alert_id}/resolve", json={"note": "fixed"}, headers=HEADERS)
    assert resp.get_json()["resolved"] is True
    resp = client.post(f"/api/alerts/{alert_id}/resolve", headers=HEADERS)
    assert resp.get_json()["resolved"] is False


def test_rules_list_and_toggle(client):
    rule_id = client.post("/api/rules", json=rule_config(), headers=HEADERS).get_json()["id"]
    rules = client.get("/api/rules", headers=HEADERS).get_json()
    assert rules["rules"][0]["created_by"] == "alice"

    assert client.post(f"/api/rules/{rule_id}/deactivate", headers=HEADERS).status_code == 200
    assert client.get("/api/rules?active=1", headers=HEADERS).get_json()["count"] == 0
    assert client.post(f"/api/rules/{rule_id}/activate", headers=HEADERS).status_code == 200
    assert client.get("/api/rules?active=1", headers=HEADERS).get_json()["count"] == 1


def test_unknown_rule_404(client):
    assert client.post("/api/rules/nope/activate", headers=HEADERS).status_code == 404


def test_invalid_rule_400(client):
    resp = client.post("/api/rules", json=rule_config(conditions=[{"operator": "over", "value": 1,
                                                                   "severity": "warning"}]), headers=HEADERS)
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "conditions"


def test_batch(client):
    resp = client.post("/api/metrics/batch", json={"metrics": [_metric(source="a"), _metric(source="b")]},
                       headers=HEADERS)
    assert resp.status_code == 201
    assert resp.get_json()["count"] == 2

    resp = client.post("/api/metrics/batch", json=[_metric(), {"metric_name": "x"}], headers=HEADERS)
    assert resp.status_code == 400


def test_non_json_body(client):
    resp = client.post("/api/metrics", data="value=1", headers=HEADERS)
    assert resp.status_code == 400


@pytest.mark.parametrize("path", ["/api/metrics", "/api/rules", "/api/security-events",
                                  "/api/baselines", "/api/capacity", "/api/alerts/a1/resolve"])
def test_non_object_body_rejected(client, path):
    resp = client.post(path, json=["cpu_usage", "web-1"], headers=HEADERS)
    assert resp.status_code == 400
    assert "JSON object" in resp.get_json()["error"]


def test_acknowledge_requires_user(client):
    resp = client.post("/api/alerts/whatever/acknowledge", headers={"X-Organization-Id": ORG})
    assert resp.status_code == 400


def test_baseline_endpoints(client):
    client.post("/api/metrics/batch", json=[_metric(value=10), _metric(value=20)], headers=HEADERS)
    resp = client.post("/api/baselines", json={"metric_name": "cpu_usage", "source": "web-1"}, headers=HEADERS)
    assert resp.status_code == 201
    baseline_id = resp.get_json()["id"]

    resp = client.get("/api/baselines/latest?metric_name=cpu_usage&source=web-1", headers=HEADERS)
    assert resp.get_json()["id"] == baseline_id
    assert client.get("/api/baselines/latest?metric_name=mem&source=web-1", headers=HEADERS).status_code == 404


def test_baseline_insufficient_data_422(client):
    resp = client.post("/api/baselines", json={"metric_name": "cpu_usage", "source": "web-1"}, headers=HEADERS)
    assert resp.status_code == 422


def test_capacity_endpoints(client):
    client.post("/api/metrics/batch", json=[
        _metric(name="disk_utilization", value=50, source="db-1"),
        _metric(name="disk_capacity", value=100, source="db-1"),
    ], headers=HEADERS)
    resp = client.post("/api/capacity", json={"resource_type": "disk", "resource_id": "db-1"}, headers=HEADERS)
    assert resp.status_code == 201
    analysis = client.get(f"/api/capacity/{resp.get_json()['id']}", headers=HEADERS).get_json()
    assert analysis["utilization_percentage"] == 50
    assert analysis["recommendations"] == []


def test_security_event(client):
    resp = client.post("/api/security-events", json={
        "event_type": "login_failed", "severity": "warning", "category": "auth",
        "title": "Failed login", "source": "sso",
    }, headers=HEADERS)
    assert resp.status_code == 201
    assert client.get("/api/health", headers=HEADERS).get_json()["security_events"] == 1


def test_tenants_isolated(client):
    client.post("/api/metrics", json=_metric(), headers=HEADERS)
    client.post("/api/rules", json=rule_config(), headers=HEADERS)
    other = {"X-Organization-Id": "org-other"}
    assert client.get("/api/rules", headers=other).get_json()["count"] == 0
    assert client.get("/api/alerts", headers=other).get_json()["count"] == 0
