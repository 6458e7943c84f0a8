"""
Flask JSON API for metricwatch.

Every request names its tenant in the ``X-Organization-Id`` header; the
acting user, where one matters, comes from ``X-User-Id``.

  POST /api/metrics                         - Record one sample
  POST /api/metrics/batch                   - Record many samples atomically
  GET  /api/rules                           - List rules (?active=1)
  POST /api/rules                           - Create a rule
  POST /api/rules/<id>/activate|deactivate  - Toggle a rule
  GET  /api/alerts                          - List alerts (?status=&severity=&limit=)
  POST /api/alerts/<id>/acknowledge         - Acknowledge an alert
  POST /api/alerts/<id>/resolve             - Resolve an alert
  POST /api/security-events                 - Record a security event
  POST /api/baselines                       - Calculate a baseline
  GET  /api/baselines/latest                - Latest baseline for a key
  POST /api/capacity                        - Run a capacity analysis
  GET  /api/capacity/<id>                   - Fetch a stored analysis
  GET  /api/health                          - System health summary

Started via: python main.py web [--port 5000] [--host 0.0.0.0]
"""
import logging

from flask import Flask, jsonify, request

from utils.errors import InsufficientDataError, NotFoundError, ValidationError

logger = logging.getLogger("metricwatch.web.app")


def create_app(config: dict, service) -> Flask:
    """
    Factory function. Receives an initialized MonitoringService from main.py or wsgi.py.

    Args:
        config: Application config dict
        service: MonitoringService all routes delegate to
    """
    app = Flask(__name__)
    app.config["METRICWATCH"] = config

    # ─── Request helpers ─────────────────────────────────

    def org_id():
        org = request.headers.get("X-Organization-Id", "").strip()
        if not org:
            raise ValidationError("X-Organization-Id header is required", field="organization_id")
        return org

    def user_id():
        return request.headers.get("X-User-Id", "").strip() or None

    def body(object_only=True):
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError("Request body must be JSON")
        if object_only and not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        return data

    # ─── Error mapping ───────────────────────────────────

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        resp = {"error": str(e)}
        if e.field:
            resp["field"] = e.field
        return jsonify(resp), 400

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InsufficientDataError)
    def handle_insufficient(e):
        return jsonify({"error": str(e)}), 422

    # ─── Metrics ─────────────────────────────────────────

    @app.route("/api/metrics", methods=["POST"])
    def api_record_metric():
        metric_id = service.record_metric(org_id(), body())
        return jsonify({"id": metric_id}), 201

    @app.route("/api/metrics/batch", methods=["POST"])
    def api_record_batch():
        data = body(object_only=False)
        metrics = data.get("metrics") if isinstance(data, dict) else data
        ids = service.record_metrics_batch(org_id(), metrics)
        return jsonify({"ids": ids, "count": len(ids)}), 201

    # ─── Rules ───────────────────────────────────────────

    @app.route("/api/rules", methods=["GET"])
    def api_list_rules():
        active_only = request.args.get("active", "").lower() in ("1", "true", "yes")
        rules = service.list_alert_rules(org_id(), active_only=active_only)
        return jsonify({"rules": [r.to_dict() for r in rules], "count": len(rules)})

    @app.route("/api/rules", methods=["POST"])
    def api_create_rule():
        rule_id = service.create_alert_rule(org_id(), body(), created_by=user_id() or "")
        return jsonify({"id": rule_id}), 201

    @app.route("/api/rules/<rule_id>/activate", methods=["POST"])
    def api_activate_rule(rule_id):
        service.set_rule_active(org_id(), rule_id, True)
        return jsonify({"id": rule_id, "is_active": True})

    @app.route("/api/rules/<rule_id>/deactivate", methods=["POST"])
    def api_deactivate_rule(rule_id):
        service.set_rule_active(org_id(), rule_id, False)
        return jsonify({"id": rule_id, "is_active": False})

    # ─── Alerts ──────────────────────────────────────────

    @app.route("/api/alerts")
    def api_alerts():
        try:
            limit = min(int(request.args.get("limit", 100)), 500)
        except ValueError:
            raise ValidationError("limit must be an integer", field="limit")
        alerts = service.list_alerts(
            org_id(),
            status=request.args.get("status"),
            severity=request.args.get("severity"),
            limit=limit,
        )
        return jsonify({"alerts": [a.to_dict() for a in alerts], "count": len(alerts)})

    @app.route("/api/alerts/<alert_id>/acknowledge", methods=["POST"])
    def api_acknowledge(alert_id):
        user = user_id()
        if not user:
            raise ValidationError("X-User-Id header is required", field="user_id")
        service.acknowledge_alert(org_id(), alert_id, user)
        return jsonify({"id": alert_id, "acknowledged_by": user})

    @app.route("/api/alerts/<alert_id>/resolve", methods=["POST"])
    def api_resolve(alert_id):
        data = body() if request.get_data() else {}
        resolved = service.resolve_alert(org_id(), alert_id, user_id(), data.get("note"))
        return jsonify({"id": alert_id, "resolved": resolved})

    # ─── Security / analysis / health ────────────────────

    @app.route("/api/security-events", methods=["POST"])
    def api_security_event():
        event_id = service.record_security_event(org_id(), body())
        return jsonify({"id": event_id}), 201

    @app.route("/api/baselines", methods=["POST"])
    def api_baseline():
        data = body()
        baseline_id = service.calculate_performance_baseline(
            org_id(), data.get("metric_name"), data.get("source"), data.get("time_frame", "daily"),
        )
        return jsonify({"id": baseline_id}), 201

    @app.route("/api/baselines/latest")
    def api_latest_baseline():
        baseline = service.get_latest_baseline(
            org_id(),
            request.args.get("metric_name", ""),
            request.args.get("source", ""),
            request.args.get("time_frame", "daily"),
        )
        if baseline is None:
            raise NotFoundError("No baseline for that metric")
        return jsonify(baseline.to_dict())

    @app.route("/api/capacity", methods=["POST"])
    def api_capacity():
        data = body()
        analysis_id = service.perform_capacity_analysis(
            org_id(), data.get("resource_type"), data.get("resource_id"),
        )
        return jsonify({"id": analysis_id}), 201

    @app.route("/api/capacity/<analysis_id>")
    def api_get_capacity(analysis_id):
        return jsonify(service.get_capacity_analysis(org_id(), analysis_id).to_dict())

    @app.route("/api/health")
    def api_health():
        return jsonify(service.get_system_health_summary(org_id()))

    return app
