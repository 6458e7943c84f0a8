"""MonitoringService: the one entry point the web API, CLI and scheduler call.

Every operation takes the organization explicitly; nothing is resolved from
ambient request state.
"""
import uuid
import logging

from alerts.channels import build_channels
from alerts.dispatcher import NotificationDispatcher
from alerts.engine import AlertEngine
from alerts.lifecycle import AlertLifecycleManager
from alerts.rules_manager import RulesManager
from analysis.baseline import BaselineCalculator
from analysis.capacity import CapacityPlanner
from models.metrics import Metric
from monitor.health import HealthSummaryAggregator
from monitor.security import SecurityEventRecorder
from utils.errors import NotFoundError, ValidationError
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.monitor.service")


def _require_org(organization_id):
    if not isinstance(organization_id, str) or not organization_id.strip():
        raise ValidationError("organization_id is required", field="organization_id")
    return organization_id


class MonitoringService:
    def __init__(self, db, rules_manager, engine, lifecycle, baselines, capacity, security, health, clock=None):
        self.db = db
        self.rules_manager = rules_manager
        self.engine = engine
        self.lifecycle = lifecycle
        self.baselines = baselines
        self.capacity = capacity
        self.security = security
        self.health = health
        self.clock = clock or utcnow

    # --- Metrics ---

    def _coerce_metric(self, raw):
        if isinstance(raw, Metric):
            return raw.validate()
        return Metric.from_dict(raw)

    def record_metric(self, organization_id, metric):
        """Persist one sample, then evaluate it against the active rules. Returns the metric id."""
        _require_org(organization_id)
        metric = self._coerce_metric(metric)
        metric_id = str(uuid.uuid4())
        self.db.insert_metrics(organization_id, [metric], [metric_id])
        self._evaluate(organization_id, metric)
        return metric_id

    def record_metrics_batch(self, organization_id, metrics):
        """Validate everything, persist in one transaction, then evaluate in input order.

        A validation error rejects the whole batch before anything is written.
        Evaluation failures are per sample and never undo persistence.
        """
        _require_org(organization_id)
        if not isinstance(metrics, list):
            raise ValidationError("metrics must be a list", field="metrics")
        parsed = []
        for i, raw in enumerate(metrics):
            try:
                parsed.append(self._coerce_metric(raw))
            except ValidationError as e:
                raise ValidationError(f"metrics[{i}]: {e}", field=e.field)

        ids = [str(uuid.uuid4()) for _ in parsed]
        if parsed:
            self.db.insert_metrics(organization_id, parsed, ids)
        for metric in parsed:
            self._evaluate(organization_id, metric)
        logger.info(f"Recorded batch of {len(parsed)} metric(s) for {organization_id}")
        return ids

    def _evaluate(self, organization_id, metric):
        try:
            return self.engine.evaluate(organization_id, metric)
        except Exception as e:
            logger.error(f"Alert evaluation failed for {metric.metric_name}@{metric.source}: {e}")
            return []

    def test_metric(self, organization_id, metric):
        """Dry-run a sample against every rule without storing it."""
        _require_org(organization_id)
        return self.engine.test_rules(organization_id, self._coerce_metric(metric))

    # --- Rules ---

    def create_alert_rule(self, organization_id, rule_config, created_by=""):
        _require_org(organization_id)
        return self.rules_manager.create_rule(organization_id, rule_config, created_by)

    def load_alert_rules(self, organization_id, path, created_by=""):
        _require_org(organization_id)
        return self.rules_manager.load_file(organization_id, path, created_by)

    def list_alert_rules(self, organization_id, active_only=False):
        _require_org(organization_id)
        if active_only:
            return self.rules_manager.get_active_rules(organization_id)
        return self.rules_manager.get_all_rules(organization_id)

    def set_rule_active(self, organization_id, rule_id, active):
        _require_org(organization_id)
        if not self.rules_manager.set_active(organization_id, rule_id, active):
            raise NotFoundError(f"Rule {rule_id} not found")
        logger.info(f"Rule {rule_id} {'activated' if active else 'deactivated'}")

    # --- Alerts ---

    def list_alerts(self, organization_id, status=None, severity=None, limit=100):
        _require_org(organization_id)
        return self.db.list_alerts(organization_id, status=status, severity=severity, limit=limit)

    def acknowledge_alert(self, organization_id, alert_id, user_id):
        _require_org(organization_id)
        self.lifecycle.acknowledge(organization_id, alert_id, user_id)

    def resolve_alert(self, organization_id, alert_id, user_id=None, note=None):
        _require_org(organization_id)
        return self.lifecycle.resolve(organization_id, alert_id, user_id, note)

    # --- Security ---

    def record_security_event(self, organization_id, event):
        _require_org(organization_id)
        return self.security.record(organization_id, event)

    # --- Analysis ---

    def calculate_performance_baseline(self, organization_id, metric_name, source, time_frame):
        """Returns the new baseline id."""
        _require_org(organization_id)
        return self.baselines.calculate(organization_id, metric_name, source, time_frame).id

    def get_latest_baseline(self, organization_id, metric_name, source, time_frame):
        _require_org(organization_id)
        return self.baselines.get_latest(organization_id, metric_name, source, time_frame)

    def perform_capacity_analysis(self, organization_id, resource_type, resource_id):
        """Returns the new analysis id."""
        _require_org(organization_id)
        return self.capacity.analyze(organization_id, resource_type, resource_id).id

    def get_capacity_analysis(self, organization_id, analysis_id):
        _require_org(organization_id)
        analysis = self.db.get_capacity_analysis(organization_id, analysis_id)
        if analysis is None:
            raise NotFoundError(f"Capacity analysis {analysis_id} not found")
        return analysis

    def get_system_health_summary(self, organization_id):
        _require_org(organization_id)
        return self.health.summary(organization_id)


def build_service(config, db, channels=None, clock=None, utilization_provider=None):
    """Wire the full service graph from config."""
    clock = clock or utcnow
    notif = config.get("notifications", {})
    timeout = notif.get("timeout_seconds", 10)

    if channels is None:
        channels = build_channels(config)
    dispatcher = NotificationDispatcher(
        channels, timeout=timeout, max_workers=notif.get("max_workers", 4), clock=clock,
    )
    rules_manager = RulesManager(db, config, clock=clock)
    lifecycle = AlertLifecycleManager(db, dispatcher, clock=clock)
    engine = AlertEngine(rules_manager, lifecycle, db)

    return MonitoringService(
        db=db,
        rules_manager=rules_manager,
        engine=engine,
        lifecycle=lifecycle,
        baselines=BaselineCalculator(db, config, clock=clock),
        capacity=CapacityPlanner(db, utilization_provider, config, clock=clock, timeout=timeout),
        security=SecurityEventRecorder(db, clock=clock),
        health=HealthSummaryAggregator(db, config, clock=clock),
        clock=clock,
    )
