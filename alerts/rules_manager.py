"""Alert rule validation, creation and seed-file loading."""
import re
import math
import uuid
import logging
import yaml
from pathlib import Path

from models.alerts import AlertRule, MetricQuery, AlertCondition, ChannelConfig
from models.enums import Operator, Severity, ChannelType
from utils.errors import ValidationError
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.alerts.rules")

VALID_OPERATORS = {o.value for o in Operator}
VALID_SEVERITIES = {s.value for s in Severity}
VALID_CHANNEL_TYPES = {c.value for c in ChannelType}
VALID_AGGREGATIONS = {"avg", "max", "min", "sum", "count"}
_TIME_WINDOW = re.compile(r"^\d+[smhd]$")


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _require_str(raw, key):
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{key} is required", field=key)
    return value.strip()


class RulesManager:
    def __init__(self, db, config=None, clock=None):
        self.db = db
        alerts_cfg = (config or {}).get("alerts", {})
        self.default_cooldown = alerts_cfg.get("default_cooldown_seconds", 300)
        self.default_interval = alerts_cfg.get("default_evaluation_interval", 60)
        self.default_auto_resolve_timeout = alerts_cfg.get("default_auto_resolve_timeout", 3600)
        self.clock = clock or utcnow

    def parse_rule(self, organization_id, raw, created_by=""):
        """Validate a rule config dict and build an AlertRule. Raises ValidationError."""
        if not isinstance(raw, dict):
            raise ValidationError("rule config must be an object")

        rule = AlertRule(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            rule_name=_require_str(raw, "rule_name"),
            description=raw.get("description"),
            category=_require_str(raw, "category"),
            metric_query=self._parse_query(raw.get("metric_query")),
            conditions=self._parse_conditions(raw.get("conditions")),
            evaluation_interval=self._parse_seconds(raw, "evaluation_interval", self.default_interval, minimum=1),
            alert_cooldown=self._parse_seconds(raw, "alert_cooldown", self.default_cooldown, minimum=0),
            auto_resolve=bool(raw.get("auto_resolve", True)),
            auto_resolve_timeout=self._parse_seconds(
                raw, "auto_resolve_timeout", self.default_auto_resolve_timeout, minimum=0
            ),
            notification_channels=self._parse_channels(raw.get("notification_channels")),
            is_active=bool(raw.get("is_active", True)),
            created_by=created_by or "",
            created_at=self.clock(),
        )
        return rule

    def _parse_query(self, raw):
        if not isinstance(raw, dict):
            raise ValidationError("metric_query is required", field="metric_query")
        metric_name = _require_str(raw, "metric_name")
        aggregation = raw.get("aggregation", "avg")
        if aggregation not in VALID_AGGREGATIONS:
            raise ValidationError(f"Invalid aggregation: {aggregation!r}", field="metric_query.aggregation")
        time_window = raw.get("time_window", "5m")
        if not isinstance(time_window, str) or not _TIME_WINDOW.match(time_window):
            raise ValidationError(f"Invalid time_window: {time_window!r}", field="metric_query.time_window")
        filters = raw.get("filters")
        if filters is not None and not isinstance(filters, dict):
            raise ValidationError("filters must be an object", field="metric_query.filters")
        return MetricQuery(metric_name=metric_name, aggregation=aggregation,
                           time_window=time_window, filters=filters)

    def _parse_conditions(self, raw):
        if not isinstance(raw, list) or not raw:
            raise ValidationError("at least one condition is required", field="conditions")
        conditions = []
        for i, c in enumerate(raw):
            if not isinstance(c, dict):
                raise ValidationError(f"condition {i} must be an object", field="conditions")
            if c.get("operator") not in VALID_OPERATORS:
                raise ValidationError(f"Invalid operator in condition {i}: {c.get('operator')!r}",
                                      field="conditions")
            if not _is_number(c.get("value")):
                raise ValidationError(f"condition {i} value must be a number", field="conditions")
            if c.get("severity") not in VALID_SEVERITIES:
                raise ValidationError(f"Invalid severity in condition {i}: {c.get('severity')!r}",
                                      field="conditions")
            conditions.append(AlertCondition(operator=c["operator"], value=float(c["value"]),
                                             severity=c["severity"]))
        return conditions

    def _parse_channels(self, raw):
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ValidationError("notification_channels must be a list", field="notification_channels")
        channels = []
        for i, c in enumerate(raw):
            if not isinstance(c, dict) or c.get("type") not in VALID_CHANNEL_TYPES:
                raise ValidationError(f"Invalid channel type at {i}: {c.get('type') if isinstance(c, dict) else c!r}",
                                      field="notification_channels")
            config = c.get("config") or {}
            if not isinstance(config, dict):
                raise ValidationError(f"channel {i} config must be an object", field="notification_channels")
            severity_filter = c.get("severity_filter")
            if severity_filter is not None:
                if not isinstance(severity_filter, list) or not set(severity_filter) <= VALID_SEVERITIES:
                    raise ValidationError(f"Invalid severity_filter at {i}: {severity_filter!r}",
                                          field="notification_channels")
            channels.append(ChannelConfig(type=c["type"], config=config, severity_filter=severity_filter))
        return channels

    @staticmethod
    def _parse_seconds(raw, key, default, minimum):
        value = raw.get(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise ValidationError(f"{key} must be an integer >= {minimum}", field=key)
        return value

    def create_rule(self, organization_id, raw, created_by=""):
        rule = self.parse_rule(organization_id, raw, created_by)
        self.db.insert_rule(rule)
        logger.info(f"Created rule '{rule.rule_name}' ({rule.id}) for {organization_id}")
        return rule.id

    def load_file(self, organization_id, rules_path, created_by=""):
        """Create every valid rule in a YAML seed file. Invalid or duplicate entries are logged and skipped."""
        path = Path(rules_path)
        if not path.exists():
            logger.warning(f"Alert rules file not found: {path}")
            return []
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        created = []
        for raw in data.get("rules", []):
            try:
                created.append(self.create_rule(organization_id, raw, created_by))
            except ValidationError as e:
                name = raw.get("rule_name") if isinstance(raw, dict) else raw
                logger.warning(f"Skipping rule {name!r}: {e}")
        logger.info(f"Loaded {len(created)} rule(s) from {path}")
        return created

    def get_active_rules(self, organization_id):
        return self.db.list_rules(organization_id, active_only=True)

    def get_rule(self, organization_id, rule_id):
        return self.db.get_rule(organization_id, rule_id)

    def get_all_rules(self, organization_id):
        return self.db.list_rules(organization_id)

    def set_active(self, organization_id, rule_id, active):
        return self.db.set_rule_active(organization_id, rule_id, active)
