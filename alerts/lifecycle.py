"""Alert lifecycle: cooldown, deduplicated create-or-update, acknowledge, resolve.

States: (none) -> active -> resolved. A breach for a key that already has an
active alert refreshes that row in place; only a brand-new row notifies.
"""
import uuid
import logging

from models.alerts import ActiveAlert, make_alert_key
from models.enums import AlertStatus
from notifications.message import describe_breach
from utils.errors import ConcurrencyConflict, NotFoundError
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.alerts.lifecycle")


class AlertLifecycleManager:
    def __init__(self, db, dispatcher, clock=None, max_retries=3):
        self.db = db
        self.dispatcher = dispatcher
        self.clock = clock or utcnow
        self.max_retries = max_retries

    def is_in_cooldown(self, rule):
        """True if any alert for this rule (any key) was created less than alert_cooldown seconds ago."""
        if rule.alert_cooldown <= 0:
            return False
        last_created = self.db.get_last_alert_created(rule.id)
        if last_created is None:
            return False
        elapsed = (self.clock() - last_created).total_seconds()
        return elapsed < rule.alert_cooldown

    def build_alert(self, rule, metric, condition):
        now = self.clock()
        return ActiveAlert(
            id=str(uuid.uuid4()),
            organization_id=rule.organization_id,
            rule_id=rule.id,
            alert_key=make_alert_key(rule.id, metric.source, metric.metric_name),
            title=f"{rule.rule_name} - {metric.source}",
            description=describe_breach(metric, condition),
            severity=condition.severity,
            status=AlertStatus.ACTIVE.value,
            trigger_value=metric.value,
            trigger_timestamp=metric.timestamp,
            trigger_metrics=metric.to_dict(),
            first_seen=now,
            last_seen=now,
            created_at=now,
        )

    def trigger(self, rule, metric, condition):
        """Create or refresh the active alert for this breach. Returns (alert_id, created)."""
        alert = self.build_alert(rule, metric, condition)
        alert_id, created = self._upsert(alert)

        if created:
            logger.info(f"Alert opened: {alert.title} [{alert.severity}] ({alert_id})")
            self._notify(rule, metric, condition, alert_id)
        else:
            logger.debug(f"Alert refreshed: {alert.alert_key} ({alert_id})")
        return alert_id, created

    def refresh(self, rule, metric):
        """Touch the open incident for this key, if any. Never creates or notifies."""
        return self.db.refresh_active_alert(
            make_alert_key(rule.id, metric.source, metric.metric_name),
            metric.value, metric.timestamp, metric.to_dict(), self.clock(),
        )

    def _upsert(self, alert):
        for attempt in range(self.max_retries):
            try:
                return self.db.upsert_active_alert(alert)
            except ConcurrencyConflict as e:
                logger.debug(f"{e} (attempt {attempt + 1})")

        # Another writer owns the key; converge on its row.
        existing_id = self.db.refresh_active_alert(
            alert.alert_key, alert.trigger_value, alert.trigger_timestamp,
            alert.trigger_metrics, alert.last_seen,
        )
        if existing_id is None:
            raise ConcurrencyConflict(f"Could not settle active alert for {alert.alert_key}")
        return existing_id, False

    def _notify(self, rule, metric, condition, alert_id):
        try:
            attempts = self.dispatcher.dispatch(rule, metric, condition, alert_id=alert_id)
            self.db.append_notification_attempts(alert_id, attempts)
        except Exception as e:
            logger.error(f"Notification dispatch failed for alert {alert_id}: {e}")

    def acknowledge(self, organization_id, alert_id, user_id):
        if not self.db.acknowledge_alert(organization_id, alert_id, user_id, self.clock()):
            raise NotFoundError(f"Alert {alert_id} not found")
        logger.info(f"Alert {alert_id} acknowledged by {user_id}")

    def resolve(self, organization_id, alert_id, user_id=None, note=None):
        """active -> resolved. A later breach for the same key opens a new incident."""
        if not self.db.resolve_alert(organization_id, alert_id, user_id, note, self.clock()):
            alert = self.db.get_alert(organization_id, alert_id)
            if alert is None:
                raise NotFoundError(f"Alert {alert_id} not found")
            logger.info(f"Alert {alert_id} already {alert.status}")
            return False
        logger.info(f"Alert {alert_id} resolved by {user_id or 'unknown'}")
        return True
