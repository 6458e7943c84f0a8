"""Security event recording with post-insert analysis hooks."""
import uuid
import logging
from datetime import timedelta

from models.analysis import SecurityEvent
from models.enums import Severity
from utils.errors import ValidationError
from utils.timeutils import utcnow, parse_timestamp

logger = logging.getLogger("metricwatch.monitor.security")

_REQUIRED = ("event_type", "category", "title", "source")
_OPTIONAL_STR = ("description", "detector", "user_id", "source_ip", "user_agent",
                 "target_resource", "target_type")


class SecurityEventRecorder:
    """Append-only recorder. Every insert runs the registered analysis hooks.

    Hooks receive the stored SecurityEvent. A failing hook is logged and never
    undoes the insert.
    """

    def __init__(self, db, clock=None, correlation_window_minutes=60):
        self.db = db
        self.clock = clock or utcnow
        self.correlation_window = timedelta(minutes=correlation_window_minutes)
        self._hooks = [self.correlate_by_source]

    def on_event(self, callback):
        """Register an analysis hook called after each recorded event."""
        self._hooks.append(callback)

    def parse_event(self, organization_id, raw):
        if not isinstance(raw, dict):
            raise ValidationError("security event must be an object")
        for key in _REQUIRED:
            if not isinstance(raw.get(key), str) or not raw[key].strip():
                raise ValidationError(f"{key} is required", field=key)
        severity = raw.get("severity")
        if severity not in {s.value for s in Severity}:
            raise ValidationError(f"Invalid severity: {severity!r}", field="severity")
        event_data = raw.get("event_data")
        if event_data is None:
            event_data = {}
        if not isinstance(event_data, dict):
            raise ValidationError("event_data must be an object", field="event_data")
        risk_score = raw.get("risk_score")
        if risk_score is not None and (
            isinstance(risk_score, bool) or not isinstance(risk_score, int) or not 0 <= risk_score <= 100
        ):
            raise ValidationError("risk_score must be an integer 0-100", field="risk_score")
        geo = raw.get("geo_location")
        if geo is not None and not isinstance(geo, dict):
            raise ValidationError("geo_location must be an object", field="geo_location")
        try:
            timestamp = parse_timestamp(raw.get("event_timestamp")) or self.clock()
        except (TypeError, ValueError):
            raise ValidationError("Invalid event_timestamp", field="event_timestamp")

        return SecurityEvent(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            event_type=raw["event_type"],
            severity=severity,
            category=raw["category"],
            title=raw["title"],
            source=raw["source"],
            event_data=event_data,
            risk_score=risk_score,
            geo_location=geo,
            event_timestamp=timestamp,
            **{key: raw.get(key) for key in _OPTIONAL_STR},
        )

    def record(self, organization_id, raw):
        event = self.parse_event(organization_id, raw)
        self.db.insert_security_event(event)
        logger.info(f"Security event {event.event_type} [{event.severity}] from {event.source} ({event.id})")

        for hook in self._hooks:
            try:
                hook(event)
            except Exception as e:
                logger.warning(f"Security analysis hook failed for {event.id}: {e}")
        return event.id

    def correlate_by_source(self, event):
        """Group same-type events from one source IP seen within the correlation window."""
        if not event.source_ip:
            return None
        related = self.db.find_security_events(
            event.organization_id, event.event_type, event.source_ip,
            since=event.event_timestamp - self.correlation_window,
        )
        if len(related) < 2:
            return None
        correlation_id = next((e.correlation_id for e in related if e.correlation_id), None)
        correlation_id = correlation_id or str(uuid.uuid4())
        self.db.set_correlation_id([e.id for e in related], correlation_id)
        logger.info(f"Correlated {len(related)} {event.event_type} events from {event.source_ip}")
        return correlation_id
