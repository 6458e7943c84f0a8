"""SQLite store for metrics, alert rules, active alerts, baselines, capacity analyses and security events."""
import json
import sqlite3
import logging
import threading
from pathlib import Path

from models.metrics import Metric
from models.alerts import AlertRule, ActiveAlert, MetricQuery, AlertCondition, ChannelConfig
from models.analysis import PerformanceBaseline, CapacityAnalysis, ProjectionPoint, SecurityEvent
from utils.errors import ValidationError, ConcurrencyConflict
from utils.timeutils import to_iso, parse_timestamp

logger = logging.getLogger("metricwatch.db")


class Database:
    def __init__(self, db_path="data/metricwatch.db"):
        self.db_path = db_path
        self.conn = None
        self._lock = threading.RLock()

    def connect(self):
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=10)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self._create_tables()
        return self

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *args):
        self.close()

    def _create_tables(self):
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS metrics (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                metric_name TEXT NOT NULL,
                metric_type TEXT NOT NULL,
                source TEXT NOT NULL,
                value REAL NOT NULL,
                unit TEXT DEFAULT '',
                timestamp TEXT NOT NULL,
                tags TEXT DEFAULT '{}',
                aggregation_period TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_metrics_lookup
                ON metrics(organization_id, metric_name, source, timestamp);

            CREATE TABLE IF NOT EXISTS alert_rules (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                rule_name TEXT NOT NULL,
                description TEXT,
                category TEXT NOT NULL,
                metric_query TEXT NOT NULL,
                conditions TEXT NOT NULL,
                evaluation_interval INTEGER NOT NULL DEFAULT 60,
                alert_cooldown INTEGER NOT NULL DEFAULT 300,
                auto_resolve INTEGER NOT NULL DEFAULT 1,
                auto_resolve_timeout INTEGER DEFAULT 3600,
                notification_channels TEXT DEFAULT '[]',
                is_active INTEGER NOT NULL DEFAULT 1,
                last_evaluated TEXT,
                evaluation_count INTEGER NOT NULL DEFAULT 0,
                alert_count INTEGER NOT NULL DEFAULT 0,
                created_by TEXT DEFAULT '',
                created_at TEXT NOT NULL,
                UNIQUE (organization_id, rule_name)
            );

            CREATE INDEX IF NOT EXISTS idx_rules_active
                ON alert_rules(organization_id, is_active);

            CREATE TABLE IF NOT EXISTS active_alerts (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                rule_id TEXT NOT NULL,
                alert_key TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                severity TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'active',
                trigger_value REAL NOT NULL,
                trigger_timestamp TEXT NOT NULL,
                trigger_metrics TEXT,
                first_seen TEXT NOT NULL,
                last_seen TEXT NOT NULL,
                acknowledged_at TEXT,
                acknowledged_by TEXT,
                resolved_at TEXT,
                resolved_by TEXT,
                resolution_note TEXT,
                notifications_sent TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                FOREIGN KEY (rule_id) REFERENCES alert_rules(id) ON DELETE CASCADE
            );

            CREATE UNIQUE INDEX IF NOT EXISTS idx_alerts_active_key
                ON active_alerts(alert_key) WHERE status = 'active';

            CREATE INDEX IF NOT EXISTS idx_alerts_rule_created
                ON active_alerts(rule_id, created_at);

            CREATE INDEX IF NOT EXISTS idx_alerts_org_status
                ON active_alerts(organization_id, status, severity);

            CREATE TABLE IF NOT EXISTS performance_baselines (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                metric_name TEXT NOT NULL,
                source TEXT NOT NULL,
                time_frame TEXT NOT NULL,
                mean_value REAL NOT NULL,
                median_value REAL,
                standard_deviation REAL,
                percentile_95 REAL,
                percentile_99 REAL,
                min_value REAL,
                max_value REAL,
                upper_bound REAL NOT NULL,
                lower_bound REAL NOT NULL,
                anomaly_threshold REAL NOT NULL DEFAULT 2.5,
                sample_size INTEGER NOT NULL,
                confidence_level INTEGER,
                calculation_period_start TEXT NOT NULL,
                calculation_period_end TEXT NOT NULL,
                last_calculated TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_baselines_key
                ON performance_baselines(organization_id, metric_name, source, time_frame, last_calculated);

            CREATE TABLE IF NOT EXISTS capacity_analyses (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                resource_type TEXT NOT NULL,
                resource_id TEXT NOT NULL,
                current_capacity REAL NOT NULL,
                current_utilization REAL NOT NULL,
                utilization_percentage INTEGER NOT NULL,
                projected_growth_rate REAL NOT NULL,
                forecast_period TEXT NOT NULL,
                projected_utilization TEXT NOT NULL,
                estimated_exhaustion_date TEXT,
                recommendations TEXT NOT NULL,
                analysis_date TEXT NOT NULL,
                data_window_start TEXT NOT NULL,
                data_window_end TEXT NOT NULL,
                sample_count INTEGER NOT NULL DEFAULT 0
            );

            CREATE INDEX IF NOT EXISTS idx_capacity_resource
                ON capacity_analyses(organization_id, resource_type, resource_id, analysis_date);

            CREATE TABLE IF NOT EXISTS security_events (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                event_type TEXT NOT NULL,
                severity TEXT NOT NULL,
                category TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                source TEXT NOT NULL,
                detector TEXT,
                user_id TEXT,
                source_ip TEXT,
                user_agent TEXT,
                target_resource TEXT,
                target_type TEXT,
                event_data TEXT NOT NULL,
                risk_score INTEGER,
                geo_location TEXT,
                correlation_id TEXT,
                event_timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_security_org_time
                ON security_events(organization_id, event_timestamp);
        """)
        self.conn.commit()

    # --- Metrics ---

    def insert_metrics(self, organization_id, metrics, ids):
        """Persist samples in one transaction. Nothing is written if any row fails."""
        rows = [
            (
                metric_id, organization_id, m.metric_name, m.metric_type, m.source,
                float(m.value), m.unit, to_iso(m.timestamp), json.dumps(m.tags),
                m.aggregation_period,
            )
            for metric_id, m in zip(ids, metrics)
        ]
        with self._lock:
            try:
                self.conn.executemany("""
                    INSERT INTO metrics
                    (id, organization_id, metric_name, metric_type, source, value,
                     unit, timestamp, tags, aggregation_period)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, rows)
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise
        logger.debug(f"Saved {len(rows)} metric(s) for {organization_id}")

    def get_metrics(self, organization_id, metric_name, source=None, start=None, end=None):
        query = "SELECT * FROM metrics WHERE organization_id = ? AND metric_name = ?"
        params = [organization_id, metric_name]
        if source is not None:
            query += " AND source = ?"
            params.append(source)
        if start is not None:
            query += " AND timestamp >= ?"
            params.append(to_iso(start))
        if end is not None:
            query += " AND timestamp <= ?"
            params.append(to_iso(end))
        query += " ORDER BY timestamp ASC"
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [_row_to_metric(r) for r in rows]

    def get_latest_metric_value(self, organization_id, metric_name, source=None):
        query = "SELECT value FROM metrics WHERE organization_id = ? AND metric_name = ?"
        params = [organization_id, metric_name]
        if source is not None:
            query += " AND source = ?"
            params.append(source)
        query += " ORDER BY timestamp DESC LIMIT 1"
        with self._lock:
            row = self.conn.execute(query, params).fetchone()
        return row["value"] if row else None

    # --- Alert Rules ---

    def insert_rule(self, rule: AlertRule):
        with self._lock:
            try:
                self.conn.execute("""
                    INSERT INTO alert_rules
                    (id, organization_id, rule_name, description, category, metric_query,
                     conditions, evaluation_interval, alert_cooldown, auto_resolve,
                     auto_resolve_timeout, notification_channels, is_active, created_by, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    rule.id, rule.organization_id, rule.rule_name, rule.description,
                    rule.category, json.dumps(rule.metric_query.to_dict()),
                    json.dumps([c.to_dict() for c in rule.conditions]),
                    rule.evaluation_interval, rule.alert_cooldown, int(rule.auto_resolve),
                    rule.auto_resolve_timeout,
                    json.dumps([c.to_dict() for c in rule.notification_channels]),
                    int(rule.is_active), rule.created_by, to_iso(rule.created_at),
                ))
                self.conn.commit()
            except sqlite3.IntegrityError:
                self.conn.rollback()
                raise ValidationError(
                    f"Alert rule {rule.rule_name!r} already exists", field="rule_name"
                )

    def get_rule(self, organization_id, rule_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM alert_rules WHERE organization_id = ? AND id = ?",
                (organization_id, rule_id),
            ).fetchone()
        return _row_to_rule(row) if row else None

    def list_rules(self, organization_id, active_only=False):
        query = "SELECT * FROM alert_rules WHERE organization_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at ASC"
        with self._lock:
            rows = self.conn.execute(query, (organization_id,)).fetchall()
        return [_row_to_rule(r) for r in rows]

    def set_rule_active(self, organization_id, rule_id, active):
        with self._lock:
            cur = self.conn.execute(
                "UPDATE alert_rules SET is_active = ? WHERE organization_id = ? AND id = ?",
                (int(active), organization_id, rule_id),
            )
            self.conn.commit()
        return cur.rowcount > 0

    def record_rule_evaluation(self, rule_id, evaluated_at, alerted=False):
        """Bump rule counters in place; never read-modify-write."""
        with self._lock:
            self.conn.execute("""
                UPDATE alert_rules
                SET evaluation_count = evaluation_count + 1,
                    alert_count = alert_count + ?,
                    last_evaluated = ?
                WHERE id = ?
            """, (1 if alerted else 0, to_iso(evaluated_at), rule_id))
            self.conn.commit()

    # --- Active Alerts ---

    def get_last_alert_created(self, rule_id):
        """Creation time of the newest alert for a rule, regardless of key or status."""
        with self._lock:
            row = self.conn.execute("""
                SELECT created_at FROM active_alerts
                WHERE rule_id = ? ORDER BY created_at DESC LIMIT 1
            """, (rule_id,)).fetchone()
        return parse_timestamp(row["created_at"]) if row else None

    def upsert_active_alert(self, alert: ActiveAlert):
        """Insert a new active alert or refresh the one already open for its key.

        Single statement against the partial unique index on
        (alert_key) WHERE status = 'active'. Returns (alert_id, created).
        """
        with self._lock:
            try:
                row = self.conn.execute("""
                    INSERT INTO active_alerts
                    (id, organization_id, rule_id, alert_key, title, description, severity,
                     status, trigger_value, trigger_timestamp, trigger_metrics,
                     first_seen, last_seen, notifications_sent, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, 'active', ?, ?, ?, ?, ?, '[]', ?)
                    ON CONFLICT(alert_key) WHERE status = 'active' DO UPDATE SET
                        last_seen = excluded.last_seen,
                        trigger_value = excluded.trigger_value,
                        trigger_timestamp = excluded.trigger_timestamp,
                        trigger_metrics = excluded.trigger_metrics
                    RETURNING id
                """, (
                    alert.id, alert.organization_id, alert.rule_id, alert.alert_key,
                    alert.title, alert.description, alert.severity,
                    float(alert.trigger_value), to_iso(alert.trigger_timestamp),
                    json.dumps(alert.trigger_metrics), to_iso(alert.first_seen),
                    to_iso(alert.last_seen), to_iso(alert.created_at),
                )).fetchone()
                self.conn.commit()
            except sqlite3.IntegrityError as e:
                self.conn.rollback()
                raise ConcurrencyConflict(f"Upsert lost race for {alert.alert_key}: {e}")
        alert_id = row["id"]
        return alert_id, alert_id == alert.id

    def refresh_active_alert(self, alert_key, trigger_value, trigger_timestamp, trigger_metrics, seen_at):
        """Update an open incident for this key without ever creating one."""
        with self._lock:
            row = self.conn.execute("""
                UPDATE active_alerts
                SET last_seen = ?, trigger_value = ?, trigger_timestamp = ?, trigger_metrics = ?
                WHERE alert_key = ? AND status = 'active'
                RETURNING id
            """, (
                to_iso(seen_at), float(trigger_value), to_iso(trigger_timestamp),
                json.dumps(trigger_metrics), alert_key,
            )).fetchone()
            self.conn.commit()
        return row["id"] if row else None

    def append_notification_attempts(self, alert_id, attempts):
        if not attempts:
            return
        with self._lock:
            for attempt in attempts:
                self.conn.execute("""
                    UPDATE active_alerts
                    SET notifications_sent = json_insert(notifications_sent, '$[#]', json(?))
                    WHERE id = ?
                """, (json.dumps(attempt.to_dict()), alert_id))
            self.conn.commit()

    def get_alert(self, organization_id, alert_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM active_alerts WHERE organization_id = ? AND id = ?",
                (organization_id, alert_id),
            ).fetchone()
        return _row_to_alert(row) if row else None

    def list_alerts(self, organization_id, status=None, severity=None, limit=100):
        query = "SELECT * FROM active_alerts WHERE organization_id = ?"
        params = [organization_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        if severity:
            query += " AND severity = ?"
            params.append(severity)
        query += " ORDER BY last_seen DESC LIMIT ?"
        params.append(limit)
        with self._lock:
            rows = self.conn.execute(query, params).fetchall()
        return [_row_to_alert(r) for r in rows]

    def acknowledge_alert(self, organization_id, alert_id, user_id, acknowledged_at):
        with self._lock:
            cur = self.conn.execute("""
                UPDATE active_alerts SET acknowledged_at = ?, acknowledged_by = ?
                WHERE organization_id = ? AND id = ?
            """, (to_iso(acknowledged_at), user_id, organization_id, alert_id))
            self.conn.commit()
        return cur.rowcount > 0

    def resolve_alert(self, organization_id, alert_id, user_id, note, resolved_at):
        """active -> resolved. Returns False if the alert is unknown or already resolved."""
        with self._lock:
            cur = self.conn.execute("""
                UPDATE active_alerts
                SET status = 'resolved', resolved_at = ?, resolved_by = ?, resolution_note = ?
                WHERE organization_id = ? AND id = ? AND status = 'active'
            """, (to_iso(resolved_at), user_id, note, organization_id, alert_id))
            self.conn.commit()
        return cur.rowcount > 0

    def count_active_alerts(self, organization_id, severity):
        with self._lock:
            row = self.conn.execute("""
                SELECT COUNT(*) AS cnt FROM active_alerts
                WHERE organization_id = ? AND status = 'active' AND severity = ?
            """, (organization_id, severity)).fetchone()
        return row["cnt"] if row else 0

    # --- Performance Baselines ---

    def insert_baseline(self, b: PerformanceBaseline):
        with self._lock:
            self.conn.execute("""
                INSERT INTO performance_baselines
                (id, organization_id, metric_name, source, time_frame, mean_value,
                 median_value, standard_deviation, percentile_95, percentile_99,
                 min_value, max_value, upper_bound, lower_bound, anomaly_threshold,
                 sample_size, confidence_level, calculation_period_start,
                 calculation_period_end, last_calculated)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                b.id, b.organization_id, b.metric_name, b.source, b.time_frame,
                b.mean_value, b.median_value, b.standard_deviation, b.percentile_95,
                b.percentile_99, b.min_value, b.max_value, b.upper_bound, b.lower_bound,
                b.anomaly_threshold, b.sample_size, b.confidence_level,
                to_iso(b.calculation_period_start), to_iso(b.calculation_period_end),
                to_iso(b.last_calculated),
            ))
            self.conn.commit()

    def get_latest_baseline(self, organization_id, metric_name, source, time_frame):
        with self._lock:
            row = self.conn.execute("""
                SELECT * FROM performance_baselines
                WHERE organization_id = ? AND metric_name = ? AND source = ? AND time_frame = ?
                ORDER BY last_calculated DESC, rowid DESC LIMIT 1
            """, (organization_id, metric_name, source, time_frame)).fetchone()
        return _row_to_baseline(row) if row else None

    def count_baselines(self, organization_id, metric_name, source, time_frame):
        with self._lock:
            row = self.conn.execute("""
                SELECT COUNT(*) AS cnt FROM performance_baselines
                WHERE organization_id = ? AND metric_name = ? AND source = ? AND time_frame = ?
            """, (organization_id, metric_name, source, time_frame)).fetchone()
        return row["cnt"]

    # --- Capacity Analyses ---

    def insert_capacity_analysis(self, a: CapacityAnalysis):
        with self._lock:
            self.conn.execute("""
                INSERT INTO capacity_analyses
                (id, organization_id, resource_type, resource_id, current_capacity,
                 current_utilization, utilization_percentage, projected_growth_rate,
                 forecast_period, projected_utilization, estimated_exhaustion_date,
                 recommendations, analysis_date, data_window_start, data_window_end, sample_count)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                a.id, a.organization_id, a.resource_type, a.resource_id,
                a.current_capacity, a.current_utilization, a.utilization_percentage,
                a.projected_growth_rate, a.forecast_period,
                json.dumps([p.to_dict() for p in a.projected_utilization]),
                to_iso(a.estimated_exhaustion_date), json.dumps(a.recommendations),
                to_iso(a.analysis_date), to_iso(a.data_window_start),
                to_iso(a.data_window_end), a.sample_count,
            ))
            self.conn.commit()

    def get_capacity_analysis(self, organization_id, analysis_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM capacity_analyses WHERE organization_id = ? AND id = ?",
                (organization_id, analysis_id),
            ).fetchone()
        return _row_to_capacity(row) if row else None

    # --- Security Events ---

    def insert_security_event(self, e: SecurityEvent):
        with self._lock:
            self.conn.execute("""
                INSERT INTO security_events
                (id, organization_id, event_type, severity, category, title, description,
                 source, detector, user_id, source_ip, user_agent, target_resource,
                 target_type, event_data, risk_score, geo_location, correlation_id,
                 event_timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                e.id, e.organization_id, e.event_type, e.severity, e.category, e.title,
                e.description, e.source, e.detector, e.user_id, e.source_ip, e.user_agent,
                e.target_resource, e.target_type, json.dumps(e.event_data), e.risk_score,
                json.dumps(e.geo_location) if e.geo_location is not None else None,
                e.correlation_id, to_iso(e.event_timestamp),
            ))
            self.conn.commit()

    def get_security_event(self, organization_id, event_id):
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM security_events WHERE organization_id = ? AND id = ?",
                (organization_id, event_id),
            ).fetchone()
        return _row_to_security_event(row) if row else None

    def find_security_events(self, organization_id, event_type, source_ip, since):
        with self._lock:
            rows = self.conn.execute("""
                SELECT * FROM security_events
                WHERE organization_id = ? AND event_type = ? AND source_ip = ?
                  AND event_timestamp >= ?
                ORDER BY event_timestamp ASC
            """, (organization_id, event_type, source_ip, to_iso(since))).fetchall()
        return [_row_to_security_event(r) for r in rows]

    def set_correlation_id(self, event_ids, correlation_id):
        with self._lock:
            self.conn.executemany(
                "UPDATE security_events SET correlation_id = ? WHERE id = ?",
                [(correlation_id, event_id) for event_id in event_ids],
            )
            self.conn.commit()

    def count_security_events_since(self, organization_id, since):
        with self._lock:
            row = self.conn.execute("""
                SELECT COUNT(*) AS cnt FROM security_events
                WHERE organization_id = ? AND event_timestamp >= ?
            """, (organization_id, to_iso(since))).fetchone()
        return row["cnt"] if row else 0


def _loads(raw, default):
    if raw is None:
        return default
    return json.loads(raw)


def _row_to_metric(row):
    return Metric(
        metric_name=row["metric_name"],
        metric_type=row["metric_type"],
        source=row["source"],
        value=row["value"],
        unit=row["unit"] or "",
        timestamp=parse_timestamp(row["timestamp"]),
        tags=_loads(row["tags"], {}),
        aggregation_period=row["aggregation_period"],
    )


def _row_to_rule(row):
    query = _loads(row["metric_query"], {})
    return AlertRule(
        id=row["id"],
        organization_id=row["organization_id"],
        rule_name=row["rule_name"],
        description=row["description"],
        category=row["category"],
        metric_query=MetricQuery(
            metric_name=query.get("metric_name", ""),
            aggregation=query.get("aggregation", "avg"),
            time_window=query.get("time_window", "5m"),
            filters=query.get("filters"),
        ),
        conditions=[AlertCondition(**c) for c in _loads(row["conditions"], [])],
        evaluation_interval=row["evaluation_interval"],
        alert_cooldown=row["alert_cooldown"],
        auto_resolve=bool(row["auto_resolve"]),
        auto_resolve_timeout=row["auto_resolve_timeout"],
        notification_channels=[ChannelConfig(**c) for c in _loads(row["notification_channels"], [])],
        is_active=bool(row["is_active"]),
        evaluation_count=row["evaluation_count"],
        alert_count=row["alert_count"],
        last_evaluated=parse_timestamp(row["last_evaluated"]),
        created_by=row["created_by"] or "",
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_alert(row):
    return ActiveAlert(
        id=row["id"],
        organization_id=row["organization_id"],
        rule_id=row["rule_id"],
        alert_key=row["alert_key"],
        title=row["title"],
        description=row["description"] or "",
        severity=row["severity"],
        status=row["status"],
        trigger_value=row["trigger_value"],
        trigger_timestamp=parse_timestamp(row["trigger_timestamp"]),
        trigger_metrics=_loads(row["trigger_metrics"], {}),
        first_seen=parse_timestamp(row["first_seen"]),
        last_seen=parse_timestamp(row["last_seen"]),
        acknowledged_at=parse_timestamp(row["acknowledged_at"]),
        acknowledged_by=row["acknowledged_by"],
        resolved_at=parse_timestamp(row["resolved_at"]),
        resolved_by=row["resolved_by"],
        resolution_note=row["resolution_note"],
        notifications_sent=_loads(row["notifications_sent"], []),
        created_at=parse_timestamp(row["created_at"]),
    )


def _row_to_baseline(row):
    return PerformanceBaseline(
        id=row["id"],
        organization_id=row["organization_id"],
        metric_name=row["metric_name"],
        source=row["source"],
        time_frame=row["time_frame"],
        mean_value=row["mean_value"],
        median_value=row["median_value"],
        standard_deviation=row["standard_deviation"],
        percentile_95=row["percentile_95"],
        percentile_99=row["percentile_99"],
        min_value=row["min_value"],
        max_value=row["max_value"],
        upper_bound=row["upper_bound"],
        lower_bound=row["lower_bound"],
        anomaly_threshold=row["anomaly_threshold"],
        sample_size=row["sample_size"],
        confidence_level=row["confidence_level"],
        calculation_period_start=parse_timestamp(row["calculation_period_start"]),
        calculation_period_end=parse_timestamp(row["calculation_period_end"]),
        last_calculated=parse_timestamp(row["last_calculated"]),
    )


def _row_to_capacity(row):
    return CapacityAnalysis(
        id=row["id"],
        organization_id=row["organization_id"],
        resource_type=row["resource_type"],
        resource_id=row["resource_id"],
        current_capacity=row["current_capacity"],
        current_utilization=row["current_utilization"],
        utilization_percentage=row["utilization_percentage"],
        projected_growth_rate=row["projected_growth_rate"],
        forecast_period=row["forecast_period"],
        projected_utilization=[ProjectionPoint(**p) for p in _loads(row["projected_utilization"], [])],
        estimated_exhaustion_date=parse_timestamp(row["estimated_exhaustion_date"]),
        recommendations=_loads(row["recommendations"], []),
        analysis_date=parse_timestamp(row["analysis_date"]),
        data_window_start=parse_timestamp(row["data_window_start"]),
        data_window_end=parse_timestamp(row["data_window_end"]),
        sample_count=row["sample_count"],
    )


def _row_to_security_event(row):
    return SecurityEvent(
        id=row["id"],
        organization_id=row["organization_id"],
        event_type=row["event_type"],
        severity=row["severity"],
        category=row["category"],
        title=row["title"],
        source=row["source"],
        description=row["description"],
        detector=row["detector"],
        user_id=row["user_id"],
        source_ip=row["source_ip"],
        user_agent=row["user_agent"],
        target_resource=row["target_resource"],
        target_type=row["target_type"],
        event_data=_loads(row["event_data"], {}),
        risk_score=row["risk_score"],
        geo_location=_loads(row["geo_location"], None),
        correlation_id=row["correlation_id"],
        event_timestamp=parse_timestamp(row["event_timestamp"]),
    )
