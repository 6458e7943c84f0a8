"""Capacity planning: growth rate, 12-month utilization forecast, exhaustion date, recommendations."""
import uuid
import logging
from datetime import timedelta
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Protocol

import numpy as np

from models.analysis import CapacityAnalysis, ProjectionPoint
from utils.errors import InsufficientDataError, ValidationError
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.analysis.capacity")

DAYS_PER_MONTH = 30

# Each entry fires when utilization / capacity exceeds min_ratio.
DEFAULT_RECOMMENDATION_RULES = [
    {
        "min_ratio": 0.8,
        "type": "scale_up",
        "priority": "high",
        "description": "Resource utilization is above 80%. Consider scaling up capacity.",
        "estimated_cost": 500,
    },
]


class ResourceUtilizationProvider(Protocol):
    def get_current_utilization(self, organization_id: str, resource_type: str, resource_id: str) -> dict: ...


class StoredMetricsUtilizationProvider:
    """Reads ``<resource_type>_utilization`` / ``<resource_type>_capacity`` samples with source=resource_id."""

    def __init__(self, db, window_days=90, clock=None):
        self.db = db
        self.window_days = window_days
        self.clock = clock or utcnow

    @staticmethod
    def metric_names(resource_type):
        return f"{resource_type}_utilization", f"{resource_type}_capacity"

    def get_utilization_history(self, organization_id, resource_type, resource_id):
        util_name, _ = self.metric_names(resource_type)
        end = self.clock()
        start = end - timedelta(days=self.window_days)
        return self.db.get_metrics(organization_id, util_name, source=resource_id, start=start, end=end)

    def get_current_utilization(self, organization_id, resource_type, resource_id):
        _, cap_name = self.metric_names(resource_type)
        history = self.get_utilization_history(organization_id, resource_type, resource_id)
        capacity = self.db.get_latest_metric_value(organization_id, cap_name, source=resource_id)
        if not history or capacity is None:
            return None
        return {
            "capacity": capacity,
            "utilization": history[-1].value,
            "sample_count": len(history),
        }


def recommend(utilization, capacity, rules):
    """Apply the threshold table. Returns a list of recommendation dicts."""
    ratio = utilization / capacity
    recommendations = []
    for rule in sorted(rules, key=lambda r: r["min_ratio"], reverse=True):
        if ratio > rule["min_ratio"]:
            rec = {
                "type": rule["type"],
                "priority": rule.get("priority", "medium"),
                "description": rule.get("description", ""),
            }
            if rule.get("estimated_cost") is not None:
                rec["estimated_cost"] = rule["estimated_cost"]
            recommendations.append(rec)
    return recommendations


def growth_per_day(history):
    """Least-squares slope of utilization against time, in units per day."""
    if len(history) < 2:
        return 0.0
    t0 = history[0].timestamp
    days = np.array([(m.timestamp - t0).total_seconds() / 86400 for m in history])
    values = np.array([m.value for m in history], dtype=float)
    if np.ptp(days) == 0:
        return 0.0
    slope, _ = np.polyfit(days, values, 1)
    return float(slope)


class CapacityPlanner:
    def __init__(self, db, provider=None, config=None, clock=None, timeout=10):
        self.db = db
        cfg = (config or {}).get("capacity", {})
        self.forecast_months = cfg.get("forecast_months", 12)
        self.window_days = cfg.get("data_window_days", 90)
        self.rules = cfg.get("recommendations") or DEFAULT_RECOMMENDATION_RULES
        self.clock = clock or utcnow
        self.provider = provider or StoredMetricsUtilizationProvider(db, self.window_days, self.clock)
        self.timeout = timeout

    def _fetch_current(self, organization_id, resource_type, resource_id):
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(
                self.provider.get_current_utilization, organization_id, resource_type, resource_id
            )
            return future.result(timeout=self.timeout)
        except FutureTimeout:
            logger.warning(f"Utilization fetch for {resource_type}/{resource_id} timed out after {self.timeout}s")
        except Exception as e:
            logger.warning(f"Utilization fetch for {resource_type}/{resource_id} failed: {e}")
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return None

    def _history(self, organization_id, resource_type, resource_id):
        get_history = getattr(self.provider, "get_utilization_history", None)
        if get_history is None:
            return []
        try:
            return get_history(organization_id, resource_type, resource_id)
        except Exception as e:
            logger.warning(f"Utilization history for {resource_type}/{resource_id} unavailable: {e}")
            return []

    def project(self, now, utilization, capacity, slope_per_day):
        """Monthly forecast points and the date utilization reaches capacity (None if never)."""
        monthly = slope_per_day * DAYS_PER_MONTH
        points = []
        for month in range(1, self.forecast_months + 1):
            points.append(ProjectionPoint(
                date=(now + timedelta(days=DAYS_PER_MONTH * month)).date().isoformat(),
                utilization=round(max(0.0, utilization + monthly * month), 2),
                confidence=max(50, 95 - 5 * (month - 1)),
            ))

        if utilization >= capacity:
            exhaustion = now
        elif slope_per_day > 0:
            exhaustion = now + timedelta(days=(capacity - utilization) / slope_per_day)
        else:
            exhaustion = None
        return points, exhaustion

    def analyze(self, organization_id, resource_type, resource_id):
        """Run and persist one capacity analysis."""
        if not resource_type or not resource_id:
            raise ValidationError("resource_type and resource_id are required")

        current = self._fetch_current(organization_id, resource_type, resource_id)
        if not current or not current.get("sample_count"):
            raise InsufficientDataError(f"No utilization data for {resource_type}/{resource_id}")
        capacity = float(current["capacity"])
        utilization = float(current["utilization"])
        if capacity <= 0:
            raise InsufficientDataError(f"Capacity for {resource_type}/{resource_id} is not positive")

        now = self.clock()
        slope = growth_per_day(self._history(organization_id, resource_type, resource_id))
        growth_rate = (slope * DAYS_PER_MONTH / utilization * 100) if utilization > 0 else 0.0
        points, exhaustion = self.project(now, utilization, capacity, slope)

        analysis = CapacityAnalysis(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            resource_type=resource_type,
            resource_id=resource_id,
            current_capacity=capacity,
            current_utilization=utilization,
            utilization_percentage=round(utilization / capacity * 100),
            projected_growth_rate=round(growth_rate, 2),
            forecast_period=f"{self.forecast_months}m",
            projected_utilization=points,
            estimated_exhaustion_date=exhaustion,
            recommendations=recommend(utilization, capacity, self.rules),
            analysis_date=now,
            data_window_start=now - timedelta(days=self.window_days),
            data_window_end=now,
            sample_count=int(current["sample_count"]),
        )
        self.db.insert_capacity_analysis(analysis)
        logger.info(
            f"Capacity {resource_type}/{resource_id}: {analysis.utilization_percentage}% used, "
            f"growth {analysis.projected_growth_rate}%/month, {len(analysis.recommendations)} recommendation(s)"
        )
        return analysis
