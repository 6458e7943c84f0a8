"""Performance baselines: distribution summary and anomaly bounds over a lookback window."""
import math
import uuid
import logging
from datetime import timedelta

import numpy as np

from models.analysis import PerformanceBaseline
from utils.errors import InsufficientDataError, ValidationError
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.analysis.baseline")

# (minimum sample size, confidence %) checked top-down
CONFIDENCE_STEPS = [(1000, 99), (100, 95), (30, 85), (0, 70)]


def confidence_level(sample_size):
    for minimum, level in CONFIDENCE_STEPS:
        if sample_size >= minimum:
            return level
    return CONFIDENCE_STEPS[-1][1]


def _nearest_rank(sorted_values, p):
    index = min(int(math.floor(len(sorted_values) * p)), len(sorted_values) - 1)
    return float(sorted_values[index])


def compute_statistics(values):
    """Summary statistics for a non-empty sequence of numbers.

    median is ``sorted[n // 2]`` with no interpolation, so for an even count
    it is the upper of the two middle elements. Percentiles are nearest-rank:
    ``sorted[floor(n * p)]`` clamped to the last index. Standard deviation is
    the population form.
    """
    if len(values) == 0:
        raise InsufficientDataError("No samples to summarize")
    arr = np.sort(np.asarray(values, dtype=float))
    return {
        "mean": float(arr.mean()),
        "median": float(arr[len(arr) // 2]),
        "standard_deviation": float(arr.std()),
        "percentile_95": _nearest_rank(arr, 0.95),
        "percentile_99": _nearest_rank(arr, 0.99),
        "min": float(arr[0]),
        "max": float(arr[-1]),
    }


class BaselineCalculator:
    def __init__(self, db, config=None, clock=None):
        self.db = db
        cfg = (config or {}).get("baseline", {})
        self.sigma = cfg.get("anomaly_sigma", 2.5)
        self.lookback = cfg.get("lookback_days", {"daily": 30, "weekly": 90})
        self.default_lookback = cfg.get("default_lookback_days", 365)
        self.clock = clock or utcnow

    def lookback_days(self, time_frame):
        return self.lookback.get(time_frame, self.default_lookback)

    def calculate(self, organization_id, metric_name, source, time_frame):
        """Compute and persist a new baseline. Older rows for the same key stay as history."""
        for name, value in (("metric_name", metric_name), ("source", source), ("time_frame", time_frame)):
            if not isinstance(value, str) or not value:
                raise ValidationError(f"{name} is required", field=name)

        end = self.clock()
        start = end - timedelta(days=self.lookback_days(time_frame))
        samples = self.db.get_metrics(organization_id, metric_name, source=source, start=start, end=end)
        if not samples:
            raise InsufficientDataError(
                f"Insufficient data for baseline calculation: {metric_name}@{source} ({time_frame})"
            )

        stats = compute_statistics([m.value for m in samples])
        spread = self.sigma * stats["standard_deviation"]
        baseline = PerformanceBaseline(
            id=str(uuid.uuid4()),
            organization_id=organization_id,
            metric_name=metric_name,
            source=source,
            time_frame=time_frame,
            mean_value=stats["mean"],
            median_value=stats["median"],
            standard_deviation=stats["standard_deviation"],
            percentile_95=stats["percentile_95"],
            percentile_99=stats["percentile_99"],
            min_value=stats["min"],
            max_value=stats["max"],
            upper_bound=stats["mean"] + spread,
            lower_bound=max(0.0, stats["mean"] - spread),
            anomaly_threshold=self.sigma,
            sample_size=len(samples),
            confidence_level=confidence_level(len(samples)),
            calculation_period_start=start,
            calculation_period_end=end,
            last_calculated=end,
        )
        self.db.insert_baseline(baseline)
        logger.info(
            f"Baseline {metric_name}@{source} ({time_frame}): n={baseline.sample_size} "
            f"mean={baseline.mean_value:.3f} bounds=[{baseline.lower_bound:.3f}, {baseline.upper_bound:.3f}]"
        )
        return baseline

    def get_latest(self, organization_id, metric_name, source, time_frame):
        return self.db.get_latest_baseline(organization_id, metric_name, source, time_frame)
