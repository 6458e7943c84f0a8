"""Tests for baseline statistics and the baseline calculator."""
import pytest
from datetime import timedelta

from conftest import ORG, START, make_metric
from analysis.baseline import BaselineCalculator, compute_statistics, confidence_level
from utils.errors import InsufficientDataError, ValidationError


def _seed(db, values, days_ago=1, name="response_time", source="api-1"):
    metrics = [
        make_metric(name=name, source=source, value=v, metric_type="application_response_time",
                    timestamp=START - timedelta(days=days_ago, minutes=i))
        for i, v in enumerate(values)
    ]
    db.insert_metrics(ORG, metrics, [f"{name}-{source}-{days_ago}-{i}" for i in range(len(values))])


class TestStatistics:
    def test_percentiles_nearest_rank(self):
        stats = compute_statistics(list(range(1, 101)))
        assert stats["percentile_95"] == 96
        assert stats["percentile_99"] == 100
        assert stats["min"] == 1
        assert stats["max"] == 100
        assert stats["mean"] == 50.5

    def test_percentile_clamped_for_small_sets(self):
        stats = compute_statistics([5])
        assert stats["percentile_99"] == 5
        assert stats["standard_deviation"] == 0

    def test_median_even_count_takes_index_n_over_2(self):
        assert compute_statistics([4, 1, 3, 2])["median"] == 3
        assert compute_statistics([3, 1, 2])["median"] == 2

    def test_population_std(self):
        assert compute_statistics([2, 4, 4, 4, 5, 5, 7, 9])["standard_deviation"] == pytest.approx(2.0)

    def test_empty_raises(self):
        with pytest.raises(InsufficientDataError):
            compute_statistics([])


@pytest.mark.parametrize("n,expected", [(1, 70), (29, 70), (30, 85), (99, 85), (100, 95), (999, 95), (1000, 99)])
def test_confidence_steps(n, expected):
    assert confidence_level(n) == expected


class TestCalculator:
    def test_calculate_persists(self, temp_db, clock):
        _seed(temp_db, [100, 110, 120, 130, 140])
        calc = BaselineCalculator(temp_db, clock=clock)
        b = calc.calculate(ORG, "response_time", "api-1", "daily")

        assert b.sample_size == 5
        assert b.mean_value == 120
        assert b.upper_bound == pytest.approx(120 + 2.5 * b.standard_deviation)
        assert b.lower_bound == pytest.approx(max(0.0, 120 - 2.5 * b.standard_deviation))
        assert b.confidence_level == 70
        assert b.calculation_period_start == START - timedelta(days=30)
        assert calc.get_latest(ORG, "response_time", "api-1", "daily").id == b.id

    def test_lower_bound_floored_at_zero(self, temp_db, clock):
        _seed(temp_db, [0, 0, 0, 100])
        b = BaselineCalculator(temp_db, clock=clock).calculate(ORG, "response_time", "api-1", "daily")
        assert b.lower_bound == 0

    def test_lookback_window_by_time_frame(self, temp_db, clock):
        _seed(temp_db, [10], days_ago=10)
        _seed(temp_db, [20], days_ago=60)
        _seed(temp_db, [30], days_ago=200)
        calc = BaselineCalculator(temp_db, clock=clock)
        assert calc.calculate(ORG, "response_time", "api-1", "daily").sample_size == 1
        assert calc.calculate(ORG, "response_time", "api-1", "weekly").sample_size == 2
        assert calc.calculate(ORG, "response_time", "api-1", "monthly").sample_size == 3

    def test_no_samples_raises(self, temp_db, clock):
        with pytest.raises(InsufficientDataError):
            BaselineCalculator(temp_db, clock=clock).calculate(ORG, "response_time", "api-1", "daily")

    def test_other_source_ignored(self, temp_db, clock):
        _seed(temp_db, [10, 20], source="api-2")
        with pytest.raises(InsufficientDataError):
            BaselineCalculator(temp_db, clock=clock).calculate(ORG, "response_time", "api-1", "daily")

    def test_recalculation_keeps_history(self, temp_db, clock):
        _seed(temp_db, [10, 20])
        calc = BaselineCalculator(temp_db, clock=clock)
        first = calc.calculate(ORG, "response_time", "api-1", "daily")
        clock.advance(3600)
        second = calc.calculate(ORG, "response_time", "api-1", "daily")
        assert temp_db.count_baselines(ORG, "response_time", "api-1", "daily") == 2
        assert calc.get_latest(ORG, "response_time", "api-1", "daily").id == second.id != first.id

    def test_configured_sigma(self, temp_db, clock):
        _seed(temp_db, [10, 20])
        calc = BaselineCalculator(temp_db, {"baseline": {"anomaly_sigma": 1.0}}, clock=clock)
        b = calc.calculate(ORG, "response_time", "api-1", "daily")
        assert b.upper_bound == pytest.approx(20)
        assert b.anomaly_threshold == 1.0
        assert b.is_anomalous(25) and not b.is_anomalous(15)

    def test_missing_key_rejected(self, temp_db, clock):
        with pytest.raises(ValidationError):
            BaselineCalculator(temp_db, clock=clock).calculate(ORG, "", "api-1", "daily")
