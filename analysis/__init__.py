"""Statistical baselines and capacity forecasting."""
from analysis.baseline import BaselineCalculator, compute_statistics, confidence_level
from analysis.capacity import CapacityPlanner, StoredMetricsUtilizationProvider
