"""Dataclasses for baselines, capacity analyses and security events."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from utils.timeutils import to_iso


@dataclass
class PerformanceBaseline:
    id: str = ""
    organization_id: str = ""
    metric_name: str = ""
    source: str = ""
    time_frame: str = "daily"
    mean_value: float = 0.0
    median_value: float = 0.0
    standard_deviation: float = 0.0
    percentile_95: float = 0.0
    percentile_99: float = 0.0
    min_value: float = 0.0
    max_value: float = 0.0
    upper_bound: float = 0.0
    lower_bound: float = 0.0
    anomaly_threshold: float = 2.5
    sample_size: int = 0
    confidence_level: int = 0
    calculation_period_start: Optional[datetime] = None
    calculation_period_end: Optional[datetime] = None
    last_calculated: Optional[datetime] = None

    def is_anomalous(self, value):
        return value > self.upper_bound or value < self.lower_bound

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "metric_name": self.metric_name,
            "source": self.source,
            "time_frame": self.time_frame,
            "mean_value": self.mean_value,
            "median_value": self.median_value,
            "standard_deviation": self.standard_deviation,
            "percentile_95": self.percentile_95,
            "percentile_99": self.percentile_99,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "upper_bound": self.upper_bound,
            "lower_bound": self.lower_bound,
            "anomaly_threshold": self.anomaly_threshold,
            "sample_size": self.sample_size,
            "confidence_level": self.confidence_level,
            "calculation_period_start": to_iso(self.calculation_period_start),
            "calculation_period_end": to_iso(self.calculation_period_end),
            "last_calculated": to_iso(self.last_calculated),
        }


@dataclass
class ProjectionPoint:
    date: str
    utilization: float
    confidence: int

    def to_dict(self):
        return {"date": self.date, "utilization": self.utilization, "confidence": self.confidence}


@dataclass
class CapacityAnalysis:
    id: str = ""
    organization_id: str = ""
    resource_type: str = ""
    resource_id: str = ""
    current_capacity: float = 0.0
    current_utilization: float = 0.0
    utilization_percentage: int = 0
    projected_growth_rate: float = 0.0
    forecast_period: str = "12m"
    projected_utilization: list = field(default_factory=list)
    estimated_exhaustion_date: Optional[datetime] = None
    recommendations: list = field(default_factory=list)
    analysis_date: Optional[datetime] = None
    data_window_start: Optional[datetime] = None
    data_window_end: Optional[datetime] = None
    sample_count: int = 0

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "current_capacity": self.current_capacity,
            "current_utilization": self.current_utilization,
            "utilization_percentage": self.utilization_percentage,
            "projected_growth_rate": self.projected_growth_rate,
            "forecast_period": self.forecast_period,
            "projected_utilization": [p.to_dict() for p in self.projected_utilization],
            "estimated_exhaustion_date": to_iso(self.estimated_exhaustion_date),
            "recommendations": list(self.recommendations),
            "analysis_date": to_iso(self.analysis_date),
            "data_window_start": to_iso(self.data_window_start),
            "data_window_end": to_iso(self.data_window_end),
            "sample_count": self.sample_count,
        }


@dataclass
class SecurityEvent:
    id: str = ""
    organization_id: str = ""
    event_type: str = ""
    severity: str = "info"
    category: str = ""
    title: str = ""
    source: str = ""
    description: Optional[str] = None
    detector: Optional[str] = None
    user_id: Optional[str] = None
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None
    target_resource: Optional[str] = None
    target_type: Optional[str] = None
    event_data: dict = field(default_factory=dict)
    risk_score: Optional[int] = None
    geo_location: Optional[dict] = None
    correlation_id: Optional[str] = None
    event_timestamp: Optional[datetime] = None

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "event_type": self.event_type,
            "severity": self.severity,
            "category": self.category,
            "title": self.title,
            "source": self.source,
            "description": self.description,
            "detector": self.detector,
            "user_id": self.user_id,
            "source_ip": self.source_ip,
            "user_agent": self.user_agent,
            "target_resource": self.target_resource,
            "target_type": self.target_type,
            "event_data": self.event_data,
            "risk_score": self.risk_score,
            "geo_location": self.geo_location,
            "correlation_id": self.correlation_id,
            "event_timestamp": to_iso(self.event_timestamp),
        }
