"""Dataclass for a single timestamped measurement."""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import MetricType
from utils.errors import ValidationError
from utils.timeutils import utcnow, parse_timestamp, to_iso


@dataclass(frozen=True)
class Metric:
    metric_name: str
    metric_type: str
    source: str
    value: float
    unit: str = ""
    timestamp: datetime = field(default_factory=utcnow)
    tags: dict = field(default_factory=dict)
    aggregation_period: Optional[str] = None

    def validate(self):
        """Raise ValidationError if any required field is missing or malformed."""
        if not isinstance(self.metric_name, str) or not self.metric_name.strip():
            raise ValidationError("metric_name is required", field="metric_name")
        if not isinstance(self.source, str) or not self.source.strip():
            raise ValidationError("source is required", field="source")
        if self.metric_type not in {t.value for t in MetricType}:
            raise ValidationError(f"Unknown metric_type: {self.metric_type!r}", field="metric_type")
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValidationError("value must be a number", field="value")
        if not math.isfinite(self.value):
            raise ValidationError("value must be finite", field="value")
        if not isinstance(self.unit, str):
            raise ValidationError("unit must be a string", field="unit")
        if not isinstance(self.timestamp, datetime):
            raise ValidationError("timestamp must be a datetime", field="timestamp")
        if not isinstance(self.tags, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in self.tags.items()
        ):
            raise ValidationError("tags must map strings to strings", field="tags")
        return self

    def to_dict(self):
        return {
            "metric_name": self.metric_name,
            "metric_type": self.metric_type,
            "source": self.source,
            "value": self.value,
            "unit": self.unit,
            "timestamp": to_iso(self.timestamp),
            "tags": dict(self.tags),
            "aggregation_period": self.aggregation_period,
        }

    @classmethod
    def from_dict(cls, d):
        """Build and validate a Metric from a JSON-ish payload or DB row."""
        if not isinstance(d, dict):
            raise ValidationError("metric payload must be an object")
        for key in ("metric_name", "metric_type", "source", "value"):
            if d.get(key) is None:
                raise ValidationError(f"{key} is required", field=key)
        try:
            timestamp = parse_timestamp(d.get("timestamp")) or utcnow()
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid timestamp: {d.get('timestamp')!r}", field="timestamp")
        value = d["value"]
        if isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        metric_type = d["metric_type"]
        if isinstance(metric_type, MetricType):
            metric_type = metric_type.value
        metric = cls(
            metric_name=d["metric_name"],
            metric_type=metric_type,
            source=d["source"],
            value=value,
            unit=d.get("unit") or "",
            timestamp=timestamp,
            tags=d.get("tags") or {},
            aggregation_period=d.get("aggregation_period"),
        )
        return metric.validate()
