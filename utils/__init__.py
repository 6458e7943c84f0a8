"""Utility modules for metricwatch."""
from utils.logger import setup_logging
from utils.errors import (
    MetricwatchError, ValidationError, InsufficientDataError,
    TransportError, ConcurrencyConflict, NotFoundError,
)
from utils.formatters import format_value, format_pct, format_timestamp, time_ago
from utils.http_client import HTTPClient
