"""Exception taxonomy for the ingestion and alerting engine."""


class MetricwatchError(Exception):
    """Base class for all metricwatch errors."""


class ValidationError(MetricwatchError):
    """Malformed rule config or metric. Rejected before anything is written."""

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


class InsufficientDataError(MetricwatchError):
    """A calculation found no historical samples to work with."""


class TransportError(MetricwatchError):
    """A notification send or resource-metric fetch failed."""

    def __init__(self, message, channel=None, status_code=None):
        super().__init__(message)
        self.channel = channel
        self.status_code = status_code


class ConcurrencyConflict(MetricwatchError):
    """Lost a write race. Callers retry; it never reaches the public surface."""


class NotFoundError(MetricwatchError):
    """Referenced alert or rule does not exist for this organization."""
