"""Enums for metric types, severities, alert states and analysis outcomes."""
from enum import Enum


class MetricType(str, Enum):
    SYSTEM_CPU = "system_cpu"
    SYSTEM_MEMORY = "system_memory"
    SYSTEM_DISK = "system_disk"
    SYSTEM_NETWORK = "system_network"
    APPLICATION_RESPONSE_TIME = "application_response_time"
    APPLICATION_THROUGHPUT = "application_throughput"
    APPLICATION_ERROR_RATE = "application_error_rate"
    DATABASE_CONNECTIONS = "database_connections"
    DATABASE_QUERY_TIME = "database_query_time"
    API_REQUEST_COUNT = "api_request_count"
    API_ERROR_COUNT = "api_error_count"
    USER_SESSION_COUNT = "user_session_count"
    BUSINESS_KPI = "business_kpi"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    LOW = "low"


class AlertStatus(str, Enum):
    ACTIVE = "active"
    RESOLVED = "resolved"


class Operator(str, Enum):
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    EQ = "eq"
    NE = "ne"


class ChannelType(str, Enum):
    EMAIL = "email"
    SLACK = "slack"
    WEBHOOK = "webhook"
    SMS = "sms"
    CONSOLE = "console"
    FILE = "file"


class OverallStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


class PerformanceStatus(str, Enum):
    OPTIMAL = "optimal"
    WARNING = "warning"
    DEGRADED = "degraded"
