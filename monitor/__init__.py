"""Service layer: ingestion facade, security recording, health rollup, scheduling."""
from monitor.service import MonitoringService, build_service
from monitor.security import SecurityEventRecorder
from monitor.health import HealthSummaryAggregator, determine_performance_status
from monitor.scheduler import AnalysisScheduler
