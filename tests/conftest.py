"""Shared test fixtures."""
import os
import sys
import pytest
import tempfile
from datetime import datetime, timedelta, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.database import Database
from models.metrics import Metric

ORG = "org-test"
START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start=START):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds=0, **kwargs):
        self.now = self.now + timedelta(seconds=seconds, **kwargs)
        return self.now


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    db = Database(db_path)
    db.connect()
    yield db
    db.close()
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture
def clock():
    return FakeClock()


def make_metric(name="cpu_usage", value=90.0, source="web-1", timestamp=None,
                metric_type="system_cpu", unit="%", tags=None):
    return Metric(
        metric_name=name,
        metric_type=metric_type,
        source=source,
        value=float(value),
        unit=unit,
        timestamp=timestamp or START,
        tags=tags or {},
    )


def rule_config(name="High CPU", metric_name="cpu_usage", conditions=None, cooldown=300, channels=None):
    return {
        "rule_name": name,
        "category": "performance",
        "metric_query": {"metric_name": metric_name, "aggregation": "avg", "time_window": "5m"},
        "conditions": conditions or [{"operator": "gt", "value": 80, "severity": "warning"}],
        "alert_cooldown": cooldown,
        "notification_channels": channels or [],
    }


@pytest.fixture
def sample_metric():
    return make_metric()


@pytest.fixture
def config():
    from config import load_config
    return load_config()
