"""Tests for formatters and the HTTP client."""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import requests

from utils.formatters import format_value, format_pct, format_timestamp, time_ago, colorize
from utils.http_client import HTTPClient
from utils.errors import TransportError
from utils.timeutils import parse_timestamp, to_iso


def test_format_value():
    assert format_value(85.5, "%") == "85.50%"
    assert format_value(1200, "ms") == "1,200 ms"
    assert format_value(3) == "3"
    assert format_value(None) == "N/A"


def test_format_pct():
    assert format_pct(5.44) == "+5.4%"
    assert format_pct(-12.5) == "-12.5%"
    assert format_pct(None) == "N/A"
    assert format_pct(2, with_color=True) == "[red]+2.0%[/red]"


def test_colorize():
    assert colorize("CRITICAL", "critical") == "[bold red]CRITICAL[/bold red]"
    assert colorize("x", "unknown") == "x"


def test_format_timestamp():
    assert format_timestamp(datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)) == "2024-06-01 12:30 UTC"
    assert format_timestamp(None) == "N/A"


def test_time_ago():
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
    assert time_ago(now - timedelta(seconds=30), now=now) == "30s ago"
    assert time_ago(now - timedelta(hours=3), now=now) == "3h ago"
    assert time_ago(now - timedelta(days=2), now=now) == "2d ago"


def test_timestamp_round_trip_is_utc():
    parsed = parse_timestamp("2024-06-01T12:00:00Z")
    assert parsed.tzinfo is not None
    assert to_iso(parsed) == "2024-06-01T12:00:00.000000+00:00"
    assert parse_timestamp(None) is None
    with pytest.raises(ValueError):
        parse_timestamp("not a date")


def _response(status, body=None):
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {}
    resp.json.return_value = body or {}
    return resp


class TestHTTPClient:
    def test_returns_json_on_success(self):
        client = HTTPClient(max_retries=0)
        with patch.object(client.session, "request", return_value=_response(200, {"ok": True})):
            assert client.post("https://hooks.test/x", json={}) == {"ok": True}

    def test_retries_then_succeeds(self):
        client = HTTPClient(max_retries=2, backoff=0)
        responses = [_response(503), _response(200, {"ok": True})]
        with patch.object(client.session, "request", side_effect=responses) as req, \
                patch("utils.http_client.time.sleep"):
            assert client.post("https://hooks.test/x") == {"ok": True}
        assert req.call_count == 2

    def test_client_error_not_retried(self):
        client = HTTPClient(max_retries=2)
        with patch.object(client.session, "request", return_value=_response(404)) as req:
            with pytest.raises(TransportError) as exc:
                client.post("https://hooks.test/x")
        assert exc.value.status_code == 404
        assert req.call_count == 1

    def test_connection_error_raises_transport_error(self):
        client = HTTPClient(max_retries=1, backoff=0)
        with patch.object(client.session, "request", side_effect=requests.exceptions.ConnectionError("refused")), \
                patch("utils.http_client.time.sleep"):
            with pytest.raises(TransportError):
                client.get("https://hooks.test/x")
