"""Tests for notification channels and the email sender."""
import json
import pytest
from unittest.mock import patch, MagicMock

from alerts.channels import (
    ConsoleChannel, FileChannel, EmailChannel, SlackChannel, WebhookChannel,
    SmsChannel, NotificationChannel, build_channels,
)
from notifications.email_sender import EmailSender
from notifications.message import NotificationMessage
from utils.errors import TransportError


def _message(severity="critical", body="Metric cpu_usage exceeded threshold: 95 gt 80"):
    return NotificationMessage(
        title="High CPU - web-1",
        body=body,
        severity=severity,
        rule_id="r1",
        rule_name="High CPU",
        metric={"metric_name": "cpu_usage", "source": "web-1", "value": 95.0},
        condition={"operator": "gt", "value": 80.0, "severity": severity},
        alert_id="a1",
        organization_id="org-test",
    )


_EMAIL_CONFIG = {
    "smtp_host": "smtp.test.com",
    "smtp_port": 587,
    "from_address": "alerts@test.com",
    "smtp_username": "user",
    "smtp_password": "pass",
}


def test_channels_satisfy_protocol():
    for ch in build_channels({"notifications": {"email": {}, "sms": {}}}).values():
        assert isinstance(ch, NotificationChannel)


def test_console_channel_prints():
    console = MagicMock()
    assert ConsoleChannel(console).send({}, _message()) is True
    printed = console.print.call_args[0][0]
    assert "CRITICAL" in printed and "High CPU - web-1" in printed


def test_file_channel_appends_json_lines(tmp_path):
    path = tmp_path / "alerts.jsonl"
    ch = FileChannel(str(path))
    ch.send({}, _message())
    ch.send({}, _message(severity="warning"))
    lines = path.read_text().strip().splitlines()
    assert len(lines) == 2
    assert json.loads(lines[1])["severity"] == "warning"


def test_file_channel_destination_path(tmp_path):
    default = tmp_path / "a.jsonl"
    FileChannel(str(default)).send({"path": "nested/b.jsonl"}, _message())
    assert (tmp_path / "nested" / "b.jsonl").exists() and not default.exists()


@pytest.mark.parametrize("name", ["../outside.jsonl", "nested/../../outside.jsonl"])
def test_file_channel_rejects_escaping_path(tmp_path, name):
    log_dir = tmp_path / "logs"
    with pytest.raises(TransportError):
        FileChannel(str(log_dir / "alerts.jsonl")).send({"path": name}, _message())
    assert not (tmp_path / "outside.jsonl").exists()


def test_file_channel_rejects_absolute_path(tmp_path):
    target = tmp_path / "outside" / "anything.conf"
    ch = FileChannel(str(tmp_path / "logs" / "alerts.jsonl"))
    with pytest.raises(TransportError):
        ch.send({"path": str(target)}, _message())
    assert not target.exists()


def test_console_channel_escapes_markup():
    from rich.console import Console
    console = Console(record=True, width=200)
    msg = _message(body="value [/] from web-[/bold]1")
    assert ConsoleChannel(console).send({}, msg) is True
    assert "value [/] from web-[/bold]1" in console.export_text()


class TestSlack:
    def test_payload(self):
        payload = SlackChannel(http=MagicMock()).build_payload({"channel": "#ops"}, _message())
        assert payload["channel"] == "#ops"
        assert payload["text"] == "*[CRITICAL] High CPU - web-1*"
        assert payload["attachments"][0]["color"] == "#FF1744"

    def test_posts_to_webhook(self):
        http = MagicMock()
        SlackChannel(http=http).send({"webhook_url": "https://hooks.slack.test/x"}, _message(), timeout=3)
        args, kwargs = http.post.call_args
        assert args[0] == "https://hooks.slack.test/x"
        assert kwargs["timeout"] == 3

    def test_missing_url_raises(self):
        with pytest.raises(TransportError):
            SlackChannel(http=MagicMock()).send({}, _message())


class TestWebhook:
    def test_posts_message_json_with_headers(self):
        http = MagicMock()
        WebhookChannel(http=http).send(
            {"url": "https://example.test/hook", "headers": {"X-Token": "t"}}, _message())
        _, kwargs = http.post.call_args
        assert kwargs["json"]["alert_id"] == "a1"
        assert kwargs["headers"]["X-Token"] == "t"
        assert kwargs["headers"]["Content-Type"] == "application/json"

    def test_transport_error_propagates(self):
        http = MagicMock()
        http.post.side_effect = TransportError("HTTP 500", status_code=500)
        with pytest.raises(TransportError):
            WebhookChannel(http=http).send({"url": "https://example.test/hook"}, _message())


class TestSms:
    def test_unconfigured_declines(self):
        http = MagicMock()
        assert SmsChannel({}, http=http).send({"to": "+15550100"}, _message()) is False
        http.post.assert_not_called()

    def test_sends_per_recipient(self):
        http = MagicMock()
        ch = SmsChannel({"gateway_url": "https://sms.test/send", "api_key": "k", "sender": "MW"}, http=http)
        assert ch.send({"to": ["+15550100", "+15550101"]}, _message()) is True
        assert http.post.call_count == 2
        kwargs = http.post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == "Bearer k"
        assert kwargs["json"]["from"] == "MW"

    def test_text_truncated(self):
        ch = SmsChannel({})
        text = ch.format_text(_message(body="x" * 500))
        assert len(text) == SmsChannel.MAX_LENGTH
        assert text.endswith("...")


class TestEmailSender:
    def test_not_configured_missing_fields(self):
        with patch.dict("os.environ", {}, clear=True):
            assert EmailSender({}).is_configured() is False

    def test_configured_with_all_fields(self):
        with patch.dict("os.environ", {}, clear=True):
            assert EmailSender(_EMAIL_CONFIG).is_configured() is True

    def test_env_vars_override_config(self):
        with patch.dict("os.environ", {
            "METRICWATCH_SMTP_USER": "env_user",
            "METRICWATCH_SMTP_PASS": "env_pass",
        }):
            sender = EmailSender(_EMAIL_CONFIG)
            assert sender.username == "env_user"
            assert sender.password == "env_pass"

    def test_build_message(self):
        msg = EmailSender(_EMAIL_CONFIG).build_alert_message(["a@test.com", "b@test.com"], _message())
        assert msg["Subject"] == "[CRITICAL] High CPU - web-1"
        assert msg["To"] == "a@test.com, b@test.com"

    def test_send_via_smtp(self):
        with patch.dict("os.environ", {}, clear=True), \
                patch("notifications.email_sender.smtplib.SMTP") as smtp_cls:
            server = smtp_cls.return_value.__enter__.return_value
            assert EmailSender(_EMAIL_CONFIG).send_alert(["a@test.com"], _message()) is True
            server.login.assert_called_once_with("user", "pass")
            server.send_message.assert_called_once()

    def test_smtp_failure_returns_false(self):
        import smtplib
        with patch.dict("os.environ", {}, clear=True), \
                patch("notifications.email_sender.smtplib.SMTP") as smtp_cls:
            smtp_cls.return_value.__enter__.return_value.login.side_effect = smtplib.SMTPAuthenticationError(535, b"no")
            assert EmailSender(_EMAIL_CONFIG).send_alert(["a@test.com"], _message()) is False

    def test_email_channel_accepts_single_address(self):
        sender = MagicMock()
        sender.send_alert.return_value = True
        assert EmailChannel(sender).send({"to_address": "ops@test.com"}, _message(), timeout=5) is True
        assert sender.send_alert.call_args[0][0] == ["ops@test.com"]
