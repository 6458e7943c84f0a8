"""Alert notification channels.

Each channel implements one transport for one channel type. The dispatcher
looks channels up by ``ChannelConfig.type`` and hands them the rule's
per-channel destination config plus the rendered message.
"""
import json
import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from rich.markup import escape

from utils.errors import TransportError
from utils.http_client import HTTPClient

logger = logging.getLogger("metricwatch.alerts.channels")

_SLACK_COLORS = {
    "critical": "#FF1744",
    "warning": "#FFC107",
    "info": "#2979FF",
    "low": "#78909C",
}


@runtime_checkable
class NotificationChannel(Protocol):
    def send(self, destination: dict, message, timeout: float) -> bool: ...


class ConsoleChannel:
    """Print alerts to terminal with rich formatting."""

    severity_styles = {
        "critical": "bold white on red",
        "warning": "bold yellow",
        "info": "bold blue",
        "low": "dim",
    }

    def __init__(self, console=None):
        if console is None:
            from rich.console import Console
            console = Console()
        self.console = console

    def send(self, destination, message, timeout=None):
        style = self.severity_styles.get(message.severity, "")
        label = escape(f"[{message.severity.upper()}] {message.title}")
        self.console.print(f"[{style}]{label}[/]: {escape(message.body)}")
        return True


class FileChannel:
    """Append alerts to a JSON lines log file.

    A rule may name its own file with ``{"path": "ops.jsonl"}``; it is resolved
    inside the directory of ``log_path`` and anything outside it is refused.
    """

    def __init__(self, log_path="data/alerts.jsonl"):
        self.log_path = Path(log_path)

    def resolve_path(self, destination):
        name = destination.get("path")
        if not name:
            return self.log_path
        base = self.log_path.parent.resolve()
        target = (base / name).resolve()
        if base not in target.parents:
            raise TransportError(f"File channel path {name!r} is outside {base}", channel="file")
        return target

    def send(self, destination, message, timeout=None):
        path = self.resolve_path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a") as f:
            f.write(json.dumps(message.to_dict(), default=str) + "\n")
        return True


class EmailChannel:
    """SMTP email. Destination: ``{"to_address": "a@b"}`` or ``{"to": ["a@b", ...]}``."""

    def __init__(self, sender):
        self.sender = sender

    def send(self, destination, message, timeout=30):
        recipients = destination.get("to") or destination.get("to_address") or []
        if isinstance(recipients, str):
            recipients = [recipients]
        return self.sender.send_alert(list(recipients), message, timeout=timeout)


class SlackChannel:
    """Slack incoming webhook. Destination: ``{"webhook_url": ..., "channel": "#ops"}``."""

    def __init__(self, http=None):
        self.http = http or HTTPClient(max_retries=1)

    def build_payload(self, destination, message):
        payload = {
            "text": f"*{message.subject}*",
            "attachments": [{
                "color": _SLACK_COLORS.get(message.severity, "#FFC107"),
                "text": message.body,
                "fields": [
                    {"title": "Source", "value": message.metric.get("source", ""), "short": True},
                    {"title": "Value", "value": str(message.metric.get("value", "")), "short": True},
                ],
            }],
        }
        if destination.get("channel"):
            payload["channel"] = destination["channel"]
        if destination.get("username"):
            payload["username"] = destination["username"]
        return payload

    def send(self, destination, message, timeout=10):
        url = destination.get("webhook_url")
        if not url:
            raise TransportError("Slack channel has no webhook_url", channel="slack")
        self.http.post(url, json=self.build_payload(destination, message), timeout=timeout)
        return True


class WebhookChannel:
    """Generic JSON POST. Destination: ``{"url": ..., "headers": {...}}``."""

    def __init__(self, http=None):
        self.http = http or HTTPClient(max_retries=2)

    def send(self, destination, message, timeout=10):
        url = destination.get("url")
        if not url:
            raise TransportError("Webhook channel has no url", channel="webhook")
        headers = {"Content-Type": "application/json"}
        headers.update(destination.get("headers") or {})
        self.http.post(url, json=message.to_dict(), headers=headers, timeout=timeout)
        return True


class SmsChannel:
    """SMS through an HTTP gateway.

    Gateway settings come from ``notifications.sms`` in config; the rule's
    destination lists recipients as ``{"to": "+15550100"}`` or a list.
    """

    MAX_LENGTH = 160

    def __init__(self, sms_config: dict, http=None):
        self.gateway_url = sms_config.get("gateway_url", "")
        self.api_key = sms_config.get("api_key", "")
        self.sender = sms_config.get("sender", "")
        self.http = http or HTTPClient(max_retries=1)

    def is_configured(self):
        return bool(self.gateway_url and self.api_key)

    def format_text(self, message):
        text = f"{message.severity.upper()}: {message.title} - {message.body}"
        if len(text) > self.MAX_LENGTH:
            text = text[:self.MAX_LENGTH - 3] + "..."
        return text

    def send(self, destination, message, timeout=10):
        if not self.is_configured():
            logger.warning("SMS gateway not configured - skipping")
            return False
        recipients = destination.get("to") or []
        if isinstance(recipients, str):
            recipients = [recipients]
        if not recipients:
            raise TransportError("SMS channel has no recipients", channel="sms")

        text = self.format_text(message)
        headers = {"Authorization": f"Bearer {self.api_key}"}
        for number in recipients:
            self.http.post(
                self.gateway_url,
                json={"from": self.sender, "to": number, "text": text},
                headers=headers,
                timeout=timeout,
            )
        return True


def build_channels(config):
    """Default channel set keyed by channel type, built from the notifications config."""
    from notifications.email_sender import EmailSender

    notif = config.get("notifications", {})
    return {
        "email": EmailChannel(EmailSender(notif.get("email", {}))),
        "slack": SlackChannel(),
        "webhook": WebhookChannel(),
        "sms": SmsChannel(notif.get("sms", {})),
        "console": ConsoleChannel(),
        "file": FileChannel(notif.get("file_log_path", "data/alerts.jsonl")),
    }
