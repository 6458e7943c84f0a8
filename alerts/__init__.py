"""Alert system module."""
from alerts.engine import AlertEngine, TriggerResult
from alerts.lifecycle import AlertLifecycleManager
from alerts.dispatcher import NotificationDispatcher
from alerts.rules_manager import RulesManager
from alerts.channels import (
    NotificationChannel, ConsoleChannel, FileChannel, EmailChannel,
    SlackChannel, WebhookChannel, SmsChannel, build_channels,
)
