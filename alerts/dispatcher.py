"""Fan a triggered alert out to the rule's notification channels."""
import time
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout

from models.alerts import NotificationAttempt
from notifications.message import render_message
from utils.timeutils import utcnow

logger = logging.getLogger("metricwatch.alerts.dispatcher")


class NotificationDispatcher:
    """Per-channel isolated delivery.

    A channel that raises, returns False or overruns ``timeout`` is recorded
    as a failed attempt; the remaining channels are still attempted and the
    caller never sees the failure.
    """

    def __init__(self, channels=None, timeout=10, max_workers=4, clock=None):
        self.channels = channels or {}
        self.timeout = timeout
        self.max_workers = max_workers
        self.clock = clock or utcnow

    def select_channels(self, rule, severity):
        return [c for c in rule.notification_channels if c.accepts(severity)]

    def dispatch(self, rule, metric, condition, alert_id=None):
        """Send to every eligible channel. Returns one NotificationAttempt per channel."""
        selected = self.select_channels(rule, condition.severity)
        if not selected:
            return []

        message = render_message(rule, metric, condition, alert_id=alert_id)
        executor = ThreadPoolExecutor(max_workers=max(1, min(len(selected), self.max_workers)))
        try:
            futures = [executor.submit(self._send_one, cfg, message) for cfg in selected]
            deadline = time.monotonic() + self.timeout
            attempts = []
            for cfg, future in zip(selected, futures):
                remaining = max(0.0, deadline - time.monotonic())
                try:
                    attempts.append(future.result(timeout=remaining))
                except FutureTimeout:
                    logger.warning(f"Notification via {cfg.type} timed out after {self.timeout}s")
                    attempts.append(NotificationAttempt(
                        channel=cfg.type, timestamp=self.clock(), success=False,
                        error=f"timed out after {self.timeout}s",
                    ))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        sent = sum(1 for a in attempts if a.success)
        logger.info(f"Alert '{message.title}' dispatched to {sent}/{len(attempts)} channel(s)")
        return attempts

    def _send_one(self, cfg, message):
        channel = self.channels.get(cfg.type)
        if channel is None:
            logger.warning(f"Unknown notification channel type: {cfg.type}")
            return NotificationAttempt(
                channel=cfg.type, timestamp=self.clock(), success=False,
                error="unknown channel type",
            )
        try:
            ok = bool(channel.send(cfg.config or {}, message, self.timeout))
        except Exception as e:
            logger.warning(f"Failed to send notification via {cfg.type}: {e}")
            return NotificationAttempt(channel=cfg.type, timestamp=self.clock(), success=False, error=str(e))
        if not ok:
            return NotificationAttempt(
                channel=cfg.type, timestamp=self.clock(), success=False, error="channel declined",
            )
        return NotificationAttempt(channel=cfg.type, timestamp=self.clock(), success=True)
