"""
SMTP email sender for alert notifications.

Handles:
  - SMTP connection with TLS
  - MIME multipart construction (HTML + plaintext fallback)
  - Credential management (env vars > config file)
"""
import os
import ssl
import smtplib
import logging
from html import escape
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate

logger = logging.getLogger("metricwatch.notifications.email_sender")

_SEVERITY_COLORS = {
    "critical": "#FF1744",
    "warning": "#FFC107",
    "info": "#2979FF",
    "low": "#78909C",
}


class EmailSender:
    """
    SMTP email sender.

    Credential resolution order:
      1. Environment variables: METRICWATCH_SMTP_USER, METRICWATCH_SMTP_PASS
      2. Config: notifications.email.smtp_username / smtp_password
    """

    def __init__(self, email_config: dict):
        self.smtp_host = email_config.get("smtp_host", "smtp.gmail.com")
        self.smtp_port = int(email_config.get("smtp_port", 587))
        self.use_tls = email_config.get("use_tls", True)
        self.from_address = email_config.get("from_address", "")
        self.from_name = email_config.get("from_name", "Metricwatch")

        self.username = str(os.environ.get(
            "METRICWATCH_SMTP_USER",
            email_config.get("smtp_username", ""),
        ))
        self.password = str(os.environ.get(
            "METRICWATCH_SMTP_PASS",
            email_config.get("smtp_password", ""),
        ))

    def is_configured(self) -> bool:
        """Check if all required SMTP fields are present."""
        return all([self.smtp_host, self.from_address, self.username, self.password])

    def build_alert_message(self, to_addresses, message) -> MIMEMultipart:
        color = _SEVERITY_COLORS.get(message.severity, "#FFC107")
        html = f"""
        <div style="font-family: system-ui, sans-serif; max-width: 560px; margin: 0 auto;
                    padding: 20px; background: #FFFFFF; color: #1E272E; border-radius: 12px;">
            <div style="background: #F0F1F6; padding: 16px; border-radius: 8px;
                        border-left: 4px solid {color};">
                <h3 style="margin-top: 0; color: {color};">
                    {escape(message.severity.upper())}: {escape(message.title)}
                </h3>
                <p>{escape(message.body)}</p>
            </div>
            <p style="color: #636E72; font-size: 12px; margin-top: 16px;">
                Metricwatch &mdash; rule {escape(message.rule_name)}
            </p>
        </div>
        """

        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.from_name, self.from_address))
        msg["To"] = ", ".join(to_addresses)
        msg["Subject"] = message.subject
        msg["Date"] = formatdate(localtime=True)
        msg.attach(MIMEText(f"{message.subject}\n{message.body}", "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    def send_alert(self, to_addresses, message, timeout=30) -> bool:
        """Send one alert email. Returns False when unconfigured or the send fails."""
        if not self.is_configured():
            logger.warning("Email not configured - skipping alert send")
            return False
        if not to_addresses:
            logger.warning("Email channel has no recipients - skipping")
            return False
        return self._send(self.build_alert_message(to_addresses, message), to_addresses, timeout)

    def test_connection(self) -> dict:
        """Test SMTP connectivity without sending an email."""
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls(context=context)
                    server.ehlo()
                server.login(self.username, self.password)
                return {"status": "ok", "message": "SMTP connection successful"}
        except smtplib.SMTPAuthenticationError as e:
            return {"status": "error", "message": f"Authentication failed: {e}"}
        except (smtplib.SMTPException, OSError) as e:
            return {"status": "error", "message": str(e)}

    def _send(self, msg, to_addresses, timeout) -> bool:
        try:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=timeout) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls(context=context)
                    server.ehlo()
                server.login(self.username, self.password)
                server.send_message(msg, to_addrs=to_addresses)
            logger.info(f"Email sent to {', '.join(to_addresses)}: {msg['Subject']}")
            return True
        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP authentication failed. Check username/password.")
            return False
        except smtplib.SMTPRecipientsRefused:
            logger.error(f"Recipient refused: {to_addresses}")
            return False
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Email send failed: {e}")
            return False
