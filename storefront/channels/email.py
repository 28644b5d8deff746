"""Email notification channel: sends order mail via SMTP.

Implicit TLS (SMTP_SSL, port 465) by default; STARTTLS when
smtp_use_ssl is off. Password comes from settings, never logged.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid

from storefront.channels.protocol import NotificationMessage, SendResult
from storefront.config import Settings

logger = logging.getLogger(__name__)

_SMTP_TIMEOUT_SECONDS = 15


class EmailChannel:
    """Email notification channel via SMTP."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str = "",
        sender_name: str = "",
        use_ssl: bool = True,
        channel_id: str = "email-orders",
    ):
        self._channel_id = channel_id
        self._host = smtp_host
        self._port = smtp_port
        self._user = smtp_user
        self._password = smtp_password
        self._sender_name = sender_name
        self._use_ssl = use_ssl

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailChannel:
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            sender_name=settings.store_name,
            use_ssl=settings.smtp_use_ssl,
        )

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def is_configured(self) -> bool:
        return bool(self._host and self._user)

    def format_message(self, message: NotificationMessage) -> MIMEText:
        """Format as a plain-text MIME email."""
        msg = MIMEText(message.body, "plain", "utf-8")
        msg["Subject"] = message.title
        msg["From"] = formataddr((self._sender_name, self._user))
        msg["To"] = ", ".join(message.recipients)
        msg["Message-ID"] = make_msgid()
        return msg

    def send(self, formatted: MIMEText) -> SendResult:
        """Send via SMTP over TLS."""
        if not self.is_configured:
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error="Email not configured (missing SMTP host/user)",
            )
        if not formatted["To"]:
            return SendResult(success=False, channel_id=self._channel_id, error="No recipients")

        smtp_cls = smtplib.SMTP_SSL if self._use_ssl else smtplib.SMTP
        try:
            with smtp_cls(self._host, self._port, timeout=_SMTP_TIMEOUT_SECONDS) as server:
                if not self._use_ssl:
                    server.starttls()
                if self._password:
                    server.login(self._user, self._password)
                server.send_message(formatted)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email send failed via %s:%d: %s", self._host, self._port, e)
            return SendResult(
                success=False,
                channel_id=self._channel_id,
                error=f"SMTP error: {e}",
            )

        logger.info("Email sent to %s: %s", formatted["To"], formatted["Subject"])
        return SendResult(
            success=True,
            channel_id=self._channel_id,
            response_id=formatted["Message-ID"] or "",
        )
