"""Outgoing mail over SMTP. smtplib is blocking, so sends run in a worker thread."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from user_service.config import Settings, settings

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """The SMTP server refused the message or could not be reached."""


class SmtpMailGateway:
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> SmtpMailGateway:
        cfg = cfg or settings
        return cls(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            sender=cfg.mail_from,
            username=cfg.smtp_username,
            password=cfg.smtp_password,
            use_tls=cfg.smtp_use_tls,
            timeout=cfg.smtp_timeout_seconds,
        )

    def build_message(self, to_address: str, subject: str, body: str) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self.sender
        msg["To"] = to_address
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain", "utf-8"))
        return msg

    def _send_sync(self, to_address: str, subject: str, body: str) -> None:
        msg = self.build_message(to_address, subject, body)
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password)
            server.send_message(msg, to_addrs=[to_address])

    async def send(self, to_address: str, subject: str, body: str) -> None:
        """Send a plain-text message. Raises MailDeliveryError on any SMTP or socket failure."""
        try:
            await asyncio.to_thread(self._send_sync, to_address, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send mail to %s via %s:%s: %s", to_address, self.host, self.port, e)
            raise MailDeliveryError(str(e)) from e
        logger.info("Mail sent to %s", to_address)
