"""Outbound e-mail over SMTP."""
from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Implements application.ports.mailer.Mailer.

    ``smtplib`` is blocking, so each send runs on a worker thread. With no
    host configured, mail is logged and dropped.
    """

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        *,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str = "no-reply@jobportal.local",
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._sender = sender
        self._timeout = timeout

    async def send(self, to: str, subject: str, html: str) -> None:
        if not self._host:
            logger.info("SMTP not configured, skipping mail to %s (%s)", to, subject)
            return
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._sender
        msg["To"] = to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        await asyncio.to_thread(self._deliver, msg)
        logger.info("Mail sent to %s (%s)", to, subject)

    def _deliver(self, msg: EmailMessage) -> None:
        use_ssl = self._port == 465
        smtp_cls = smtplib.SMTP_SSL if use_ssl else smtplib.SMTP
        with smtp_cls(self._host, self._port, timeout=self._timeout) as server:
            if self._use_tls and not use_ssl:
                server.starttls()
            if self._username:
                server.login(self._username, self._password or "")
            server.send_message(msg)
