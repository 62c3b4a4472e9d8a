"""SMTP delivery for StarQuest report emails."""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from typing import List, Optional, Sequence

from .ops import StructuredLogger


class EmailClient:
    """Small wrapper around :mod:`smtplib` that keeps undelivered mail in an outbox."""

    def __init__(
        self,
        host: Optional[str],
        port: int,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.logger = logger or StructuredLogger()
        self._outbox: List[EmailMessage] = []

    def build_message(
        self,
        subject: str,
        html_body: str,
        *,
        sender: str,
        recipients: Sequence[str],
        text_body: Optional[str] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = sender
        message["To"] = ", ".join(recipients)
        message.set_content(text_body or subject)
        message.add_alternative(html_body, subtype="html")
        return message

    def send(self, message: EmailMessage) -> bool:
        """Deliver ``message``; returns ``False`` when it was queued locally instead."""

        if not self.host:
            self._outbox.append(message)
            return False
        try:
            with smtplib.SMTP(self.host, self.port, timeout=5) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (OSError, smtplib.SMTPException) as exc:
            # Keep the message for inspection when SMTP is unavailable.
            self.logger.log("email_delivery_failed", subject=message["Subject"], error=str(exc))
            self._outbox.append(message)
            return False
        return True

    def deliveries(self) -> Sequence[EmailMessage]:
        return tuple(self._outbox)


__all__ = ["EmailClient"]
