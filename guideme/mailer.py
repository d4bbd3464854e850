"""
Outbound email for sign-in links.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Raised when a message could not be handed to the mail server."""


@dataclass
class OutgoingEmail:
    to: str
    subject: str
    body: str


class Mailer(Protocol):
    def send(self, message: OutgoingEmail) -> None:
        ...


@dataclass
class InMemoryMailer:
    """Keeps sent messages in an outbox for development and tests."""

    outbox: list[OutgoingEmail] = field(default_factory=list)

    def send(self, message: OutgoingEmail) -> None:
        self.outbox.append(message)

    def reset(self) -> None:
        self.outbox.clear()


class LoggingMailer:
    """Drops messages, noting only who they were for."""

    def send(self, message: OutgoingEmail) -> None:
        logger.warning(
            "No mail server configured; dropped %r to %s", message.subject, message.to
        )


@dataclass
class SmtpMailer:
    host: str
    sender: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    timeout: float = 20.0

    def build(self, message: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg.set_content(message.body)
        return msg

    def send(self, message: OutgoingEmail) -> None:
        msg = self.build(message)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.ehlo()
                if self.use_tls:
                    server.starttls()
                    server.ehlo()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", message.to, e)
            raise MailerError(str(e)) from e
        logger.info("Sent %r to %s", message.subject, message.to)
