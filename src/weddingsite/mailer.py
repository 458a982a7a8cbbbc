"""Outgoing email over SMTP.

Usage:
- Configure SMTP via `SMTP_HOST`, `SMTP_PORT`, `SMTP_USER`, `SMTP_PASS` and
  `SMTP_SECURE`. If no host is provided, falls back to local SMTP at
  localhost:25.
- `SMTP_SECURE=true` opens an implicit TLS connection (usually port 465);
  otherwise the connection is upgraded with STARTTLS when the server offers it.

Messages with both text and html are sent as multipart/alternative.
"""

import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailMessage:
    from_address: str
    to: List[str] = field(default_factory=list)
    subject: str = ""
    text: Optional[str] = None
    html: Optional[str] = None


def build_email(message: MailMessage) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = message.subject
    msg["From"] = message.from_address
    msg["To"] = ", ".join(message.to)
    msg.set_content(message.text or "")
    if message.html:
        msg.add_alternative(message.html, subtype="html")
    return msg


class SmtpMailer:
    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        secure: bool = False,
        from_name: str = "Wedding Site",
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.secure = secure
        self.from_name = from_name
        self.timeout = timeout

    @property
    def from_address(self) -> str:
        return formataddr((self.from_name, self.user or "no-reply@localhost"))

    def send(self, message: MailMessage) -> None:
        """Send an email. Raises smtplib.SMTPException / OSError on failure."""
        if not message.to:
            raise ValueError("Email message has no recipients")
        msg = build_email(message)

        if not self.host:
            with smtplib.SMTP("localhost", timeout=self.timeout) as s:
                s.send_message(msg)
            return

        if self.secure:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as s:
                self._login(s)
                s.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                s.ehlo()
                if s.has_extn("starttls"):
                    s.starttls()
                    s.ehlo()
                self._login(s)
                s.send_message(msg)

    def _login(self, smtp: smtplib.SMTP) -> None:
        if self.user and self.password:
            smtp.login(self.user, self.password)
