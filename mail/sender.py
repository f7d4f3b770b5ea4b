"""
mail/sender.py -- Outbound transactional mail over SMTP.

The code engine only needs one call: send(to, subject, html) returning a
MailReceipt whose `accepted` list names the recipients the server took.
SmtpMailer derives that list from smtplib's refused-recipients dict, the
same contract the engine checks before it persists a code hash.

Every network operation is bounded by `timeout` seconds. Connection,
authentication and transport failures are re-raised as MailDeliveryError so
callers deal with one exception type.

Layer rule: no imports from api/, auth/, posts/, or core/.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

logger = logging.getLogger("gatekeeper.mail")


class MailDeliveryError(Exception):
    """The message could not be handed to the mail server."""


@dataclass(frozen=True)
class MailReceipt:
    accepted: list[str] = field(default_factory=list)
    rejected: list[str] = field(default_factory=list)


class Mailer(Protocol):
    def send(self, to: str, subject: str, html: str) -> MailReceipt: ...


class SmtpMailer:
    """Send HTML mail through an SMTP relay (STARTTLS on 587 by default)."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        user: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 10.0,
        sender_name: str = "Gatekeeper",
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.sender_name = sender_name
        self.user = user
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def _build(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.sender_name, self.sender))
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))
        return msg

    def send(self, to: str, subject: str, html: str) -> MailReceipt:
        msg = self._build(to, subject, html)
        try:
            with smtplib.SMTP(self.host, int(self.port), timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.user:
                    smtp.login(self.user, self.password)
                refused = smtp.sendmail(self.sender, [to], msg.as_string())
        except smtplib.SMTPRecipientsRefused as exc:
            logger.warning("SMTP server refused recipient for %r", subject)
            return MailReceipt(accepted=[], rejected=list(exc.recipients))
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"SMTP delivery failed: {exc}") from exc

        rejected = list(refused)
        accepted = [to] if to not in refused else []
        return MailReceipt(accepted=accepted, rejected=rejected)
