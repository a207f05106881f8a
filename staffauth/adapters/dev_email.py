"""
Mailer for development and tests.

Nothing is sent. Each message is kept in an in-memory outbox and one log
line is written per message. Bodies stay out of the log unless
``log_body`` is set, because reset mails carry live tokens.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from uuid import uuid4

from staffauth.core.ports.email import EmailMessage, EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentEmail:
    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None


@dataclass
class DevEmailAdapter:
    log_body: bool = False
    sent_emails: list[SentEmail] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def send(self, message: EmailMessage) -> EmailResult:
        record = SentEmail(
            id=f"dev-{uuid4().hex[:12]}",
            recipient=message.recipient.email,
            subject=message.subject,
            body_html=message.body_html,
            body_text=message.body_text,
            sender=message.sender.email if message.sender else None,
        )
        with self._lock:
            self.sent_emails.append(record)

        if self.log_body:
            logger.info(
                "Dev mail %s to %s: %r\n%s",
                record.id,
                record.recipient,
                record.subject,
                record.body_text or record.body_html,
            )
        else:
            logger.info("Dev mail %s to %s: %r", record.id, record.recipient, record.subject)

        return EmailResult(
            status=EmailStatus.SKIPPED, recipient=record.recipient, message_id=record.id
        )

    # --- Outbox inspection ---

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_with_subject(self, subject_contains: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if subject_contains in e.subject]

    def clear(self) -> None:
        with self._lock:
            self.sent_emails.clear()
