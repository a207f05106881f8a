"""
Mailer port.

Setup sends a welcome mail; single and mass password resets send reset
links. Every one of those sends is a notification: the operation that
triggered it has already committed, so a delivery problem is reported
through ``EmailResult`` and never undoes or fails the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    SENT = "sent"
    SKIPPED = "skipped"  # logged by a dev adapter, nothing left the process
    FAILED = "failed"


@dataclass(frozen=True)
class EmailAddress:
    email: str
    name: str | None = None


@dataclass(frozen=True)
class EmailMessage:
    """A rendered notification with HTML and plain text alternatives."""

    recipient: EmailAddress
    subject: str
    body_html: str
    body_text: str
    sender: EmailAddress | None = None

    def __post_init__(self) -> None:
        if not self.recipient.email:
            raise ValueError("Recipient email is required")
        if not self.subject:
            raise ValueError("Subject is required")
        if not (self.body_html or self.body_text):
            raise ValueError("Message needs an HTML or a plain text body")


@dataclass
class EmailResult:
    status: EmailStatus
    recipient: str
    message_id: str | None = None
    error: str | None = None

    @property
    def delivered(self) -> bool:
        return self.status is not EmailStatus.FAILED

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        return cls(status=EmailStatus.FAILED, recipient=recipient, error=error)


class EmailPort(Protocol):
    def send(self, message: EmailMessage) -> EmailResult:
        """
        Hand one message to the transport.

        Adapters should report problems as a FAILED result; the mail
        service also tolerates adapters that raise MailDeliveryError.
        """
        ...


class MailDeliveryError(Exception):
    """Raised by transports that signal delivery problems by exception."""

    def __init__(self, recipient: str, reason: str) -> None:
        self.recipient = recipient
        self.reason = reason
        super().__init__(f"Could not deliver mail to {recipient}: {reason}")
