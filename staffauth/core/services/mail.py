"""
Transactional mail for the credential lifecycle.

Builds the welcome and reset-password messages and dispatches them
best-effort: a mail failure is logged and reported in the returned
EmailResult, never raised to the caller.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from urllib.parse import quote

from staffauth.core.ports.email import EmailAddress, EmailMessage, EmailPort, EmailResult

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Your New Site"
RESET_PASSWORD_SUBJECT = "Reset Password"


@dataclass(frozen=True)
class MailSettings:
    """Sender identity and link bases used when rendering messages."""

    from_address: str
    from_name: str | None = None
    admin_url: str = ""
    reset_url_template: str = "{admin_url}/reset/{token}/"

    @property
    def sender(self) -> EmailAddress:
        return EmailAddress(self.from_address, self.from_name)

    def reset_url(self, token: str) -> str:
        return self.reset_url_template.format(
            admin_url=self.admin_url.rstrip("/"), token=quote(token, safe="")
        )


def build_welcome_email(
    settings: MailSettings, recipient: str, display_name: str, site_title: str
) -> EmailMessage:
    name = html.escape(display_name)
    title = html.escape(site_title)
    admin_url = settings.admin_url
    return EmailMessage(
        recipient=EmailAddress(recipient, display_name),
        subject=WELCOME_SUBJECT,
        body_html=(
            f"<p>Hi {name},</p>"
            f"<p>Your new site <strong>{title}</strong> is set up and ready.</p>"
            f'<p>Sign in to the admin area at <a href="{admin_url}">{admin_url}</a>.</p>'
        ),
        body_text=(
            f"Hi {display_name},\n\n"
            f"Your new site {site_title} is set up and ready.\n\n"
            f"Sign in to the admin area at {admin_url}\n"
        ),
        sender=settings.sender,
    )


def build_reset_password_email(
    settings: MailSettings,
    recipient: str,
    display_name: str,
    token: str,
    ttl_minutes: int,
) -> EmailMessage:
    reset_url = settings.reset_url(token)
    safe_url = html.escape(reset_url, quote=True)
    return EmailMessage(
        recipient=EmailAddress(recipient, display_name),
        subject=RESET_PASSWORD_SUBJECT,
        body_html=(
            f"<p>Hi {html.escape(display_name)},</p>"
            "<p>A password reset was requested for your account. "
            f'<a href="{safe_url}">Reset your password</a>. '
            f"This link expires in {ttl_minutes} minutes.</p>"
            "<p>If you did not request this, you can ignore this email.</p>"
        ),
        body_text=(
            f"Hi {display_name},\n\n"
            "A password reset was requested for your account.\n"
            f"Reset your password: {reset_url}\n"
            f"This link expires in {ttl_minutes} minutes.\n"
        ),
        sender=settings.sender,
    )


def send_best_effort(mailer: EmailPort, message: EmailMessage) -> EmailResult:
    """Send a notification, converting any adapter failure into a FAILED result."""
    recipient = message.recipient.email
    try:
        result = mailer.send(message)
    except Exception as exc:
        logger.warning("Failed to send %r email to %s: %s", message.subject, recipient, exc)
        return EmailResult.failed(recipient, str(exc))

    if not result.delivered:
        logger.warning(
            "Mail adapter reported failure for %r email to %s: %s",
            message.subject,
            recipient,
            result.error,
        )
    return result
