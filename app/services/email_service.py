"""
app/services/email_service.py

SMTP delivery of finished reports.
"""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Sequence
from dataclasses import dataclass
from email.message import EmailMessage

from app.config import EmailSettings
from app.services.errors import DeliveryConfigError, DeliverySendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes
    maintype: str = "application"
    subtype: str = "pdf"


def build_message(
    sender: str,
    to: str,
    subject: str,
    html: str,
    attachments: Sequence[EmailAttachment] = (),
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message.set_content("This report is best viewed in an HTML-capable mail client.")
    message.add_alternative(html, subtype="html")
    for attachment in attachments:
        message.add_attachment(
            attachment.content,
            maintype=attachment.maintype,
            subtype=attachment.subtype,
            filename=attachment.filename,
        )
    return message


class SmtpEmailSender:
    """
    Sends HTML email with optional attachments through one SMTP relay.

    Missing sender, host or credentials raise :class:`DeliveryConfigError`
    before any connection is made; transport failures raise
    :class:`DeliverySendError`.
    """

    def __init__(self, settings: EmailSettings) -> None:
        self._settings = settings

    def _check_config(self, to: str) -> None:
        settings = self._settings
        if not settings.sender:
            raise DeliveryConfigError("Email sender address is not configured (EMAIL_FROM)")
        if not to:
            raise DeliveryConfigError("Email recipient is missing")
        if not settings.smtp_host:
            raise DeliveryConfigError("SMTP host is not configured (SMTP_HOST)")
        if not settings.smtp_user or not settings.smtp_password:
            raise DeliveryConfigError("SMTP credentials are not configured (SMTP_USER, SMTP_PASSWORD)")

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Sequence[EmailAttachment] = (),
    ) -> None:
        self._check_config(to)
        settings = self._settings
        message = build_message(settings.sender, to, subject, html, attachments)

        try:
            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.timeout_seconds) as server:
                if settings.use_tls:
                    server.starttls()
                server.login(settings.smtp_user, settings.smtp_password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliverySendError(f"Email delivery to {to} failed: {exc}") from exc

        logger.info("Report emailed to=%s attachments=%d", to, len(attachments))
