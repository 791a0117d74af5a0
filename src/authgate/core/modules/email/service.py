"""Email delivery over SMTP using aiosmtplib."""

from email.message import EmailMessage
from email.utils import formataddr

import aiosmtplib
import structlog

from authgate.core.core import Service

logger = structlog.get_logger(__name__)


class EmailDeliveryError(Exception):
    """The email provider is not configured or refused the message."""


class EmailService(Service):
    """Sends transactional email through the configured SMTP provider."""

    async def send_email(self, to: str, subject: str, html_body: str) -> None:
        """Send an HTML email via the configured SMTP server."""
        if not self.config.email_host or not self.config.sender_email:
            raise EmailDeliveryError("Email provider is not configured")

        message = EmailMessage()
        message["From"] = formataddr((self.config.sender_name, self.config.sender_email))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(html_body, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.email_host,
                port=self.config.email_port,
                username=self.config.email_username or None,
                password=self.config.email_password or None,
                start_tls=self.config.email_start_tls,
            )
        except aiosmtplib.SMTPException as e:
            raise EmailDeliveryError(str(e)) from e
        logger.info("email_sent", subject=subject)
