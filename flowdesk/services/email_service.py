"""Email delivery for automation payloads."""

from email.message import EmailMessage

import aiosmtplib
import structlog

from flowdesk.config import get_settings

logger = structlog.get_logger(__name__)


class EmailService:
    """Sends automation emails via SMTP."""

    def build_message(self, to_email: str, subject: str, html_body: str) -> EmailMessage:
        settings = get_settings()
        message = EmailMessage()
        message["From"] = settings.email_from
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(html_body, subtype="html")
        return message

    async def send_automation_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
    ) -> bool:
        """Send one automation email.

        Returns True on success, False on failure.
        """
        settings = get_settings()
        message = self.build_message(to_email, subject, html_body)

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or None,
                password=settings.smtp_password or None,
                use_tls=settings.smtp_use_tls,
            )
        except Exception as e:
            logger.error("automation_email_failed", to=to_email, error=str(e))
            return False

        logger.info("automation_email_sent", to=to_email, subject=subject)
        return True
