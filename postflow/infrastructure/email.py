# postflow/infrastructure/email.py
from typing import Optional
import aiosmtplib
from email.message import EmailMessage
import structlog

from ..config import Settings

logger = structlog.get_logger(__name__)


class Mailer:
    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return self.settings.smtp_configured

    async def send(
        self,
        to_email: str,
        subject: str,
        plain_text: str,
        html: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email asynchronously using SMTP (aiosmtplib).
        Returns False without sending when SMTP is not configured;
        raises on delivery failure.
        """
        if not self.enabled:
            logger.info("email_send_skipped_smtp_not_configured", to=to_email, subject=subject)
            return False

        msg = EmailMessage()
        msg["From"] = self.settings.smtp_from
        msg["To"] = to_email
        msg["Subject"] = subject
        if reply_to:
            msg["Reply-To"] = reply_to
        msg.set_content(plain_text)
        if html:
            msg.add_alternative(html, subtype="html")

        port = self.settings.smtp_port
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.settings.smtp_host,
                port=port,
                username=self.settings.smtp_user or None,
                password=self.settings.smtp_password or None,
                use_tls=port == 465,
                start_tls=port in (587, 25),
            )
            logger.info("email_sent", to=to_email, subject=subject)
            return True
        except Exception as e:
            logger.exception("email_send_failed", to=to_email, subject=subject, error=str(e))
            raise
