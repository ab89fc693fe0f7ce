"""
SMTP email delivery
"""

import logging
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.header import Header
from dataclasses import dataclass
from typing import Optional

import aiosmtplib

from ..config import settings

logger = logging.getLogger(__name__)


@dataclass
class SendResult:
    """Delivery outcome for one recipient"""
    recipient: str
    success: bool
    error_message: Optional[str] = None


class SmtpSender:
    """STARTTLS SMTP sender, sync and async"""

    def __init__(
        self,
        sender_email: str = None,
        password: str = None,
        host: str = None,
        port: int = None,
    ):
        self.sender_email = sender_email or settings.smtp_address
        self.password = password or settings.smtp_password
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port

    @property
    def is_configured(self) -> bool:
        return bool(self.sender_email and self.password)

    def _build_message(self, recipient: str, subject: str, html_content: str, sender_name: str) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["Subject"] = Header(subject, "utf-8")
        message["From"] = f"{sender_name} <{self.sender_email}>"
        message["To"] = recipient
        message.attach(MIMEText(html_content, "html", "utf-8"))
        return message

    def send(
        self,
        recipient: str,
        subject: str,
        html_content: str,
        sender_name: str = "FanNu",
    ) -> SendResult:
        """
        Send one email (blocking)

        Args:
            recipient: recipient address
            subject: subject line
            html_content: HTML body
            sender_name: display name for the From header

        Returns:
            SendResult
        """
        if not self.is_configured:
            return SendResult(recipient=recipient, success=False, error_message="SMTP is not configured")

        try:
            message = self._build_message(recipient, subject, html_content, sender_name)
            with smtplib.SMTP(self.host, self.port) as server:
                server.starttls()
                server.login(self.sender_email, self.password)
                server.sendmail(self.sender_email, recipient, message.as_string())

            logger.info("Email sent to %s", recipient)
            return SendResult(recipient=recipient, success=True)

        except smtplib.SMTPAuthenticationError:
            error_msg = "SMTP authentication failed"
            logger.error("Email to %s failed: %s", recipient, error_msg)
            return SendResult(recipient=recipient, success=False, error_message=error_msg)

        except smtplib.SMTPRecipientsRefused:
            error_msg = f"Recipient refused: {recipient}"
            logger.error("Email to %s failed: %s", recipient, error_msg)
            return SendResult(recipient=recipient, success=False, error_message=error_msg)

        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email to %s failed: %s", recipient, e)
            return SendResult(recipient=recipient, success=False, error_message=str(e))

    async def send_async(
        self,
        recipient: str,
        subject: str,
        html_content: str,
        sender_name: str = "FanNu",
    ) -> SendResult:
        """Send one email without blocking the event loop"""
        if not self.is_configured:
            return SendResult(recipient=recipient, success=False, error_message="SMTP is not configured")

        try:
            message = self._build_message(recipient, subject, html_content, sender_name)
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                start_tls=True,
                username=self.sender_email,
                password=self.password,
            )
            logger.info("Email sent to %s", recipient)
            return SendResult(recipient=recipient, success=True)

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Email to %s failed: %s", recipient, e)
            return SendResult(recipient=recipient, success=False, error_message=str(e))


_sender: Optional[SmtpSender] = None


def get_sender() -> SmtpSender:
    """Shared sender instance"""
    global _sender
    if _sender is None:
        _sender = SmtpSender()
    return _sender
