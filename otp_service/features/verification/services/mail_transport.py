"""
Mail transports that deliver verification codes.
"""
import asyncio
import logging
from abc import ABC, abstractmethod

from otp_service.platform.config import settings
from otp_service.platform.services.email import EmailDeliveryError, env, send_email

logger = logging.getLogger(__name__)


class MailTransport(ABC):
    """Abstract base class for code delivery"""

    @abstractmethod
    async def send(self, recipient: str, code: str) -> bool:
        """
        Deliver ``code`` to ``recipient``.

        Returns:
            True if the message was accepted for delivery
        """


class EmailMailTransport(MailTransport):
    """
    Renders the withdrawal verification template and sends it as HTML mail.

    Sending runs in a worker thread. Cancelling ``send`` (for example when
    the dispatch timeout fires) stops waiting for the thread but cannot stop
    the thread itself, so a mail whose code was already withdrawn may still
    go out. ``EMAIL_RELAY_TIMEOUT`` bounds each relay and SMTP socket
    operation and is kept well below ``MAIL_DISPATCH_TIMEOUT_SECONDS`` so the
    worker normally gives up first.
    """

    template_name = "withdrawal_verification.html"

    def __init__(self, subject_line: str | None = None, ttl_minutes: int | None = None):
        self.subject_line = subject_line or f"[{settings.MAIL_FROM_NAME}] Account withdrawal verification code"
        self.ttl_minutes = ttl_minutes or max(settings.OTP_TTL_SECONDS // 60, 1)

    def render(self, code: str) -> str:
        template = env.get_template(self.template_name)
        return template.render(
            otp_code=code,
            expiration_minutes=self.ttl_minutes,
            app_name=settings.MAIL_FROM_NAME,
        )

    async def send(self, recipient: str, code: str) -> bool:
        html_content = self.render(code)
        try:
            # smtplib and requests block, keep them off the event loop
            await asyncio.to_thread(send_email, recipient, self.subject_line, html_content)
        except EmailDeliveryError as e:
            logger.error(f"Verification mail to {recipient} failed: {e}")
            return False
        return True


class ConsoleMailTransport(MailTransport):
    """
    Logs the code instead of sending it. For local development only.
    """

    async def send(self, recipient: str, code: str) -> bool:
        logger.info("[VERIFICATION] Email: %s Code: %s", recipient, code)
        return True
