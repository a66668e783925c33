"""
Outgoing email over SMTP
"""
import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from medicare.config import settings

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(
        self,
        host: str = settings.SMTP_HOST,
        port: int = settings.SMTP_PORT,
        username: str = settings.SMTP_USERNAME,
        password: str = settings.SMTP_PASSWORD,
        use_tls: bool = settings.SMTP_USE_TLS,
        from_address: str = settings.EMAIL_FROM_ADDRESS,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.from_address = from_address

    @property
    def configured(self) -> bool:
        return bool(self.host)

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(body, "plain"))

        if self.port == 465:
            context = ssl.create_default_context()
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=30)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=30)
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())

        try:
            if self.username:
                server.login(self.username, self.password)
            server.sendmail(self.from_address.split("<")[-1].rstrip(">"), [to], msg.as_string())
        finally:
            server.quit()

    async def send(self, to: str, subject: str, body: str) -> bool:
        """
        Send a plain-text email without blocking the event loop

        Returns:
            False when SMTP is not configured and the email was skipped
        """
        if not self.configured:
            logger.warning("SMTP_HOST not set; skipping email to %s", to)
            return False
        await asyncio.to_thread(self._send, to, subject, body)
        logger.info("Email sent to %s: %s", to, subject)
        return True
