"""
SMTP email sender adapter - Implements EmailSender protocol via aiosmtplib.

Transport failures are logged and reported as SendResult(success=False);
they never propagate to the caller.
"""

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from shoecreatify.domain.ports import SendResult

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """Sends multipart (text + HTML) emails through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, html_body: str, text_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        # Plain text first; clients render the last alternative they support.
        if text_body:
            msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> SendResult:
        msg = self.build_message(to, subject, html_body, text_body)
        try:
            _, response = await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return SendResult(success=False, error=str(e))

        logger.info("Email sent to %s (%s)", to, response)
        return SendResult(success=True, info=response)
