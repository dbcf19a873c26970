"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outgoing emails for local development.
"""

import logging

from shoecreatify.domain.ports import SendResult

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Selected when no SMTP host is configured. The text body is logged in
    full so OTPs are readable from the application logs.
    """

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> SendResult:
        """
        Log the email to console (simulates email delivery).

        Args:
            to: Recipient email address
            subject: Subject line
            html_body: Rendered HTML body (not logged)
            text_body: Rendered plain-text body
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, text_body)
        return SendResult(success=True, info="logged to console")
