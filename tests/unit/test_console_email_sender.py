"""
Unit tests for ConsoleEmailSender adapter.

Tests verify the console email sender implements EmailSender protocol
and logs outgoing emails in the expected format.
"""

import asyncio
import logging

import pytest

from shoecreatify.adapters.smtp.console import ConsoleEmailSender
from shoecreatify.domain.ports import EmailSender, SendResult


class TestConsoleEmailSenderProtocol:
    """Tests for EmailSender protocol compliance."""

    def test_implements_email_sender_protocol(self) -> None:
        """ConsoleEmailSender implements EmailSender protocol."""
        sender = ConsoleEmailSender()
        assert callable(sender.send)

        def accepts_email_sender(s: EmailSender) -> None:
            pass

        accepts_email_sender(sender)

    def test_no_explicit_inheritance(self) -> None:
        """ConsoleEmailSender uses structural subtyping, not inheritance."""
        assert ConsoleEmailSender.__bases__ == (object,)


class TestConsoleEmailSenderLogging:
    """Tests for console output."""

    def test_logs_recipient_subject_and_text(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()
        with caplog.at_level(logging.INFO, logger="shoecreatify.adapters.smtp.console"):
            asyncio.run(
                sender.send(
                    "ann@example.com",
                    "SHOECREATIFY - Verify Your Email",
                    "<p>html</p>",
                    "Your verification code is: 123456",
                )
            )

        assert "[EMAIL] To: ann@example.com Subject: SHOECREATIFY - Verify Your Email" in caplog.text
        assert "Your verification code is: 123456" in caplog.text
        assert "<p>html</p>" not in caplog.text

    def test_reports_success(self) -> None:
        result = asyncio.run(ConsoleEmailSender().send("a@x.com", "s", "<p/>", "t"))
        assert result == SendResult(success=True, info="logged to console")
