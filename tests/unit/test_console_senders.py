"""
Unit tests for the console EmailSender and SmsSender adapters.

Tests verify the console senders implement their protocols, log
outgoing messages in a greppable format, and refuse to run when
disabled (any environment other than development).
"""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from src.adapters.sms.console import ConsoleSmsSender
from src.adapters.smtp.console import ConsoleEmailSender
from src.domain.exceptions import NotConfigured
from src.domain.ports import EmailSender, SmsSender


class TestProtocolCompliance:
    """Tests for structural protocol compliance."""

    def test_console_email_sender_is_an_email_sender(self) -> None:
        def accepts_email_sender(s: EmailSender) -> None:
            pass

        accepts_email_sender(ConsoleEmailSender())

    def test_console_sms_sender_is_an_sms_sender(self) -> None:
        def accepts_sms_sender(s: SmsSender) -> None:
            pass

        accepts_sms_sender(ConsoleSmsSender())

    def test_no_explicit_inheritance(self) -> None:
        """Console senders use structural subtyping, not inheritance."""
        assert ConsoleEmailSender.__bases__ == (object,)
        assert ConsoleSmsSender.__bases__ == (object,)


class TestConsoleEmailSender:
    def test_logs_recipient_subject_and_body(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender()

        with caplog.at_level(logging.INFO):
            sender.send_email("user@example.com", "Your login code", "<p>Code: 123456</p>")

        assert len(caplog.records) == 1
        assert caplog.records[0].levelno == logging.INFO
        assert "[EMAIL] To: user@example.com Subject: Your login code" in caplog.text
        assert "<p>Code: 123456</p>" in caplog.text

    def test_disabled_sender_raises(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleEmailSender(enabled=False)

        with caplog.at_level(logging.INFO), pytest.raises(NotConfigured):
            sender.send_email("user@example.com", "Subject", "<p>secret</p>")

        assert "secret" not in caplog.text


class TestConsoleSmsSender:
    def test_logs_recipient_and_body(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = ConsoleSmsSender()

        with caplog.at_level(logging.INFO):
            result = sender.send_sms("+919876543210", "Your code is 123456")

        assert result is None
        assert "[SMS] To: +919876543210 Body: Your code is 123456" in caplog.text

    def test_disabled_sender_raises(self) -> None:
        with pytest.raises(NotConfigured):
            ConsoleSmsSender(enabled=False).send_sms("+919876543210", "Your code is 123456")


class TestThreadSafety:
    """Tests for thread-safe logging."""

    def test_concurrent_logging_is_thread_safe(self, caplog: pytest.LogCaptureFixture) -> None:
        """Multiple concurrent calls don't corrupt log output."""
        sender = ConsoleSmsSender()

        with caplog.at_level(logging.INFO), ThreadPoolExecutor(max_workers=5) as executor:
            futures = [
                executor.submit(sender.send_sms, f"+9198765432{i:02d}", f"code {i:06d}")
                for i in range(10)
            ]
            for f in futures:
                f.result()

        assert len(caplog.records) == 10
        for record in caplog.records:
            assert record.message.startswith("[SMS] To: +9198765432")
            assert "Body: code " in record.message
