"""
Unit tests for SmtpEmailSender.

smtplib is patched; no connection is ever opened.
"""

import smtplib
from unittest import mock

import pytest

from src.adapters.smtp.mailer import SmtpEmailSender
from src.config.settings import Settings
from src.domain.exceptions import DeliveryFailed


def make_sender(**overrides) -> SmtpEmailSender:
    values = {
        "host": "smtp.example.com",
        "port": 587,
        "username": "mailer",
        "password": "app-password",
        "from_address": "noreply@example.com",
        "from_name": "Mission Blue",
    }
    values.update(overrides)
    return SmtpEmailSender(**values)


class TestStartTls:
    def test_sends_html_message(self) -> None:
        with mock.patch("smtplib.SMTP") as smtp_class:
            make_sender().send_email("user@example.com", "Verify your email", "<a href='x'>Verify</a>")

        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10.0)
        smtp = smtp_class.return_value.__enter__.return_value
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "app-password")

        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "user@example.com"
        assert message["From"] == "Mission Blue <noreply@example.com>"
        assert message["Subject"] == "Verify your email"
        assert message.get_body(preferencelist=("html",)).get_content().strip() == "<a href='x'>Verify</a>"

    def test_skips_login_without_credentials(self) -> None:
        with mock.patch("smtplib.SMTP") as smtp_class:
            make_sender(username="", password="").send_email("user@example.com", "Hi", "<p>Hi</p>")

        smtp = smtp_class.return_value.__enter__.return_value
        smtp.login.assert_not_called()
        smtp.send_message.assert_called_once()

    def test_from_address_without_name(self) -> None:
        with mock.patch("smtplib.SMTP") as smtp_class:
            make_sender(from_name=None).send_email("user@example.com", "Hi", "<p>Hi</p>")

        message = smtp_class.return_value.__enter__.return_value.send_message.call_args.args[0]
        assert message["From"] == "noreply@example.com"


class TestImplicitTls:
    def test_uses_smtp_ssl(self) -> None:
        with mock.patch("smtplib.SMTP_SSL") as ssl_class, mock.patch("smtplib.SMTP") as smtp_class:
            make_sender(port=465, use_ssl=True).send_email("user@example.com", "Hi", "<p>Hi</p>")

        smtp_class.assert_not_called()
        assert ssl_class.call_args.args == ("smtp.example.com", 465)
        smtp = ssl_class.return_value.__enter__.return_value
        smtp.starttls.assert_not_called()
        smtp.send_message.assert_called_once()


class TestFailures:
    def test_connection_refused(self) -> None:
        with mock.patch("smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            with pytest.raises(DeliveryFailed):
                make_sender().send_email("user@example.com", "Hi", "<p>Hi</p>")

    def test_authentication_rejected(self) -> None:
        with mock.patch("smtplib.SMTP") as smtp_class:
            smtp = smtp_class.return_value.__enter__.return_value
            smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")

            with pytest.raises(DeliveryFailed):
                make_sender().send_email("user@example.com", "Hi", "<p>Hi</p>")

        smtp.send_message.assert_not_called()

    def test_recipient_refused(self) -> None:
        with mock.patch("smtplib.SMTP") as smtp_class:
            smtp = smtp_class.return_value.__enter__.return_value
            smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({"user@example.com": (550, b"no")})

            with pytest.raises(DeliveryFailed):
                make_sender().send_email("user@example.com", "Hi", "<p>Hi</p>")


def test_from_settings() -> None:
    settings = Settings(
        smtp_host="mail.example.com",
        smtp_port=2525,
        smtp_username="u",
        smtp_password="p",
        smtp_from_address="events@example.com",
        app_name="Mission Blue",
    )

    with mock.patch("smtplib.SMTP") as smtp_class:
        SmtpEmailSender.from_settings(settings).send_email("user@example.com", "Hi", "<p>Hi</p>")

    smtp_class.assert_called_once_with("mail.example.com", 2525, timeout=10.0)
