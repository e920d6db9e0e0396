"""
Outbound messages - renders OTP and magic-link notifications.
"""

import html
from dataclasses import dataclass
from datetime import timedelta
from urllib.parse import urlencode

from .ports import EmailSender, SmsSender


def build_magic_link(app_url: str, path: str, token: str) -> str:
    """Application page URL carrying the token as a ``token`` query parameter."""
    return f"{app_url.rstrip('/')}/{path.lstrip('/')}?{urlencode({'token': token})}"


def _describe(ttl: timedelta) -> str:
    minutes = int(ttl.total_seconds() // 60)
    if minutes >= 60 and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minute{'s' if minutes != 1 else ''}"


@dataclass
class Notifier:
    email_sender: EmailSender
    sms_sender: SmsSender
    app_name: str = "Mission Blue"

    def send_otp_sms(self, mobile: str, code: str, ttl: timedelta) -> None:
        body = f"Your {self.app_name} verification code is: {code}. Valid for {_describe(ttl)}."
        self.sms_sender.send_sms(mobile, body)

    def send_otp_email(self, email: str, code: str, ttl: timedelta) -> None:
        content = (
            f"<p>Your {html.escape(self.app_name)} verification code is:</p>"
            f"<p><strong>{html.escape(code)}</strong></p>"
            f"<p>This code will expire in {_describe(ttl)}.</p>"
        )
        self.email_sender.send_email(email, "Your verification code", content)

    def send_verification_link(self, email: str, link: str, ttl: timedelta) -> None:
        content = (
            f"<p>Welcome to {html.escape(self.app_name)}!</p>"
            "<p>Please verify your email by clicking the link below:</p>"
            f'<p><a href="{html.escape(link)}">Verify Email</a></p>'
            f"<p>This link will expire in {_describe(ttl)}.</p>"
        )
        self.email_sender.send_email(email, "Verify your email", content)

    def send_password_reset_link(self, email: str, link: str, ttl: timedelta) -> None:
        content = (
            "<p>We received a request to reset your password.</p>"
            "<p>Click the link below to set a new password:</p>"
            f'<p><a href="{html.escape(link)}">Reset Password</a></p>'
            f"<p>This link will expire in {_describe(ttl)}.</p>"
        )
        self.email_sender.send_email(email, "Reset your password", content)
