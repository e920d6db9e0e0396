"""
SMTP email sender adapter - Implements EmailSender protocol via smtplib.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage

from src.config.settings import Settings
from src.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Sends HTML mail through an SMTP relay.

    Port 465 style servers use implicit TLS (use_ssl); everything else is
    upgraded with STARTTLS before logging in.
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str | None = None,
        use_ssl: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._from_address = from_address
        self._from_name = from_name
        self._use_ssl = use_ssl
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpEmailSender":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.smtp_from_address,
            from_name=settings.app_name,
            use_ssl=settings.smtp_use_ssl,
        )

    def send_email(self, to: str, subject: str, html: str) -> None:
        """
        Raises:
            DeliveryFailed: connection, authentication or send failed
        """
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f"{self._from_name} <{self._from_address}>" if self._from_name else self._from_address
        msg["To"] = to
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")

        context = ssl.create_default_context()
        try:
            if self._use_ssl:
                with smtplib.SMTP_SSL(self._host, self._port, timeout=self._timeout, context=context) as smtp:
                    self._deliver(smtp, msg)
            else:
                with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                    smtp.starttls(context=context)
                    self._deliver(smtp, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", to, e)
            raise DeliveryFailed(str(e)) from e

        logger.info("Sent email '%s' to %s", subject, to)

    def _deliver(self, smtp: smtplib.SMTP, msg: EmailMessage) -> None:
        if self._username and self._password:
            smtp.login(self._username, self._password)
        smtp.send_message(msg)
