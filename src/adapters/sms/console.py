"""
Console SMS sender adapter - Implements SmsSender protocol.
"""

import logging

from src.domain.exceptions import NotConfigured

logger = logging.getLogger(__name__)


class ConsoleSmsSender:
    """Logs text messages in development; refuses to pretend elsewhere."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def send_sms(self, to: str, body: str) -> None:
        if not self._enabled:
            raise NotConfigured("Twilio credentials are not configured")
        logger.info("[SMS] To: %s Body: %s", to, body)
