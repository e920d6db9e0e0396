"""
Console email sender adapter - Implements EmailSender protocol.

Logs outgoing mail instead of sending it. Only usable in development;
anywhere else a missing SMTP configuration is an error, not a silent drop.
"""

import logging

from src.domain.exceptions import NotConfigured

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    def send_email(self, to: str, subject: str, html: str) -> None:
        """
        Log the message at INFO level (visible in docker-compose logs).

        Raises:
            NotConfigured: console delivery is disabled (not development)
        """
        if not self._enabled:
            raise NotConfigured("SMTP credentials are not configured")
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, html)
