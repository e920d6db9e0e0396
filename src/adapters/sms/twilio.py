"""
Twilio SMS sender adapter - Implements SmsSender protocol.
"""

import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from src.config.settings import Settings
from src.domain.exceptions import DeliveryFailed

logger = logging.getLogger(__name__)


class TwilioSmsSender:
    """
    Implements SmsSender protocol via the Twilio REST client.

    The client is injected so tests can pass a mock.
    """

    def __init__(self, client: Client, from_number: str) -> None:
        self._client = client
        self._from_number = from_number

    @classmethod
    def from_settings(cls, settings: Settings) -> "TwilioSmsSender":
        client = Client(settings.twilio_account_sid, settings.twilio_auth_token)
        return cls(client, settings.twilio_from_number)

    def send_sms(self, to: str, body: str) -> None:
        """
        Raises:
            DeliveryFailed: Twilio rejected the message or was unreachable
        """
        try:
            message = self._client.messages.create(body=body, from_=self._from_number, to=to)
        except (TwilioException, OSError) as e:
            logger.error("Twilio delivery to %s failed: %s", to, e)
            raise DeliveryFailed(str(e)) from e

        logger.info("Sent SMS to %s (sid=%s)", to, message.sid)
