"""
Unit tests for TwilioSmsSender with a mocked REST client.
"""

from unittest import mock

import pytest
from twilio.base.exceptions import TwilioRestException

from src.adapters.sms.twilio import TwilioSmsSender
from src.domain.exceptions import DeliveryFailed


@pytest.fixture
def client() -> mock.Mock:
    client = mock.Mock()
    client.messages.create.return_value = mock.Mock(sid="SM0123456789")
    return client


def test_sends_from_configured_number(client: mock.Mock) -> None:
    TwilioSmsSender(client, "+15005550006").send_sms("+919876543210", "Your code is 123456")

    client.messages.create.assert_called_once_with(
        body="Your code is 123456", from_="+15005550006", to="+919876543210"
    )


def test_logs_message_sid(client: mock.Mock, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("INFO"):
        TwilioSmsSender(client, "+15005550006").send_sms("+919876543210", "hi")

    assert "SM0123456789" in caplog.text


def test_rest_error_becomes_delivery_failure(client: mock.Mock) -> None:
    client.messages.create.side_effect = TwilioRestException(
        400, "https://api.twilio.com/2010-04-01/Accounts/AC/Messages.json", msg="Invalid 'To' Phone Number"
    )

    with pytest.raises(DeliveryFailed):
        TwilioSmsSender(client, "+15005550006").send_sms("+10000000000", "hi")


def test_network_error_becomes_delivery_failure(client: mock.Mock) -> None:
    client.messages.create.side_effect = ConnectionError("unreachable")

    with pytest.raises(DeliveryFailed):
        TwilioSmsSender(client, "+15005550006").send_sms("+919876543210", "hi")
