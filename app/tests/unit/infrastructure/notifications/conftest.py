"""Fixtures for delivery pipeline tests."""

from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from infrastructure.configuration import Settings
from infrastructure.configuration.infrastructure import DeliverySettings, RetrySettings
from infrastructure.configuration.integrations import (
    SendGridSettings,
    TwilioSettings,
    WebPushSettings,
)
from infrastructure.notifications import (
    Channel,
    ChannelSender,
    NotificationJob,
    NotificationPayload,
    Priority,
    ProviderResponse,
)


class FakeSender(ChannelSender):
    """Sender that replays scripted provider responses.

    Each entry in ``responses`` is either a ProviderResponse or an exception
    to raise. The last entry repeats once the script runs out.
    """

    def __init__(self, channel: Channel = Channel.EMAIL, responses: Optional[List] = None):
        super().__init__(session=MagicMock())
        self._channel = channel
        self.responses = list(responses or [ProviderResponse(status_code=202)])
        self.calls = []

    @property
    def channel_name(self) -> Channel:
        return self._channel

    def send(self, address, payload):
        self.calls.append((address, payload))
        index = min(len(self.calls) - 1, len(self.responses) - 1)
        outcome = self.responses[index]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def payload_factory():
    def _factory(**overrides) -> NotificationPayload:
        defaults = {
            "subject": "[HIGH] Database down",
            "body": "Primary database is not accepting connections.",
            "severity": "high",
            "url": "https://app.example.com/incidents/inc-1",
            "data": {"incident_id": "inc-1", "level": 1},
        }
        defaults.update(overrides)
        return NotificationPayload(**defaults)

    return _factory


@pytest.fixture
def job_factory(payload_factory):
    def _factory(**overrides) -> NotificationJob:
        defaults = {
            "channel": Channel.EMAIL,
            "address": "oncall@example.com",
            "payload": payload_factory(),
            "priority": Priority.NORMAL,
            "max_attempts": 3,
        }
        defaults.update(overrides)
        return NotificationJob(**defaults)

    return _factory


@pytest.fixture
def fake_sender_factory():
    return FakeSender


@pytest.fixture
def settings_factory():
    """Build a Settings object without reading the environment for providers."""

    def _factory(
        dry_run: bool = False,
        sendgrid_key: Optional[str] = "SG.test-key",
        twilio: bool = True,
        vapid_public: Optional[str] = None,
        vapid_private: Optional[str] = None,
        **delivery_overrides,
    ) -> Settings:
        delivery = {"NOTIFICATION_DRY_RUN": dry_run, "DELIVERY_SEND_TIMEOUT_SECONDS": 5.0}
        delivery.update(delivery_overrides)
        twilio_kwargs = (
            {
                "TWILIO_ACCOUNT_SID": "AC123",
                "TWILIO_AUTH_TOKEN": "auth-token",
                "TWILIO_PHONE_NUMBER": "+15550000000",
            }
            if twilio
            else {
                "TWILIO_ACCOUNT_SID": None,
                "TWILIO_AUTH_TOKEN": None,
                "TWILIO_PHONE_NUMBER": None,
            }
        )
        return Settings(
            sendgrid=SendGridSettings(SENDGRID_API_KEY=sendgrid_key),
            twilio=TwilioSettings(**twilio_kwargs),
            webpush=WebPushSettings(
                VAPID_PUBLIC_KEY=vapid_public, VAPID_PRIVATE_KEY=vapid_private
            ),
            delivery=DeliverySettings(**delivery),
            retry=RetrySettings(
                RETRY_MAX_ATTEMPTS=3,
                RETRY_BASE_DELAY_SECONDS=1.0,
                RETRY_MAX_DELAY_SECONDS=60.0,
            ),
        )

    return _factory


@pytest.fixture
def mock_response():
    """Factory for fake ``requests.Response`` objects."""

    def _factory(status_code=200, json_body=None, headers=None, text=""):
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        response.text = text
        if json_body is None:
            response.json.side_effect = ValueError("no json")
        else:
            response.json.return_value = json_body
        return response

    return _factory


@pytest.fixture
def mock_session(mock_response):
    session = MagicMock()
    session.headers = {}
    session.post.return_value = mock_response(202)
    return session
