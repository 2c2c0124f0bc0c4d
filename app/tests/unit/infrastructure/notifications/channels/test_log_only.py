"""Unit tests for the log-only sender."""

import pytest

from infrastructure.notifications import Channel, LogOnlySender

pytestmark = pytest.mark.unit


class TestLogOnlySender:
    def test_always_succeeds(self, payload_factory):
        sender = LogOnlySender(Channel.SMS)

        response = sender.send("+15551234567", payload_factory())

        assert response.status_code == 200
        assert sender.classify(response).is_success

    def test_accepts_channel_name(self):
        assert LogOnlySender("voice").channel_name is Channel.VOICE
