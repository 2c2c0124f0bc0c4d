"""Unit tests for the Web Push sender."""

import json

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from infrastructure.notifications import Channel, PushSender
from infrastructure.notifications.channels.push import build_push_message, supports_vapid
from infrastructure.operations import OperationStatus

pytestmark = pytest.mark.unit

FCM_ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"


@pytest.fixture(scope="module")
def vapid_keys():
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()
    return private_pem, public_pem


@pytest.fixture
def clock():
    class Clock:
        now = 1_700_000_000.0

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def sender(settings_factory, mock_session, vapid_keys, clock):
    private_pem, _ = vapid_keys
    settings = settings_factory(vapid_public="BPublicKey", vapid_private=private_pem)
    return PushSender(settings, session=mock_session, clock=clock)


class TestPushHelpers:
    @pytest.mark.parametrize(
        "endpoint,expected",
        [
            (FCM_ENDPOINT, True),
            ("https://updates.push.services.mozilla.com/wpush/v2/x", True),
            ("https://web.push.apple.com/abc", True),
            ("https://push.example.com/abc", False),
        ],
    )
    def test_supports_vapid(self, endpoint, expected):
        assert supports_vapid(endpoint) is expected

    def test_build_push_message(self, payload_factory):
        message = build_push_message(payload_factory(severity="critical"))

        assert message["title"] == "[HIGH] Database down"
        assert message["tag"] == "incident-inc-1"
        assert message["requireInteraction"] is True
        assert message["url"] == "https://app.example.com/incidents/inc-1"

    def test_build_push_message_without_incident(self, payload_factory):
        message = build_push_message(payload_factory(data={}, severity="low"))

        assert message["tag"] == "escalation"
        assert message["requireInteraction"] is False


class TestPushSender:
    def test_channel(self, sender):
        assert sender.channel_name is Channel.PUSH

    def test_send_with_vapid(self, sender, mock_session, mock_response, payload_factory, vapid_keys):
        mock_session.post.return_value = mock_response(
            201, headers={"Location": "https://fcm.googleapis.com/msg/1"}
        )

        response = sender.send(FCM_ENDPOINT, payload_factory())

        assert response.status_code == 201
        assert response.provider_id == "https://fcm.googleapis.com/msg/1"
        assert mock_session.post.call_args.args[0] == FCM_ENDPOINT
        kwargs = mock_session.post.call_args.kwargs
        headers = kwargs["headers"]
        assert headers["TTL"] == "86400"
        assert headers["Urgency"] == "high"
        assert json.loads(kwargs["data"])["title"] == "[HIGH] Database down"

        scheme, rest = headers["Authorization"].split(" ", 1)
        token_part, key_part = rest.split(", ")
        assert scheme == "vapid"
        assert key_part == "k=BPublicKey"
        claims = jwt.decode(
            token_part[len("t="):],
            key=vapid_keys[1],
            algorithms=["ES256"],
            audience="https://fcm.googleapis.com",
            options={"verify_exp": False},
        )
        assert claims["sub"] == "mailto:notifications@alert24.app"

    def test_non_vapid_endpoint_has_no_authorization(self, sender, mock_session, payload_factory):
        sender.send("https://push.example.com/sub/1", payload_factory())

        assert "Authorization" not in mock_session.post.call_args.kwargs["headers"]

    def test_token_reused_until_expiry(self, sender, clock):
        first = sender._vapid_token("https://fcm.googleapis.com")
        clock.now += 60
        second = sender._vapid_token("https://fcm.googleapis.com")
        clock.now += 13 * 60 * 60
        third = sender._vapid_token("https://fcm.googleapis.com")

        assert first == second
        assert third != first

    @pytest.mark.parametrize("endpoint", ["http://fcm.googleapis.com/x", "not a url"])
    def test_invalid_endpoint(self, sender, mock_session, payload_factory, endpoint):
        response = sender.send(endpoint, payload_factory())

        assert response.error_code == "INVALID_ENDPOINT"
        mock_session.post.assert_not_called()

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_gone_subscription_is_not_found(
        self, sender, mock_session, mock_response, payload_factory, status_code
    ):
        mock_session.post.return_value = mock_response(status_code, text="gone")

        result = sender.classify(sender.send(FCM_ENDPOINT, payload_factory()))

        assert result.status is OperationStatus.NOT_FOUND
        assert not result.is_transient

    def test_health_check(self, sender, settings_factory, mock_session):
        assert sender.health_check().is_success
        assert not PushSender(settings_factory(), session=mock_session).health_check().is_success
