"""Voice channel implementation using the Twilio Calls API."""

import re
from typing import Optional, TYPE_CHECKING
from xml.sax.saxutils import escape

import requests

from infrastructure.logging import get_module_logger, mask_address
from infrastructure.notifications.channels.base import ChannelSender, extract_json_field
from infrastructure.notifications.channels.sms import normalize_phone_number
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    ProviderResponse,
)
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

_UNSPEAKABLE = re.compile(r"[^\w\s.,!?-]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_for_speech(text: str) -> str:
    """Strip characters text-to-speech would read out literally."""
    return _WHITESPACE.sub(" ", _UNSPEAKABLE.sub(" ", text)).strip()


def build_call_twiml(payload: NotificationPayload) -> str:
    """TwiML that reads the alert, pauses, and reads it once more."""
    if payload.severity in ("critical", "high"):
        urgency = "Urgent alert! This is a critical incident notification."
    else:
        urgency = "Alert notification."
    message = escape(sanitize_for_speech(f"{payload.subject}. {payload.body}"))
    return (
        "<Response>"
        '<Say voice="alice" language="en-US">'
        f"{urgency} {message} "
        "Please check your incident dashboard for more details. "
        "This message will repeat once."
        "</Say>"
        '<Pause length="2"/>'
        '<Say voice="alice" language="en-US">'
        f"Repeating: {message} End of notification. Goodbye."
        "</Say>"
        "</Response>"
    )


class VoiceSender(ChannelSender):
    """Voice call sender using Twilio.

    A 2xx from Twilio means the call was queued, not that it was answered.
    """

    def __init__(
        self,
        settings: "Settings",
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            timeout=settings.delivery.DELIVERY_SEND_TIMEOUT_SECONDS, session=session
        )
        twilio = settings.twilio
        self._account_sid = twilio.TWILIO_ACCOUNT_SID
        self._auth_token = twilio.TWILIO_AUTH_TOKEN
        self._from_number = twilio.TWILIO_PHONE_NUMBER
        self._status_callback = twilio.TWILIO_STATUS_CALLBACK_URL
        self._url = (
            f"{twilio.TWILIO_API_URL.rstrip('/')}/Accounts/"
            f"{self._account_sid}/Calls.json"
        )
        self._configured = twilio.is_configured
        logger.info("initialized_voice_sender", backend="twilio")

    @property
    def channel_name(self) -> Channel:
        return Channel.VOICE

    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        phone_number = normalize_phone_number(address)
        if phone_number is None:
            return ProviderResponse(
                status_code=None,
                message=f"Invalid phone number: {mask_address(address)}",
                error_code="INVALID_PHONE_NUMBER",
            )

        form = {
            "To": phone_number,
            "From": self._from_number,
            "Twiml": build_call_twiml(payload),
        }
        if self._status_callback:
            form["StatusCallback"] = self._status_callback

        response = self._post(
            self._url, data=form, auth=(self._account_sid, self._auth_token)
        )
        provider_id = None
        if response.status_code < 300:
            # Accepted even when the body carries no sid
            provider_id = extract_json_field(response, "sid")
        return self._to_provider_response(response, provider_id=provider_id)

    def health_check(self) -> OperationResult:
        if not self._configured:
            return OperationResult.permanent_error(
                "Twilio credentials are not configured", error_code="NOT_CONFIGURED"
            )
        return OperationResult.success(message="Twilio credentials present")
