"""SMS channel implementation using the Twilio Messages API."""

import re
from typing import Optional, TYPE_CHECKING

import requests

from infrastructure.logging import get_module_logger, mask_address
from infrastructure.notifications.channels.base import ChannelSender, extract_json_field
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    ProviderResponse,
)
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()

SMS_MAX_LENGTH = 160

_NON_DIGITS = re.compile(r"[^\d+]")


def normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """Normalize a phone number to E.164, or return None if it cannot be.

    Formatting characters are stripped. Ten bare digits are assumed to be a
    North American number and get a ``+1`` prefix.

    >>> normalize_phone_number("(555) 010-1234")
    '+15550101234'
    """
    if not phone:
        return None
    cleaned = _NON_DIGITS.sub("", phone)
    if cleaned.startswith("+"):
        digits = cleaned[1:]
        if digits.isdigit() and 9 <= len(cleaned) <= 16:
            return cleaned
        return None
    if len(cleaned) == 10:
        return f"+1{cleaned}"
    if len(cleaned) == 11 and cleaned.startswith("1"):
        return f"+{cleaned}"
    return None


def format_sms_message(payload: NotificationPayload) -> str:
    """Build the SMS text with a severity prefix, truncated to one segment."""
    prefix = "CRITICAL: " if payload.severity == "critical" else "ALERT: "
    text = f"{prefix}{payload.subject}. {payload.body}"
    if len(text) > SMS_MAX_LENGTH:
        return text[: SMS_MAX_LENGTH - 3] + "..."
    return text


class SMSSender(ChannelSender):
    """SMS sender using Twilio.

    Requires Twilio credentials and a sending number. Phone numbers that
    cannot be normalised to E.164 fail permanently without a network call.
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
        self._url = (
            f"{twilio.TWILIO_API_URL.rstrip('/')}/Accounts/"
            f"{self._account_sid}/Messages.json"
        )
        self._configured = twilio.is_configured
        logger.info("initialized_sms_sender", backend="twilio")

    @property
    def channel_name(self) -> Channel:
        return Channel.SMS

    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        phone_number = normalize_phone_number(address)
        if phone_number is None:
            return ProviderResponse(
                status_code=None,
                message=f"Invalid phone number: {mask_address(address)}",
                error_code="INVALID_PHONE_NUMBER",
            )

        response = self._post(
            self._url,
            data={
                "To": phone_number,
                "From": self._from_number,
                "Body": format_sms_message(payload),
            },
            auth=(self._account_sid, self._auth_token),
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
