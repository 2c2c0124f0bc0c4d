"""Email channel implementation using the SendGrid v3 API."""

import html
from typing import Optional, TYPE_CHECKING

import requests

from infrastructure.logging import get_module_logger, mask_address
from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    ProviderResponse,
)
from infrastructure.operations import OperationResult

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


class EmailSender(ChannelSender):
    """Email sender using SendGrid ``mail/send``.

    SendGrid answers 202 Accepted on success and returns the message id in
    the ``X-Message-Id`` header.
    """

    def __init__(
        self,
        settings: "Settings",
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            timeout=settings.delivery.DELIVERY_SEND_TIMEOUT_SECONDS, session=session
        )
        self._api_key = settings.sendgrid.SENDGRID_API_KEY
        self._url = settings.sendgrid.SENDGRID_API_URL.rstrip("/") + "/mail/send"
        self._from_email = settings.sendgrid.SENDGRID_FROM_EMAIL
        self._from_name = settings.sendgrid.SENDGRID_FROM_NAME
        logger.info(
            "initialized_email_sender",
            backend="sendgrid",
            sender=self._from_email,
        )

    @property
    def channel_name(self) -> Channel:
        return Channel.EMAIL

    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        if "@" not in address:
            return ProviderResponse(
                status_code=None,
                message=f"Invalid email address: {mask_address(address)}",
                error_code="INVALID_EMAIL",
            )

        body = {
            "personalizations": [{"to": [{"email": address}]}],
            "from": {"email": self._from_email, "name": self._from_name},
            "subject": payload.subject or "Notification",
            "content": [
                {"type": "text/plain", "value": payload.body},
                {
                    "type": "text/html",
                    "value": payload.html_body or _plain_to_html(payload.body),
                },
            ],
        }
        if payload.data:
            # SendGrid custom_args values must be strings
            body["custom_args"] = {k: str(v) for k, v in payload.data.items()}

        response = self._post(
            self._url,
            json=body,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        return self._to_provider_response(
            response, provider_id=response.headers.get("X-Message-Id")
        )

    def classify(self, response: ProviderResponse) -> OperationResult:
        """SendGrid reports oversized messages in the body, not always as 413."""
        if response.message and "entity too large" in response.message.lower():
            return OperationResult.permanent_error(
                response.message, error_code="PAYLOAD_TOO_LARGE"
            )
        return super().classify(response)

    def health_check(self) -> OperationResult:
        if not self._api_key:
            return OperationResult.permanent_error(
                "SENDGRID_API_KEY is not configured", error_code="NOT_CONFIGURED"
            )
        return OperationResult.success(
            message="SendGrid credentials present", data={"api_url": self._url}
        )


def _plain_to_html(text: str) -> str:
    escaped = html.escape(text)
    return "<p>" + escaped.replace("\n", "<br>") + "</p>"
