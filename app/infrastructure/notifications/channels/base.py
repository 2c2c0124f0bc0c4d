"""Channel sender abstract base class.

All channel implementations (email, SMS, voice, push) implement this
interface. Retry and dispatch code only talks to ``ChannelSender`` and never
branches on which channel it is driving.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    ProviderResponse,
)
from infrastructure.operations import OperationResult, classify_http_status

USER_AGENT = "escalation-engine/1.0"


class ChannelSender(ABC):
    """Abstract base class for channel senders.

    Each sender owns only its transport specifics: building the provider
    request and turning the HTTP exchange into a ``ProviderResponse``.
    Classification into transient/permanent uses ``classify_http_status``
    unless a sender knows better.

    Transport exceptions (timeouts, refused connections) are allowed to
    propagate out of ``send``; the retry controller classifies them.

    Example Implementation:
        class PagerSender(ChannelSender):

            @property
            def channel_name(self) -> Channel:
                return Channel.SMS

            def send(self, address, payload) -> ProviderResponse:
                response = self._post(self._url, json={"to": address, "text": payload.body})
                return self._to_provider_response(response)
    """

    def __init__(
        self,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the sender.

        Args:
            timeout: Per-request timeout in seconds, applied to every provider call
            session: Optional requests session (connection pooling, test doubles)
        """
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    @property
    @abstractmethod
    def channel_name(self) -> Channel:
        """Channel this sender delivers on."""
        pass

    @abstractmethod
    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        """Make exactly one provider call for one address.

        Args:
            address: Email address, E.164 phone number or push endpoint URL
            payload: Message content

        Returns:
            ProviderResponse describing the raw outcome
        """
        pass

    def classify(self, response: ProviderResponse) -> OperationResult:
        """Classify a provider response as success, transient or permanent.

        Responses decided locally (``error_code`` set, no HTTP exchange) are
        permanent: retrying cannot fix a bad address.
        """
        if response.error_code and response.status_code is None:
            return OperationResult.permanent_error(
                response.message or "Rejected before sending",
                error_code=response.error_code,
            )
        result = classify_http_status(
            response.status_code,
            message=response.message,
            retry_after=response.retry_after,
        )
        if result.is_success and response.provider_id:
            result.data = {"provider_id": response.provider_id}
        return result

    def health_check(self) -> OperationResult:
        """Check that the sender is configured well enough to send."""
        return OperationResult.success(message=f"{self.channel_name.value} sender ready")

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.timeout)
        return self._session.post(url, **kwargs)

    @staticmethod
    def _to_provider_response(
        response: requests.Response,
        provider_id: Optional[str] = None,
    ) -> ProviderResponse:
        """Build a ProviderResponse from a requests response."""
        message = ""
        if response.status_code >= 300:
            message = _extract_error_message(response)
        return ProviderResponse(
            status_code=response.status_code,
            message=message,
            retry_after=response.headers.get("Retry-After"),
            provider_id=provider_id,
        )


def extract_json_field(response: requests.Response, field: str) -> Optional[str]:
    """Read one field from a JSON response body, None if the body is not JSON."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get(field) is not None:
        return str(body[field])
    return None


def _extract_error_message(response: requests.Response) -> str:
    """Best-effort provider error text, bounded for logs and stats."""
    try:
        body = response.json()
    except ValueError:
        return (response.text or f"HTTP {response.status_code}")[:500]

    if isinstance(body, dict):
        # SendGrid: {"errors": [{"message": ...}]}, Twilio: {"message": ...}
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return str(errors[0].get("message", errors[0]))[:500]
        if body.get("message"):
            return str(body["message"])[:500]
    return str(body)[:500]
