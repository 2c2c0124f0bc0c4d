"""Push channel implementation using the Web Push protocol with VAPID."""

import json
import threading
import time
from typing import Dict, Optional, Tuple, TYPE_CHECKING
from urllib.parse import urlparse

import jwt
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

# Push services known to require VAPID authentication
VAPID_HOSTS = (
    "fcm.googleapis.com",
    "updates.push.services.mozilla.com",
    "notify.windows.com",
    "web.push.apple.com",
)

VAPID_TOKEN_LIFETIME_SECONDS = 12 * 60 * 60

URGENCY_BY_SEVERITY = {
    "critical": "high",
    "high": "high",
    "medium": "normal",
    "normal": "normal",
    "low": "low",
    "info": "very-low",
}


def supports_vapid(endpoint: str) -> bool:
    host = urlparse(endpoint).hostname or ""
    return any(host == h or host.endswith("." + h) for h in VAPID_HOSTS)


def build_push_message(payload: NotificationPayload) -> Dict:
    """JSON body the service worker turns into a notification."""
    incident_id = payload.data.get("incident_id")
    return {
        "title": payload.subject,
        "body": payload.body,
        "tag": f"incident-{incident_id}" if incident_id else "escalation",
        "url": payload.url,
        "requireInteraction": payload.severity in ("critical", "high"),
        "data": payload.data,
    }


class PushSender(ChannelSender):
    """Web Push sender.

    The address is the subscription endpoint URL. 404 and 410 from the push
    service mean the subscription is gone and are permanent.
    """

    def __init__(
        self,
        settings: "Settings",
        session: Optional[requests.Session] = None,
        clock=time.time,
    ):
        super().__init__(
            timeout=settings.delivery.DELIVERY_SEND_TIMEOUT_SECONDS, session=session
        )
        webpush = settings.webpush
        self._public_key = webpush.VAPID_PUBLIC_KEY
        self._private_key = webpush.VAPID_PRIVATE_KEY
        self._subject = f"mailto:{webpush.VAPID_EMAIL}"
        self._ttl = webpush.PUSH_TTL_SECONDS
        self._clock = clock
        # audience -> (token, expires_at)
        self._tokens: Dict[str, Tuple[str, float]] = {}
        self._tokens_lock = threading.Lock()
        logger.info(
            "initialized_push_sender",
            vapid_enabled=bool(self._public_key and self._private_key),
        )

    @property
    def channel_name(self) -> Channel:
        return Channel.PUSH

    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        parsed = urlparse(address)
        if parsed.scheme != "https" or not parsed.netloc:
            return ProviderResponse(
                status_code=None,
                message=f"Invalid push endpoint: {mask_address(address)}",
                error_code="INVALID_ENDPOINT",
            )

        body = json.dumps(build_push_message(payload)).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "TTL": str(self._ttl),
            "Urgency": URGENCY_BY_SEVERITY.get(payload.severity, "normal"),
        }
        if supports_vapid(address) and self._public_key and self._private_key:
            audience = f"{parsed.scheme}://{parsed.netloc}"
            headers["Authorization"] = (
                f"vapid t={self._vapid_token(audience)}, k={self._public_key}"
            )

        response = self._post(address, data=body, headers=headers)
        return self._to_provider_response(
            response, provider_id=response.headers.get("Location")
        )

    def _vapid_token(self, audience: str) -> str:
        """ES256 JWT for the push service, reused until close to expiry."""
        now = self._clock()
        with self._tokens_lock:
            cached = self._tokens.get(audience)
            if cached and cached[1] - 60 > now:
                return cached[0]

            expires_at = now + VAPID_TOKEN_LIFETIME_SECONDS
            claims = {"aud": audience, "exp": int(expires_at), "sub": self._subject}
            token = jwt.encode(
                payload=claims,
                key=self._private_key,
                algorithm="ES256",
                headers={"typ": "JWT"},
            )
            if not isinstance(token, str):
                token = token.decode()
            self._tokens[audience] = (token, expires_at)
            return token

    def health_check(self) -> OperationResult:
        if not (self._public_key and self._private_key):
            return OperationResult.permanent_error(
                "VAPID keys are not configured", error_code="NOT_CONFIGURED"
            )
        return OperationResult.success(message="VAPID keys present")
