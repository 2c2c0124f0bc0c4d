"""Sender that only logs, used for dry runs and unconfigured providers."""

from infrastructure.logging import get_module_logger, mask_address
from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.models import (
    Channel,
    NotificationPayload,
    ProviderResponse,
)

logger = get_module_logger()


class LogOnlySender(ChannelSender):
    """Pretend to deliver on ``channel`` by writing a log line.

    Always succeeds, so escalation flows can be exercised end to end in
    development without provider credentials.
    """

    def __init__(self, channel: Channel):
        super().__init__()
        self._channel = Channel.parse(channel)

    @property
    def channel_name(self) -> Channel:
        return self._channel

    def send(self, address: str, payload: NotificationPayload) -> ProviderResponse:
        logger.info(
            "notification_dry_run",
            channel=self._channel.value,
            recipient=mask_address(address),
            subject=payload.subject,
            severity=payload.severity,
        )
        return ProviderResponse(status_code=200, message="dry run")
