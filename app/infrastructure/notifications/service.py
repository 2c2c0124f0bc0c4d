"""Delivery service for dependency injection.

Builds the delivery pipeline (senders, queue, retry controller, batch
dispatcher) from settings and exposes a small facade over it.
"""

from concurrent.futures import Future
from typing import Callable, Dict, Iterable, Optional, TYPE_CHECKING

from infrastructure.logging import get_module_logger
from infrastructure.notifications.channels import (
    ChannelSender,
    EmailSender,
    LogOnlySender,
    PushSender,
    SMSSender,
    VoiceSender,
)
from infrastructure.notifications.dispatcher import BatchDispatcher, ResultHook
from infrastructure.notifications.models import Channel, DeliveryStats, NotificationJob
from infrastructure.notifications.queue import DeliveryQueue
from infrastructure.notifications.retry import RetryConfig, RetryController

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


def build_senders(settings: "Settings") -> Dict[Channel, ChannelSender]:
    """Create one sender per channel.

    A channel whose provider is not configured, or every channel when
    ``NOTIFICATION_DRY_RUN`` is set, gets a LogOnlySender instead.
    """
    if settings.delivery.NOTIFICATION_DRY_RUN:
        logger.warning("notification_dry_run_enabled")
        return {channel: LogOnlySender(channel) for channel in Channel}

    senders: Dict[Channel, ChannelSender] = {}

    if settings.sendgrid.SENDGRID_API_KEY:
        senders[Channel.EMAIL] = EmailSender(settings)
    if settings.twilio.is_configured:
        senders[Channel.SMS] = SMSSender(settings)
        senders[Channel.VOICE] = VoiceSender(settings)
    if settings.webpush.VAPID_PUBLIC_KEY and settings.webpush.VAPID_PRIVATE_KEY:
        senders[Channel.PUSH] = PushSender(settings)

    for channel in Channel:
        if channel not in senders:
            logger.warning("channel_not_configured", channel=channel.value)
            senders[channel] = LogOnlySender(channel)

    return senders


class DeliveryService:
    """Thin facade over the delivery pipeline.

    All actual work is delegated to the queue and the BatchDispatcher.

    Usage:
        service = DeliveryService(settings)
        service.submit(jobs)
        stats = service.flush()
    """

    def __init__(
        self,
        settings: "Settings",
        senders: Optional[Dict[Channel, ChannelSender]] = None,
        queue: Optional[DeliveryQueue] = None,
        on_result: Optional[ResultHook] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.senders = senders if senders is not None else build_senders(settings)
        self.queue = queue if queue is not None else DeliveryQueue()
        sleep_kwargs = {"sleep": sleep} if sleep is not None else {}

        self.retry_controller = RetryController(
            self.senders, RetryConfig.from_settings(settings), **sleep_kwargs
        )
        self.dispatcher = BatchDispatcher(
            self.retry_controller,
            batch_size=settings.delivery.DELIVERY_BATCH_SIZE,
            inter_batch_delay=settings.delivery.DELIVERY_INTER_BATCH_DELAY_SECONDS,
            concurrency_per_batch=settings.delivery.DELIVERY_CONCURRENCY_PER_BATCH,
            background_workers=settings.delivery.DELIVERY_BACKGROUND_WORKERS,
            on_result=on_result,
            **sleep_kwargs,
        )
        self.max_attempts = settings.retry.RETRY_MAX_ATTEMPTS
        logger.info(
            "initialized_delivery_service",
            channels=[c.value for c in self.senders],
            batch_size=self.dispatcher.batch_size,
            max_attempts=self.max_attempts,
        )

    def submit(self, jobs: Iterable[NotificationJob]) -> int:
        """Queue jobs for the next flush."""
        return self.queue.enqueue_batch(jobs)

    def flush(self) -> DeliveryStats:
        """Drain the queue and deliver synchronously."""
        return self.dispatcher.drain_queue(self.queue)

    def flush_async(
        self, callback: Optional[Callable[[DeliveryStats], None]] = None
    ) -> "Future[DeliveryStats]":
        """Drain the queue on the dispatcher's background executor."""
        return self.dispatcher.submit_queue_drain(self.queue, callback)

    def health_check(self) -> Dict[str, bool]:
        """Per-channel sender health."""
        return {
            channel.value: sender.health_check().is_success
            for channel, sender in self.senders.items()
        }

    def shutdown(self, wait: bool = True) -> None:
        self.dispatcher.shutdown(wait=wait)
