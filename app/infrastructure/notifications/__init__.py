"""Notification delivery pipeline.

Queues notification jobs by priority, sends them through channel senders
with bounded retries, and dispatches them in throttled concurrent batches.

Public API:
    - DeliveryService: settings-driven facade over the pipeline
    - DeliveryQueue, RetryController, BatchDispatcher: pipeline components
    - NotificationJob, NotificationPayload, DeliveryResult, DeliveryStats: models
    - ChannelSender and the concrete senders in ``channels``
"""

from infrastructure.notifications.channels import (
    ChannelSender,
    EmailSender,
    LogOnlySender,
    PushSender,
    SMSSender,
    VoiceSender,
)
from infrastructure.notifications.dispatcher import (
    BatchDispatcher,
    DeadEndpointHook,
    chain_hooks,
)
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    DeliveryStats,
    JobStatus,
    NotificationJob,
    NotificationPayload,
    Priority,
    ProviderResponse,
)
from infrastructure.notifications.queue import DeliveryQueue
from infrastructure.notifications.retry import RetryConfig, RetryController
from infrastructure.notifications.service import DeliveryService, build_senders

__all__ = [
    # Models
    "Channel",
    "Priority",
    "JobStatus",
    "NotificationPayload",
    "NotificationJob",
    "ProviderResponse",
    "DeliveryResult",
    "DeliveryStats",
    # Pipeline
    "DeliveryQueue",
    "RetryConfig",
    "RetryController",
    "BatchDispatcher",
    "DeadEndpointHook",
    "chain_hooks",
    "DeliveryService",
    "build_senders",
    # Senders
    "ChannelSender",
    "EmailSender",
    "SMSSender",
    "VoiceSender",
    "PushSender",
    "LogOnlySender",
]
