"""Notification delivery pipeline settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class DeliverySettings(InfrastructureSettings):
    """Batching, throttling and transport limits for notification delivery.

    Environment Variables:
        DELIVERY_BATCH_SIZE: Jobs per dispatch chunk (default: 100)
        DELIVERY_INTER_BATCH_DELAY_SECONDS: Pause between chunks (default: 0.1s)
        DELIVERY_CONCURRENCY_PER_BATCH: Worker cap inside a chunk (default: chunk size)
        DELIVERY_SEND_TIMEOUT_SECONDS: Per-request provider timeout (default: 10s)
        DELIVERY_BACKGROUND_WORKERS: Threads draining queued batches (default: 4)
        NOTIFICATION_DRY_RUN: Log notifications instead of calling providers

    Example:
        ```python
        from infrastructure.configuration import settings

        batch_size = settings.delivery.DELIVERY_BATCH_SIZE
        if settings.delivery.NOTIFICATION_DRY_RUN:
            # Use log-only senders...
        ```
    """

    DELIVERY_BATCH_SIZE: int = Field(default=100, alias="DELIVERY_BATCH_SIZE", ge=1)
    DELIVERY_INTER_BATCH_DELAY_SECONDS: float = Field(
        default=0.1, alias="DELIVERY_INTER_BATCH_DELAY_SECONDS", ge=0
    )
    DELIVERY_CONCURRENCY_PER_BATCH: Optional[int] = Field(
        default=None, alias="DELIVERY_CONCURRENCY_PER_BATCH", ge=1
    )
    DELIVERY_SEND_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="DELIVERY_SEND_TIMEOUT_SECONDS", gt=0
    )
    DELIVERY_BACKGROUND_WORKERS: int = Field(
        default=4, alias="DELIVERY_BACKGROUND_WORKERS", ge=1
    )
    NOTIFICATION_DRY_RUN: bool = Field(default=False, alias="NOTIFICATION_DRY_RUN")
