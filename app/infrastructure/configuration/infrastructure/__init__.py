"""Infrastructure settings __init__ - exports all infrastructure settings."""

from infrastructure.configuration.infrastructure.delivery import DeliverySettings
from infrastructure.configuration.infrastructure.idempotency import IdempotencySettings
from infrastructure.configuration.infrastructure.retry import RetrySettings

__all__ = [
    "DeliverySettings",
    "IdempotencySettings",
    "RetrySettings",
]
