"""Idempotency infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class IdempotencySettings(InfrastructureSettings):
    """Idempotency cache configuration for preventing duplicate dispatches.

    Environment Variables:
        IDEMPOTENCY_TTL_SECONDS: Time-to-live for dispatch keys (default: 86400s = 24h)

    Example:
        ```python
        from infrastructure.configuration import settings

        ttl = settings.idempotency.IDEMPOTENCY_TTL_SECONDS
        ```
    """

    IDEMPOTENCY_TTL_SECONDS: int = Field(default=86400, alias="IDEMPOTENCY_TTL_SECONDS")
