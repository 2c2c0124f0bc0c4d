"""Delivery retry settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Retry behaviour for outbound notification sends.

    Environment Variables:
        RETRY_MAX_ATTEMPTS: Attempts per job before giving up (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 1s)
        RETRY_MAX_DELAY_SECONDS: Cap for a single backoff wait (default: 60s)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ (attempt - 1)), max_delay)

        Example with defaults (base=1s, max=60s):
            After attempt 1: 1s
            After attempt 2: 2s
            After attempt 3: 4s

    Example:
        ```python
        from infrastructure.configuration import settings

        max_attempts = settings.retry.RETRY_MAX_ATTEMPTS
        ```
    """

    RETRY_MAX_ATTEMPTS: int = Field(default=3, alias="RETRY_MAX_ATTEMPTS", ge=1)
    RETRY_BASE_DELAY_SECONDS: float = Field(
        default=1.0, alias="RETRY_BASE_DELAY_SECONDS", ge=0
    )
    RETRY_MAX_DELAY_SECONDS: float = Field(
        default=60.0, alias="RETRY_MAX_DELAY_SECONDS", ge=0
    )
