"""Infrastructure configuration module - public API.

This module provides centralized configuration management for the escalation
engine using Pydantic BaseSettings with domain-based organization.

Exports:
    settings: Singleton Settings instance (main configuration object)
    Settings: Main settings class (for testing/overrides)
    RetrySettings, DeliverySettings, EscalationSettings: Section classes

Example:
    ```python
    from infrastructure.configuration import settings

    timeout = settings.delivery.DELIVERY_SEND_TIMEOUT_SECONDS
    tick = settings.escalation.ESCALATION_TICK_INTERVAL_SECONDS
    ```
"""

from infrastructure.configuration.settings import Settings, settings
from infrastructure.configuration.features import EscalationSettings
from infrastructure.configuration.infrastructure import (
    DeliverySettings,
    IdempotencySettings,
    RetrySettings,
)

__all__ = [
    "Settings",
    "settings",
    "DeliverySettings",
    "EscalationSettings",
    "IdempotencySettings",
    "RetrySettings",
]
