"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.escalation import EscalationSettings

__all__ = ["EscalationSettings"]
