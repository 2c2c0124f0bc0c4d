"""Shared base classes for settings modules.

Every settings section reads the process environment and an optional
``.env`` file with case-sensitive variable names, ignoring variables that
belong to other sections.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

_SECTION_CONFIG = SettingsConfigDict(
    env_file=".env",
    case_sensitive=True,
    extra="ignore",
    populate_by_name=True,
)


class IntegrationSettings(BaseSettings):
    """Base class for notification provider settings (SendGrid, Twilio, Web Push)."""

    model_config = _SECTION_CONFIG


class FeatureSettings(BaseSettings):
    """Base class for feature module settings (escalation)."""

    model_config = _SECTION_CONFIG


class InfrastructureSettings(BaseSettings):
    """Base class for infrastructure-level settings.

    Infrastructure settings control core system behavior like retry logic,
    idempotency and delivery batching.
    """

    model_config = _SECTION_CONFIG
