"""Escalation engine configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Integration settings
from infrastructure.configuration.integrations import (
    SendGridSettings,
    TwilioSettings,
    WebPushSettings,
)

# Feature settings
from infrastructure.configuration.features import EscalationSettings

# Infrastructure settings
from infrastructure.configuration.infrastructure import (
    DeliverySettings,
    IdempotencySettings,
    RetrySettings,
)


class Settings(BaseSettings):
    """Escalation engine configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object.
    Settings are organized by concern:

    - **Integrations**: Provider configurations (SendGrid, Twilio, Web Push)
    - **Features**: Escalation scheduler configuration
    - **Infrastructure**: Core system configurations (retry, delivery, idempotency)

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking

    Example:
        ```python
        from infrastructure.configuration import settings

        # Access integration settings
        api_key = settings.sendgrid.SENDGRID_API_KEY

        # Access infrastructure settings
        batch_size = settings.delivery.DELIVERY_BATCH_SIZE
        max_attempts = settings.retry.RETRY_MAX_ATTEMPTS

        # Check environment
        if settings.is_production:
            # Production-specific logic...
        ```
    """

    # Application-level settings
    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    sendgrid: SendGridSettings
    twilio: TwilioSettings
    webpush: WebPushSettings

    # Feature settings
    escalation: EscalationSettings

    # Infrastructure settings
    delivery: DeliverySettings
    idempotency: IdempotencySettings
    retry: RetrySettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            # Integrations
            "sendgrid": SendGridSettings,
            "twilio": TwilioSettings,
            "webpush": WebPushSettings,
            # Features
            "escalation": EscalationSettings,
            # Infrastructure
            "delivery": DeliverySettings,
            "idempotency": IdempotencySettings,
            "retry": RetrySettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the singleton settings instance
settings = Settings()
