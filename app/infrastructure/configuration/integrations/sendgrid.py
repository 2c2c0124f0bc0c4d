"""SendGrid email integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class SendGridSettings(IntegrationSettings):
    """SendGrid v3 API configuration.

    Environment Variables:
        SENDGRID_API_KEY: API key used as Bearer token
        SENDGRID_FROM_EMAIL: Sender address for escalation emails
        SENDGRID_FROM_NAME: Sender display name
        SENDGRID_API_URL: Base URL of the SendGrid v3 API

    Example:
        ```python
        from infrastructure.configuration import settings

        if settings.sendgrid.SENDGRID_API_KEY:
            # Email channel is available...
        ```
    """

    SENDGRID_API_KEY: str | None = Field(default=None, alias="SENDGRID_API_KEY")
    SENDGRID_FROM_EMAIL: str = Field(
        default="noreply@alert24.net", alias="SENDGRID_FROM_EMAIL"
    )
    SENDGRID_FROM_NAME: str = Field(default="Alert24", alias="SENDGRID_FROM_NAME")
    SENDGRID_API_URL: str = Field(
        default="https://api.sendgrid.com/v3", alias="SENDGRID_API_URL"
    )
