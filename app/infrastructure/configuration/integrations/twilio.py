"""Twilio SMS and voice integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class TwilioSettings(IntegrationSettings):
    """Twilio REST API configuration shared by the SMS and voice channels.

    Environment Variables:
        TWILIO_ACCOUNT_SID: Account SID (basic auth username)
        TWILIO_AUTH_TOKEN: Auth token (basic auth password)
        TWILIO_PHONE_NUMBER: Sending number in E.164 format
        TWILIO_API_URL: Base URL of the Twilio REST API
        TWILIO_STATUS_CALLBACK_URL: Optional call status webhook

    Example:
        ```python
        from infrastructure.configuration import settings

        sid = settings.twilio.TWILIO_ACCOUNT_SID
        ```
    """

    TWILIO_ACCOUNT_SID: str | None = Field(default=None, alias="TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN: str | None = Field(default=None, alias="TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER: str | None = Field(default=None, alias="TWILIO_PHONE_NUMBER")
    TWILIO_API_URL: str = Field(
        default="https://api.twilio.com/2010-04-01", alias="TWILIO_API_URL"
    )
    TWILIO_STATUS_CALLBACK_URL: str | None = Field(
        default=None, alias="TWILIO_STATUS_CALLBACK_URL"
    )

    @property
    def is_configured(self) -> bool:
        """Check that credentials and a sending number are all present."""
        return bool(
            self.TWILIO_ACCOUNT_SID
            and self.TWILIO_AUTH_TOKEN
            and self.TWILIO_PHONE_NUMBER
        )
