"""Web Push (VAPID) integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class WebPushSettings(IntegrationSettings):
    """VAPID key material for Web Push delivery.

    Environment Variables:
        VAPID_PUBLIC_KEY: URL-safe base64 application server public key
        VAPID_PRIVATE_KEY: PEM encoded EC P-256 private key used to sign tokens
        VAPID_EMAIL: Contact address placed in the token ``sub`` claim
        PUSH_TTL_SECONDS: How long push services keep undelivered messages

    Example:
        ```python
        from infrastructure.configuration import settings

        public_key = settings.webpush.VAPID_PUBLIC_KEY
        ```
    """

    VAPID_PUBLIC_KEY: str | None = Field(default=None, alias="VAPID_PUBLIC_KEY")
    VAPID_PRIVATE_KEY: str | None = Field(default=None, alias="VAPID_PRIVATE_KEY")
    VAPID_EMAIL: str = Field(
        default="notifications@alert24.app", alias="VAPID_EMAIL"
    )
    PUSH_TTL_SECONDS: int = Field(default=86400, alias="PUSH_TTL_SECONDS")
