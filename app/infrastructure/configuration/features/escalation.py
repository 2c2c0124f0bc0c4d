"""Escalation feature settings."""

from typing import Optional

from pydantic import Field

from infrastructure.configuration.base import FeatureSettings


class EscalationSettings(FeatureSettings):
    """Escalation scheduler configuration.

    Environment Variables:
        ESCALATION_TICK_INTERVAL_SECONDS: Seconds between scheduler passes (default: 30)
        ESCALATION_EXHAUST_AFTER_SECONDS: Ack window after the last level when
            that level has no delay of its own (default: 900s = 15min)
        ESCALATION_ARCHIVE_SIZE: Terminal runs kept for inspection (default: 1000)
        ESCALATION_APP_URL: Base URL used to build incident links
        ESCALATION_DIRECTORY_FILE: Optional JSON file seeding the in-memory directory

    Example:
        ```python
        from infrastructure.configuration import settings

        interval = settings.escalation.ESCALATION_TICK_INTERVAL_SECONDS
        ```
    """

    ESCALATION_TICK_INTERVAL_SECONDS: int = Field(
        default=30, alias="ESCALATION_TICK_INTERVAL_SECONDS", ge=1
    )
    ESCALATION_EXHAUST_AFTER_SECONDS: int = Field(
        default=900, alias="ESCALATION_EXHAUST_AFTER_SECONDS", ge=0
    )
    ESCALATION_ARCHIVE_SIZE: int = Field(
        default=1000, alias="ESCALATION_ARCHIVE_SIZE", ge=0
    )
    ESCALATION_APP_URL: str = Field(
        default="http://localhost:3000", alias="ESCALATION_APP_URL"
    )
    ESCALATION_DIRECTORY_FILE: Optional[str] = Field(
        default=None, alias="ESCALATION_DIRECTORY_FILE"
    )
