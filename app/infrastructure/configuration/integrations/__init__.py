"""Integration settings __init__ - exports all integration settings."""

from infrastructure.configuration.integrations.sendgrid import SendGridSettings
from infrastructure.configuration.integrations.twilio import TwilioSettings
from infrastructure.configuration.integrations.webpush import WebPushSettings

__all__ = [
    "SendGridSettings",
    "TwilioSettings",
    "WebPushSettings",
]
