"""Channel senders for the delivery pipeline."""

from infrastructure.notifications.channels.base import ChannelSender
from infrastructure.notifications.channels.email import EmailSender
from infrastructure.notifications.channels.log_only import LogOnlySender
from infrastructure.notifications.channels.push import PushSender
from infrastructure.notifications.channels.sms import (
    SMSSender,
    format_sms_message,
    normalize_phone_number,
)
from infrastructure.notifications.channels.voice import VoiceSender, build_call_twiml

__all__ = [
    "ChannelSender",
    "EmailSender",
    "SMSSender",
    "VoiceSender",
    "PushSender",
    "LogOnlySender",
    "normalize_phone_number",
    "format_sms_message",
    "build_call_twiml",
]
