"""External delivery channel adapters."""

from src.notifications.channels.base import ChannelAdapter, Transport
from src.notifications.channels.email import EmailAdapter
from src.notifications.channels.push import PushAdapter
from src.notifications.channels.slack import SlackAdapter

__all__ = [
    "ChannelAdapter",
    "Transport",
    "EmailAdapter",
    "PushAdapter",
    "SlackAdapter",
]
