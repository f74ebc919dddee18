"""Email notification channel."""

import logging
import re
from typing import Any, Optional

from src.notifications.channels.base import ChannelAdapter, Transport
from src.notifications.config import Channel, EmailConfig
from src.notifications.models import Notification

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


class EmailAdapter(ChannelAdapter):
    """Email delivery.

    Builds a plain-text and an HTML body; the transport is expected to
    hand the message to an SMTP relay or mail API.
    """

    channel = Channel.EMAIL

    def __init__(
        self,
        config: Optional[EmailConfig] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        super().__init__(transport)
        self.config = config or EmailConfig()

    def validate_recipient(self, recipient: str) -> bool:
        return bool(EMAIL_REGEX.match(recipient))

    def _build_payload(self, notification: Notification) -> dict[str, Any]:
        recipient = self.config.recipient
        if recipient and not self.validate_recipient(recipient):
            self._fail(f"invalid recipient address: {recipient}")

        subject = f"{self.config.subject_prefix} {notification.title}".strip()
        body = notification.message
        if notification.action_url:
            label = notification.action_label or "View details"
            body = f"{body}\n\n{label}: {notification.action_url}"

        return {
            "to": recipient,
            "from_name": self.config.sender_name,
            "subject": subject,
            "title": notification.title,
            "text": body,
            "html": self._render_html(notification),
            "priority": notification.priority.value,
        }

    @staticmethod
    def _render_html(notification: Notification) -> str:
        parts = [
            f"<h2>{notification.title}</h2>",
            f"<p>{notification.message}</p>",
        ]
        if notification.action_url:
            label = notification.action_label or "View details"
            parts.append(f'<p><a href="{notification.action_url}">{label}</a></p>')
        parts.append(
            f"<p><small>{notification.timestamp.strftime('%Y-%m-%d %H:%M UTC')}</small></p>"
        )
        return "\n".join(parts)
