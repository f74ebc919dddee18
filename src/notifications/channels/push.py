"""Mobile push notification channel."""

import logging
from typing import Any, Optional

from src.notifications.channels.base import ChannelAdapter, Transport
from src.notifications.config import Channel, NotificationPriority, PushConfig
from src.notifications.models import Notification

logger = logging.getLogger(__name__)


class PushAdapter(ChannelAdapter):
    """Push delivery to the user's registered devices."""

    channel = Channel.PUSH

    # Critical notifications bypass the OS-level silent mode
    PRIORITY_LEVELS = {
        NotificationPriority.LOW: "normal",
        NotificationPriority.MEDIUM: "normal",
        NotificationPriority.HIGH: "high",
        NotificationPriority.CRITICAL: "critical",
    }

    def __init__(
        self,
        config: Optional[PushConfig] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        super().__init__(transport)
        self.config = config or PushConfig()

    def _build_payload(self, notification: Notification) -> dict[str, Any]:
        if not self.config.device_tokens and not self.dry_run:
            self._fail("no registered device tokens")

        body = notification.message
        limit = self.config.max_body_length
        if limit and len(body) > limit:
            body = body[:limit - 1] + "…"

        data = {"notification_id": notification.id, "type": notification.type.value}
        if notification.action_url:
            data["action_url"] = notification.action_url

        return {
            "tokens": list(self.config.device_tokens),
            "title": notification.title,
            "body": body,
            "priority": self.PRIORITY_LEVELS[notification.priority],
            "data": data,
        }
