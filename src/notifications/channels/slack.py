"""Slack notification channel.

Builds Slack incoming-webhook payloads with blocks.
"""

import logging
import re
from typing import Any, Optional

from src.notifications.channels.base import ChannelAdapter, Transport
from src.notifications.config import Channel, SlackConfig
from src.notifications.models import Notification

logger = logging.getLogger(__name__)

SLACK_WEBHOOK_REGEX = re.compile(
    r"^https://hooks\.slack\.com/services/T[A-Z0-9]+/B[A-Z0-9]+/[a-zA-Z0-9]+$"
)


class SlackAdapter(ChannelAdapter):
    """Slack delivery via incoming webhooks."""

    channel = Channel.SLACK

    # Priority to emoji mapping
    PRIORITY_EMOJI = {
        "low": ":information_source:",
        "medium": ":warning:",
        "high": ":rotating_light:",
        "critical": ":fire:",
    }

    def __init__(
        self,
        config: Optional[SlackConfig] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        super().__init__(transport)
        self.config = config or SlackConfig()

    def validate_recipient(self, recipient: str) -> bool:
        """Validate Slack webhook URL format."""
        return bool(SLACK_WEBHOOK_REGEX.match(recipient))

    def _build_payload(self, notification: Notification) -> dict[str, Any]:
        if not self.dry_run and not self.config.webhook_url:
            self._fail("no Slack webhook URL configured")

        emoji = self.PRIORITY_EMOJI[notification.priority.value]
        context = f"_MentionWatch | {notification.timestamp.strftime('%Y-%m-%d %H:%M UTC')}_"

        blocks: list[dict[str, Any]] = [
            {
                "type": "header",
                "text": {"type": "plain_text", "text": notification.title},
            },
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": f"{emoji} {notification.message}"},
            },
        ]
        if notification.action_url:
            blocks.append({
                "type": "actions",
                "elements": [{
                    "type": "button",
                    "text": {
                        "type": "plain_text",
                        "text": notification.action_label or "View details",
                    },
                    "url": notification.action_url,
                }],
            })
        blocks.append({
            "type": "context",
            "elements": [{"type": "mrkdwn", "text": context}],
        })

        payload: dict[str, Any] = {
            "url": self.config.webhook_url,
            "text": f"{notification.title}: {notification.message}",
            "blocks": blocks,
        }
        if self.config.channel:
            payload["channel"] = self.config.channel
        return payload
