"""Tests for external channel adapters."""

from datetime import datetime, timezone

import pytest

from src.notifications import (
    DeliveryStatus,
    EmailAdapter,
    EmailConfig,
    Notification,
    NotificationPriority,
    NotificationType,
    PushAdapter,
    PushConfig,
    SlackAdapter,
    SlackConfig,
)


@pytest.fixture
def notification():
    return Notification(
        id="n-1",
        type=NotificationType.ALERT,
        priority=NotificationPriority.CRITICAL,
        title="Sentiment dropped",
        message="Average sentiment on Gemini fell to -0.62",
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
        action_url="/sentiment",
        action_label="Open sentiment",
    )


class TestEmailAdapter:
    """Email payloads."""

    def test_dry_run_records_intent(self, notification):
        adapter = EmailAdapter(EmailConfig(recipient="team@example.com"))
        intent = adapter.deliver(notification)
        assert adapter.dry_run
        assert intent.status == DeliveryStatus.SENT
        assert intent.payload["to"] == "team@example.com"
        assert intent.payload["subject"] == "[MentionWatch] Sentiment dropped"
        assert "Open sentiment: /sentiment" in intent.payload["text"]
        assert '<a href="/sentiment">' in intent.payload["html"]
        assert adapter.delivery_count == 1

    def test_invalid_recipient_fails_without_raising(self, notification):
        sent = []
        adapter = EmailAdapter(EmailConfig(recipient="not-an-address"), transport=sent.append)
        intent = adapter.deliver(notification)
        assert intent.status == DeliveryStatus.FAILED
        assert "invalid recipient" in intent.error
        assert sent == []

    def test_transport_receives_payload(self, notification):
        sent = []
        adapter = EmailAdapter(EmailConfig(recipient="team@example.com"), transport=sent.append)
        adapter.deliver(notification)
        assert [p["title"] for p in sent] == ["Sentiment dropped"]

    def test_transport_error_becomes_failed_intent(self, notification):
        def broken(payload):
            raise ConnectionError("smtp relay down")

        adapter = EmailAdapter(transport=broken)
        intent = adapter.deliver(notification)
        assert intent.status == DeliveryStatus.FAILED
        assert intent.error == "smtp relay down"
        assert adapter.get_delivery_log() == [intent]


class TestPushAdapter:
    """Push payloads."""

    def test_priority_and_truncation(self, notification):
        adapter = PushAdapter(PushConfig(device_tokens=["tok"], max_body_length=10))
        intent = adapter.deliver(notification)
        assert intent.payload["priority"] == "critical"
        assert len(intent.payload["body"]) == 10
        assert intent.payload["data"]["action_url"] == "/sentiment"

    def test_no_tokens_with_transport_fails(self, notification):
        adapter = PushAdapter(transport=lambda payload: None)
        assert adapter.deliver(notification).status == DeliveryStatus.FAILED


class TestSlackAdapter:
    """Slack payloads."""

    def test_blocks(self, notification):
        adapter = SlackAdapter(SlackConfig(channel="#alerts"))
        payload = adapter.deliver(notification).payload
        assert [b["type"] for b in payload["blocks"]] == ["header", "section", "actions", "context"]
        assert payload["blocks"][1]["text"]["text"].startswith(":fire:")
        assert payload["channel"] == "#alerts"

    def test_missing_webhook_with_transport_fails(self, notification):
        adapter = SlackAdapter(transport=lambda payload: None)
        assert adapter.deliver(notification).status == DeliveryStatus.FAILED

    def test_validate_webhook(self):
        adapter = SlackAdapter()
        assert adapter.validate_recipient("https://hooks.slack.com/services/T00/B00/abc123")
        assert not adapter.validate_recipient("https://example.com/hook")
