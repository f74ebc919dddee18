"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.notifications import (  # noqa: E402
    AdapterDeliveryError,
    Channel,
    ChannelAdapter,
    EngineConfig,
    NotificationEngine,
)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


class RecordingAdapter(ChannelAdapter):
    """Adapter that records every notification handed to it."""

    def __init__(self, channel: Channel, fail: bool = False):
        super().__init__(transport=self._record)
        self.channel = channel
        self.fail = fail
        self.sent = []

    def _build_payload(self, notification):
        return {"title": notification.title, "notification_id": notification.id}

    def _record(self, payload):
        if self.fail:
            raise AdapterDeliveryError(self.channel.value, "provider unavailable")
        self.sent.append(payload["notification_id"])

    @property
    def calls(self) -> int:
        return self.delivery_count


@pytest.fixture
def clock():
    # 12:00 UTC, outside the default 22:00-08:00 quiet hours
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def adapters():
    return {
        Channel.EMAIL: RecordingAdapter(Channel.EMAIL),
        Channel.PUSH: RecordingAdapter(Channel.PUSH),
        Channel.SLACK: RecordingAdapter(Channel.SLACK),
    }


@pytest.fixture
def engine(clock, adapters):
    eng = NotificationEngine(EngineConfig(), clock=clock, adapters=adapters)
    yield eng
    eng.close()


@pytest.fixture
def make_adapter():
    """Factory for recording adapters, e.g. ``make_adapter(Channel.EMAIL, fail=True)``."""
    return RecordingAdapter
