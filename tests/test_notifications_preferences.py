"""Tests for notification preferences."""

from datetime import datetime

import pytest

from src.notifications import (
    Category,
    Channel,
    DigestFrequency,
    NotificationPreferences,
    PreferenceStore,
    QuietHours,
    ValidationError,
    is_in_quiet_hours,
    parse_clock,
)


@pytest.fixture
def prefs():
    return PreferenceStore()


class TestDefaults:
    """Out-of-the-box preferences."""

    def test_default_channels(self, prefs):
        current = prefs.get()
        assert current.enabled_channels == frozenset({Channel.IN_APP, Channel.EMAIL})

    def test_default_categories_enabled(self, prefs):
        current = prefs.get()
        assert all(current.categories.values())
        assert current.category_enabled(Category.GENERAL)

    def test_default_quiet_hours(self, prefs):
        quiet = prefs.get().quiet_hours
        assert quiet.enabled is False
        assert (quiet.start, quiet.end) == ("22:00", "08:00")

    def test_default_frequency(self, prefs):
        assert prefs.get().frequency == DigestFrequency.REALTIME


class TestUpdate:
    """Partial updates."""

    def test_nested_keys_merge_independently(self, prefs):
        prefs.update({"channels": {"push": True}})
        current = prefs.get()
        assert current.channel_enabled(Channel.PUSH)
        assert current.channel_enabled(Channel.EMAIL)
        assert current.channel_enabled(Channel.IN_APP)

    def test_quiet_hours_partial(self, prefs):
        prefs.update({"quietHours": {"enabled": True}})
        quiet = prefs.get().quiet_hours
        assert quiet.enabled is True
        assert quiet.start == "22:00"

    def test_snake_case_quiet_hours_accepted(self, prefs):
        prefs.update({"quiet_hours": {"start": "23:30"}})
        assert prefs.get().quiet_hours.start == "23:30"

    def test_frequency(self, prefs):
        result = prefs.update({"frequency": "daily"})
        assert result.frequency == DigestFrequency.DAILY

    def test_invalid_time_leaves_preferences_unchanged(self, prefs):
        before = prefs.get()
        with pytest.raises(ValidationError) as exc_info:
            prefs.update({"channels": {"slack": True}, "quietHours": {"start": "25:00"}})
        assert exc_info.value.field == "quietHours"
        assert prefs.get() == before

    @pytest.mark.parametrize("update", [
        {"volume": 11},
        {"channels": {"sms": True}},
        {"channels": {"email": "yes"}},
        {"categories": {"general": False}},
        {"categories": {"mentions": 1}},
        {"frequency": "monthly"},
        {"quietHours": {"enabled": True, "snooze": 5}},
        {"quietHours": "22:00-08:00"},
    ])
    def test_rejected_updates(self, prefs, update):
        before = prefs.get()
        with pytest.raises(ValidationError):
            prefs.update(update)
        assert prefs.get() == before

    def test_non_mapping_rejected(self, prefs):
        with pytest.raises(ValidationError):
            prefs.update(["channels"])

    def test_listener_receives_new_preferences(self, prefs):
        seen = []
        prefs.on_change(seen.append)
        prefs.update({"categories": {"reports": False}})
        assert len(seen) == 1
        assert seen[0].category_enabled(Category.REPORTS) is False

    def test_get_returns_copy(self, prefs):
        current = prefs.get()
        current.channels[Channel.SLACK] = True
        assert prefs.get().channel_enabled(Channel.SLACK) is False

    def test_replace(self, prefs):
        replacement = NotificationPreferences(frequency=DigestFrequency.WEEKLY)
        prefs.replace(replacement)
        assert prefs.get().frequency == DigestFrequency.WEEKLY


class TestQuietHours:
    """Quiet hours window arithmetic."""

    @pytest.mark.parametrize("hour, minute, expected", [
        (21, 59, False),
        (22, 0, True),
        (23, 30, True),
        (0, 0, True),
        (7, 59, True),
        (8, 0, False),
        (12, 0, False),
    ])
    def test_window_wraps_midnight(self, hour, minute, expected):
        quiet = QuietHours(enabled=True, start="22:00", end="08:00")
        assert is_in_quiet_hours(quiet, datetime(2024, 3, 1, hour, minute)) is expected

    def test_same_day_window(self):
        quiet = QuietHours(enabled=True, start="12:00", end="14:00")
        assert is_in_quiet_hours(quiet, datetime(2024, 3, 1, 13, 0))
        assert not is_in_quiet_hours(quiet, datetime(2024, 3, 1, 14, 0))

    def test_equal_bounds_is_empty(self):
        quiet = QuietHours(enabled=True, start="09:00", end="09:00")
        assert not is_in_quiet_hours(quiet, datetime(2024, 3, 1, 9, 0))

    def test_disabled_window(self):
        quiet = QuietHours(enabled=False, start="00:00", end="23:59")
        assert not is_in_quiet_hours(quiet, datetime(2024, 3, 1, 12, 0))

    @pytest.mark.parametrize("value", ["25:00", "7:00", "12:60", "noon", ""])
    def test_parse_clock_rejects(self, value):
        with pytest.raises(ValidationError):
            parse_clock(value)
