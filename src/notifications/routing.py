"""Channel routing.

Decides which delivery channels a candidate notification reaches, given
the preferences in force at decision time.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from src.notifications.config import (
    Category,
    DigestFrequency,
    NotificationPriority,
    NotificationType,
    TYPE_CATEGORIES,
)
from src.notifications.models import (
    NotificationCandidate,
    NotificationPreferences,
    _utc_now,
)
from src.notifications.preferences import is_in_quiet_hours

logger = logging.getLogger(__name__)


def category_of(notification_type: NotificationType) -> Category:
    """Preference category a notification type falls under."""
    return TYPE_CATEGORIES[notification_type]


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name or name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


@dataclass(frozen=True)
class RoutingDecision:
    """Result of routing one candidate.

    Attributes:
        channels: Effective channel set after channel, category and
            quiet hours gating.
        held: Channels withheld by quiet hours, to be released once the
            window ends.
        digest: Whether delivery to ``channels`` waits for the next
            digest tick instead of going out now.
        reasons: Short tags explaining removals (for logging).
    """
    channels: frozenset = field(default_factory=frozenset)
    held: frozenset = field(default_factory=frozenset)
    digest: bool = False
    reasons: tuple = ()

    @property
    def immediate(self) -> frozenset:
        """Channels to dispatch right now."""
        return frozenset() if self.digest else self.channels

    @property
    def deferred(self) -> frozenset:
        """Channels parked until a later tick."""
        if self.digest:
            return self.channels | self.held
        return self.held


class ChannelRouter:
    """Applies the routing rules in order.

    1. Requested channels intersected with the user's enabled channels.
    2. A disabled category empties the set (in-app storage is unaffected).
    3. Inside quiet hours everything but critical priority is withheld.
    4. A non-realtime frequency defers delivery to the digest tick.

    Args:
        clock: Returns the current time when ``now`` is not given.
        timezone_name: IANA zone the quiet hours clock strings refer to.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        timezone_name: Optional[str] = None,
    ) -> None:
        self._clock = clock or _utc_now
        self._tz = resolve_timezone(timezone_name)

    def local_time(self, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        if now.tzinfo is None:
            return now
        return now.astimezone(self._tz)

    def route(
        self,
        candidate: NotificationCandidate,
        preferences: NotificationPreferences,
        now: Optional[datetime] = None,
    ) -> RoutingDecision:
        """Compute the routing decision for a candidate.

        Args:
            candidate: Candidate with its requested channels.
            preferences: Preferences read at decision time.
            now: Decision time; defaults to the injected clock.

        Returns:
            RoutingDecision.
        """
        reasons: list[str] = []

        channels = frozenset(c for c in candidate.channels if preferences.channel_enabled(c))
        if channels != candidate.channels:
            reasons.append("channel_disabled")

        category = candidate.category or category_of(candidate.type)
        if channels and not preferences.category_enabled(category):
            channels = frozenset()
            reasons.append(f"category_disabled:{category.value}")

        held: frozenset = frozenset()
        if (
            channels
            and candidate.priority != NotificationPriority.CRITICAL
            and is_in_quiet_hours(preferences.quiet_hours, self.local_time(now))
        ):
            held = channels
            channels = frozenset()
            reasons.append("quiet_hours")

        digest = bool(channels) and preferences.frequency != DigestFrequency.REALTIME
        if digest:
            reasons.append(f"digest:{preferences.frequency.value}")

        decision = RoutingDecision(
            channels=channels,
            held=held,
            digest=digest,
            reasons=tuple(reasons),
        )
        if reasons:
            logger.debug("Routing %r: %s", candidate.title, ", ".join(reasons))
        return decision

    def route_channels(
        self,
        candidate: NotificationCandidate,
        preferences: NotificationPreferences,
        now: Optional[datetime] = None,
    ) -> frozenset:
        """Effective channel set only."""
        return self.route(candidate, preferences, now).channels
