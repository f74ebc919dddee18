"""Abstract base for external delivery channel adapters."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from src.notifications.config import Channel, DeliveryStatus
from src.notifications.exceptions import AdapterDeliveryError
from src.notifications.models import DeliveryIntent, Notification, _utc_now

logger = logging.getLogger(__name__)

# Hands a built payload to the outside world; raises on failure
Transport = Callable[[dict[str, Any]], None]


class ChannelAdapter(ABC):
    """External delivery channel.

    Subclasses build the channel-specific payload. Sending goes through
    an injected ``transport`` callable; without one the adapter runs in
    dry-run mode and only records the intent.

    Delivery failures are logged and returned as a failed intent. They
    never propagate to the caller.
    """

    channel: Channel

    def __init__(self, transport: Optional[Transport] = None) -> None:
        self._transport = transport
        self._lock = threading.Lock()
        self._delivery_log: list[DeliveryIntent] = []

    @property
    def dry_run(self) -> bool:
        return self._transport is None

    def deliver(self, notification: Notification) -> DeliveryIntent:
        """Deliver a notification through this channel.

        Args:
            notification: Stored notification to deliver.

        Returns:
            DeliveryIntent with status SENT or FAILED.
        """
        intent = DeliveryIntent(
            notification_id=notification.id,
            channel=self.channel,
            created_at=_utc_now(),
        )
        try:
            intent.payload = self._build_payload(notification)
            self._send(intent.payload)
        except Exception as e:
            intent.status = DeliveryStatus.FAILED
            intent.error = str(e)
            logger.error(
                "%s delivery failed for %s: %s", self.channel.value, notification.id, e,
            )
        else:
            logger.debug("%s delivery sent for %s", self.channel.value, notification.id)

        with self._lock:
            self._delivery_log.append(intent)
        return intent

    def _send(self, payload: dict[str, Any]) -> None:
        if self._transport is None:
            logger.info("[DRY RUN] %s: %s", self.channel.value, payload.get("title") or payload.get("text"))
            return
        self._transport(payload)

    def _fail(self, message: str) -> None:
        raise AdapterDeliveryError(self.channel.value, message)

    @abstractmethod
    def _build_payload(self, notification: Notification) -> dict[str, Any]:
        """Build the channel-specific message body.

        Raises:
            AdapterDeliveryError: If the adapter is not configured to
                deliver this notification.
        """

    def get_delivery_log(self) -> list[DeliveryIntent]:
        with self._lock:
            return list(self._delivery_log)

    @property
    def delivery_count(self) -> int:
        with self._lock:
            return len(self._delivery_log)
