"""Notification engine exception hierarchy."""

from typing import Any, Optional


class NotificationError(Exception):
    """Base exception for the notification engine."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(NotificationError):
    """Raised when a preference update or rule definition is malformed.

    The rejected change is never partially applied.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Any = None,
    ) -> None:
        super().__init__(message)
        self.field = field
        self.value = value

    @property
    def details(self) -> list[dict[str, Any]]:
        if self.field is None:
            return []
        return [{"field": self.field, "issue": self.message, "value": repr(self.value)}]


class NotFoundError(NotificationError):
    """Raised by explicit read-by-id lookups for an unknown id."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(f"{resource_type} not found: {resource_id}")
        self.resource_type = resource_type
        self.resource_id = resource_id


class AdapterDeliveryError(NotificationError):
    """Raised inside a channel adapter when delivery fails.

    Adapters log and absorb it; it never reaches the notification store.
    """

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel} delivery failed: {message}")
        self.channel = channel


class StoreClosedError(NotificationError):
    """Raised when writing to a notification store that has been closed."""

    def __init__(self) -> None:
        super().__init__("Notification store is closed")
