"""API exception type.

Wraps engine errors with the error code and HTTP status they map to.
"""

from typing import Any, Dict, List, Optional

from src.api_errors.config import ERROR_STATUS_MAP, ErrorCode
from src.notifications.exceptions import (
    AdapterDeliveryError,
    NotFoundError,
    NotificationError,
    StoreClosedError,
    ValidationError,
)

_NOT_FOUND_CODES = {
    "notification": ErrorCode.NOTIFICATION_NOT_FOUND,
    "rule": ErrorCode.RULE_NOT_FOUND,
    "template": ErrorCode.TEMPLATE_NOT_FOUND,
}


class MentionWatchAPIError(Exception):
    """Base exception for errors surfaced through the HTTP API.

    A single exception handler covers the whole hierarchy.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = ERROR_STATUS_MAP.get(error_code, 500)
        self.details = details or []

    @classmethod
    def from_engine_error(cls, exc: NotificationError) -> "MentionWatchAPIError":
        """Translate an engine exception into its API error."""
        return cls(exc.message, error_code_for(exc), details_for(exc))


def error_code_for(exc: NotificationError) -> ErrorCode:
    if isinstance(exc, ValidationError):
        if exc.field == "snapshot":
            return ErrorCode.INVALID_SNAPSHOT
        return ErrorCode.VALIDATION_ERROR
    if isinstance(exc, NotFoundError):
        return _NOT_FOUND_CODES.get(exc.resource_type, ErrorCode.RESOURCE_NOT_FOUND)
    if isinstance(exc, StoreClosedError):
        return ErrorCode.ENGINE_CLOSED
    if isinstance(exc, AdapterDeliveryError):
        return ErrorCode.DELIVERY_FAILED
    return ErrorCode.INTERNAL_ERROR


def details_for(exc: NotificationError) -> List[Dict[str, Any]]:
    if isinstance(exc, ValidationError):
        return exc.details
    if isinstance(exc, NotFoundError):
        return [{"resource_type": exc.resource_type, "resource_id": exc.resource_id}]
    return []
