"""API error configuration.

Error codes, their HTTP statuses and logging severities.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class ErrorCode(Enum):
    """Error codes returned in the ``error.code`` field."""

    # 400
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SNAPSHOT = "INVALID_SNAPSHOT"

    # 404
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"
    RULE_NOT_FOUND = "RULE_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"

    # 422
    REQUEST_VALIDATION_ERROR = "REQUEST_VALIDATION_ERROR"

    # 500
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # 502
    DELIVERY_FAILED = "DELIVERY_FAILED"

    # 503
    ENGINE_CLOSED = "ENGINE_CLOSED"


class ErrorSeverity(Enum):
    """Severity levels for error logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.INVALID_SNAPSHOT: 400,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.NOTIFICATION_NOT_FOUND: 404,
    ErrorCode.RULE_NOT_FOUND: 404,
    ErrorCode.TEMPLATE_NOT_FOUND: 404,
    ErrorCode.REQUEST_VALIDATION_ERROR: 422,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.DELIVERY_FAILED: 502,
    ErrorCode.ENGINE_CLOSED: 503,
}

ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.INVALID_SNAPSHOT: ErrorSeverity.MEDIUM,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.NOTIFICATION_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.RULE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.TEMPLATE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.REQUEST_VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.DELIVERY_FAILED: ErrorSeverity.HIGH,
    ErrorCode.ENGINE_CLOSED: ErrorSeverity.HIGH,
}


@dataclass
class ErrorConfig:
    """Configuration for API error handling."""

    include_request_id: bool = True
    log_all_errors: bool = True
    suppress_internal_details: bool = True
    max_error_detail_length: int = 500


DEFAULT_ERROR_CONFIG = ErrorConfig()
