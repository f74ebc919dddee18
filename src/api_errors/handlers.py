"""Exception handlers and error response builder.

Every error leaves the API in the same envelope:
``{"error": {"code", "message", "timestamp", "details", "request_id"}}``.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.api_errors.config import (
    DEFAULT_ERROR_CONFIG,
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from src.api_errors.exceptions import MentionWatchAPIError
from src.logging_config.context import get_request_id
from src.notifications.exceptions import NotificationError

logger = logging.getLogger(__name__)


@dataclass
class ErrorResponse:
    """Structured error response envelope."""

    code: str
    message: str
    status_code: int = 500
    details: List[Dict[str, Any]] = field(default_factory=list)
    request_id: Optional[str] = None
    timestamp: str = ""

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp,
            }
        }
        if self.details:
            body["error"]["details"] = self.details
        if self.request_id:
            body["error"]["request_id"] = self.request_id
        return body

    def to_json_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


def create_error_response(
    error_code: ErrorCode,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    config: Optional[ErrorConfig] = None,
) -> ErrorResponse:
    """Build an ErrorResponse, stamping the current request ID."""
    config = config or DEFAULT_ERROR_CONFIG
    message = message[:config.max_error_detail_length]
    return ErrorResponse(
        code=error_code.value,
        message=message,
        status_code=ERROR_STATUS_MAP.get(error_code, 500),
        details=details or [],
        request_id=(get_request_id() or None) if config.include_request_id else None,
    )


def _log_error(error_code: ErrorCode, message: str, config: ErrorConfig) -> None:
    if not config.log_all_errors:
        return

    severity = ERROR_SEVERITY_MAP.get(error_code, ErrorSeverity.MEDIUM)
    status = ERROR_STATUS_MAP.get(error_code, 500)
    if severity == ErrorSeverity.CRITICAL:
        level = logging.CRITICAL
    elif severity == ErrorSeverity.HIGH:
        level = logging.ERROR
    elif severity == ErrorSeverity.MEDIUM:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(level, "API error [%s] (%d): %s", error_code.value, status, message)


def handle_api_error(exc: MentionWatchAPIError, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    config = config or DEFAULT_ERROR_CONFIG
    _log_error(exc.error_code, exc.message, config)
    return create_error_response(exc.error_code, exc.message, exc.details, config)


def handle_unhandled_error(exc: Exception, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    """Produce a safe 500 response for an unexpected exception."""
    config = config or DEFAULT_ERROR_CONFIG
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    message = "An internal error occurred"
    if not config.suppress_internal_details:
        message = f"{type(exc).__name__}: {exc}"
    return create_error_response(ErrorCode.INTERNAL_ERROR, message, config=config)


def register_exception_handlers(app: FastAPI, config: Optional[ErrorConfig] = None) -> None:
    """Register the API's exception handlers on a FastAPI application.

    Args:
        app: FastAPI application instance.
        config: Error handling configuration.
    """
    config = config or DEFAULT_ERROR_CONFIG

    @app.exception_handler(NotificationError)
    async def engine_error_handler(request: Request, exc: NotificationError) -> JSONResponse:
        api_error = MentionWatchAPIError.from_engine_error(exc)
        return handle_api_error(api_error, config).to_json_response()

    @app.exception_handler(MentionWatchAPIError)
    async def api_error_handler(request: Request, exc: MentionWatchAPIError) -> JSONResponse:
        return handle_api_error(exc, config).to_json_response()

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ())),
                "issue": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        _log_error(ErrorCode.REQUEST_VALIDATION_ERROR, "Request validation failed", config)
        return create_error_response(
            ErrorCode.REQUEST_VALIDATION_ERROR, "Request validation failed", details, config,
        ).to_json_response()

    logger.debug("Registered API exception handlers")
