"""Error handling middleware.

ASGI middleware that turns exceptions escaping the route handlers into
structured JSON error responses.
"""

import json
import logging
from typing import Any, Dict, Optional

from src.api_errors.config import DEFAULT_ERROR_CONFIG, ErrorConfig
from src.api_errors.exceptions import MentionWatchAPIError
from src.api_errors.handlers import ErrorResponse, handle_api_error, handle_unhandled_error
from src.notifications.exceptions import NotificationError

logger = logging.getLogger(__name__)


class ErrorHandlingMiddleware:
    """Catches exceptions the exception handlers did not.

    Usage:
        app.add_middleware(ErrorHandlingMiddleware)
    """

    def __init__(self, app: Any, config: Optional[ErrorConfig] = None):
        self.app = app
        self.config = config or DEFAULT_ERROR_CONFIG

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Dict[str, Any]) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                # Too late to replace the response
                raise
            if isinstance(exc, NotificationError):
                error_response = handle_api_error(MentionWatchAPIError.from_engine_error(exc), self.config)
            elif isinstance(exc, MentionWatchAPIError):
                error_response = handle_api_error(exc, self.config)
            else:
                error_response = handle_unhandled_error(exc, self.config)
            await self._send_error(send, error_response)

    async def _send_error(self, send: Any, error_response: ErrorResponse) -> None:
        body = json.dumps(error_response.to_dict()).encode("utf-8")
        await send({
            "type": "http.response.start",
            "status": error_response.status_code,
            "headers": [
                [b"content-type", b"application/json"],
                [b"content-length", str(len(body)).encode()],
            ],
        })
        await send({"type": "http.response.body", "body": body})
