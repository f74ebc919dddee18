"""Request tracing middleware.

Binds request and correlation IDs, plus the notification or rule a route
addresses, to every log entry emitted while a request or feed socket is
being served.
"""

import logging
import re
import time
from typing import Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LoggingConfig
from src.logging_config.context import RequestContext, generate_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_ID_HEADER = "X-Correlation-ID"

# /notifications/{id}... and /rules/{id}... under any API prefix
_RESOURCE_PATH = re.compile(r"/(?P<kind>notifications|rules)/(?P<id>[^/]+)")

# Fixed sub-routes that sit where an id would
_RESERVED_SEGMENTS = frozenset({"statistics", "read", "read-all", "templates", "from-template"})

_ID_FIELDS = {"notifications": "notification_id", "rules": "rule_id"}


def resource_ids(path: str) -> dict[str, str]:
    """Extract the notification or rule id addressed by a request path.

    Example:
        resource_ids("/api/v1/rules/ab12/toggle") -> {"rule_id": "ab12"}
    """
    match = _RESOURCE_PATH.search(path)
    if not match or match.group("id") in _RESERVED_SEGMENTS:
        return {}
    return {_ID_FIELDS[match.group("kind")]: match.group("id")}


def _header(scope, name: str) -> Optional[str]:
    key = name.lower().encode()
    for header, value in scope.get("headers", []):
        if header == key and value:
            return value.decode("utf-8", errors="replace")
    return None


class RequestTracingMiddleware:
    """ASGI middleware that binds a logging context to HTTP and WebSocket scopes.

    HTTP requests also get their lifecycle logged (except for
    ``config.exclude_paths``) and the tracing headers echoed back.

    Usage:
        app.add_middleware(RequestTracingMiddleware)
    """

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        self.app = app
        self.config = config or DEFAULT_LOGGING_CONFIG

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        request_id = _header(scope, REQUEST_ID_HEADER) or generate_request_id()
        correlation_id = _header(scope, CORRELATION_ID_HEADER) or request_id
        path = scope.get("path", "")
        context = RequestContext(
            request_id=request_id,
            correlation_id=correlation_id,
            extra=resource_ids(path),
        )

        if scope["type"] == "websocket":
            # Feed subscribers log under the id of the socket that opened them
            with context:
                await self.app(scope, receive, send)
            return

        method = scope.get("method", "")
        should_log = path not in self.config.exclude_paths
        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                headers = list(message.get("headers", []))
                headers.append((REQUEST_ID_HEADER.lower().encode(), request_id.encode()))
                headers.append((CORRELATION_ID_HEADER.lower().encode(), correlation_id.encode()))
                message = {**message, "headers": headers}
            await send(message)

        with context:
            if should_log:
                logger.debug("%s %s started", method, path)
            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                if should_log:
                    logger.log(
                        logging.WARNING if status_code >= 400 else logging.INFO,
                        "%s %s -> %d",
                        method, path, status_code,
                        extra={
                            "method": method,
                            "path": path,
                            "status_code": status_code,
                            "duration_ms": round((time.perf_counter() - start_time) * 1000, 2),
                        },
                    )
