"""FastAPI application factory.

Creates the MentionWatch API with its middleware stack: security
headers, request tracing, error handling and CORS.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from src.api.config import APIConfig
from src.api.dependencies import build_engine
from src.api.models import HealthResponse
from src.api.routes import feed_ws, ingest, notifications, preferences, rules
from src.api_errors import ErrorHandlingMiddleware, register_exception_handlers
from src.logging_config import RequestTracingMiddleware, configure_logging
from src.logging_config.config import ENV_PREFIX
from src.notifications import NotificationEngine

logger = logging.getLogger(__name__)


# ── Security Headers Middleware ───────────────────────────────────────


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to all HTTP responses."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if os.environ.get(f"{ENV_PREFIX}ENABLE_HSTS", "").lower() == "true":
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# ── Lifespan (startup / shutdown) ────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Restore the engine snapshot at startup and save it at shutdown."""
    engine: NotificationEngine = app.state.engine
    if engine.load():
        logger.info("Restored snapshot from %s", engine.config.snapshot_path)
    logger.info("MentionWatch API starting up")
    yield
    engine.save()
    engine.close()
    logger.info("MentionWatch API shutting down")


# ── App Factory ──────────────────────────────────────────────────────


def create_app(
    config: Optional[APIConfig] = None,
    engine: Optional[NotificationEngine] = None,
    setup_logging: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware stack (outermost → innermost):
        SecurityHeaders → RequestTracing → ErrorHandling → CORS → App

    Args:
        config: API configuration. Read from the environment if not provided.
        engine: Engine to serve. Built from ``config`` if not provided.
        setup_logging: Configure the root logger (CLI entry points do).

    Returns:
        Configured FastAPI application.
    """
    config = config or APIConfig.from_env()
    if setup_logging:
        configure_logging()

    app = FastAPI(
        title=config.title,
        version=config.version,
        description=config.description,
        docs_url=config.docs_url,
        lifespan=lifespan,
    )
    app.state.engine = engine or build_engine(config)

    # add_middleware prepends, so order here is innermost-first.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=config.cors_methods,
        allow_headers=config.cors_headers,
    )
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestTracingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # ── Health check ─────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        served: NotificationEngine = app.state.engine
        closed = served.store.closed
        return HealthResponse(
            status="degraded" if closed else "ok",
            version=config.version,
            components={
                "store": "closed" if closed else "ok",
                "notifications": len(served.store),
                "rules": len(served.rules),
                "pending_deliveries": len(served.digest),
                "observers": served.broadcaster.observer_count,
            },
        )

    # ── Route modules ────────────────────────────────────────────

    app.include_router(notifications.router, prefix=config.prefix)
    app.include_router(preferences.router, prefix=config.prefix)
    app.include_router(rules.router, prefix=config.prefix)
    app.include_router(ingest.router, prefix=config.prefix)

    # WebSocket endpoint (absolute path, no prefix)
    app.include_router(feed_ws.router)

    logger.info("MentionWatch API v%s initialized", config.version)
    return app
