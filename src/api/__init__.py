"""MentionWatch HTTP API.

REST endpoints for the notification feed, preferences and alert rules,
metric ingestion and the delivery tick, plus a WebSocket feed of change
signals.

Example:
    from src.api import create_app
    app = create_app()
"""

from src.api.config import (
    APIConfig,
    WebSocketConfig,
    DEFAULT_API_CONFIG,
    DEFAULT_WS_CONFIG,
)
from src.api.dependencies import build_engine, get_engine
from src.api.app import create_app

__all__ = [
    # Config
    "APIConfig",
    "WebSocketConfig",
    "DEFAULT_API_CONFIG",
    "DEFAULT_WS_CONFIG",
    # Dependencies
    "build_engine",
    "get_engine",
    # App
    "create_app",
]
