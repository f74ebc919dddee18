"""API configuration.

Settings for the REST API, the WebSocket feed, and the engine the API
process hosts.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from src.logging_config.config import ENV_PREFIX


@dataclass
class APIConfig:
    """Core API settings."""

    title: str = "MentionWatch API"
    version: str = "1.0.0"
    description: str = "Brand mention notifications and alerting"
    prefix: str = "/api/v1"
    docs_url: str = "/docs"
    cors_origins: list[str] = field(default_factory=lambda: [
        "http://localhost:3000",   # Dashboard dev server
        "http://localhost:8000",   # API self-reference
    ])
    cors_methods: list[str] = field(
        default_factory=lambda: ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
    )
    cors_headers: list[str] = field(default_factory=lambda: ["*"])
    max_page_size: int = 200
    default_page_size: int = 50
    snapshot_path: Optional[str] = None
    timezone: str = "UTC"

    @classmethod
    def from_env(cls) -> "APIConfig":
        """Defaults overridden by MENTIONWATCH_* environment variables."""
        config = cls()
        origins = [
            o.strip()
            for o in os.environ.get(f"{ENV_PREFIX}CORS_ORIGINS", "").split(",")
            if o.strip()
        ]
        if origins:
            config.cors_origins = origins
        config.snapshot_path = os.environ.get(f"{ENV_PREFIX}SNAPSHOT_PATH") or None
        config.timezone = os.environ.get(f"{ENV_PREFIX}TIMEZONE", config.timezone)
        return config


@dataclass
class WebSocketConfig:
    """WebSocket feed settings."""

    # Signals beyond this are coalesced; observers only need "something changed"
    max_pending_signals: int = 100


DEFAULT_API_CONFIG = APIConfig()
DEFAULT_WS_CONFIG = WebSocketConfig()
