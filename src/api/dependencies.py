"""FastAPI dependencies.

The engine lives on ``app.state`` so each application (and each test
client) gets its own instance.
"""

import logging

from starlette.requests import HTTPConnection

from src.api.config import APIConfig
from src.notifications import EngineConfig, NotificationEngine

logger = logging.getLogger(__name__)


def build_engine(config: APIConfig) -> NotificationEngine:
    """Construct the engine an API process hosts."""
    engine = NotificationEngine(
        EngineConfig(
            timezone=config.timezone,
            snapshot_path=config.snapshot_path,
        )
    )
    logger.info("Notification engine created (timezone=%s)", config.timezone)
    return engine


def get_engine(conn: HTTPConnection) -> NotificationEngine:
    """Return the engine bound to the current application."""
    return conn.app.state.engine
