"""Logging configuration.

Log level, output format and request logging settings.
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum

ENV_PREFIX = "MENTIONWATCH_"


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    slow_threshold_ms: float = 500.0
    exclude_paths: list[str] = field(default_factory=lambda: ["/health"])
    service_name: str = "mentionwatch"

    def with_env_overrides(self) -> "LoggingConfig":
        """Apply MENTIONWATCH_LOG_LEVEL / MENTIONWATCH_LOG_FORMAT if set."""
        config = self
        env_level = os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", "").upper()
        if env_level in LogLevel.__members__:
            config = replace(config, level=LogLevel(env_level))

        env_format = os.environ.get(f"{ENV_PREFIX}LOG_FORMAT", "").lower()
        if env_format in [f.value for f in LogFormat]:
            config = replace(config, format=LogFormat(env_format))
        return config


DEFAULT_LOGGING_CONFIG = LoggingConfig()
