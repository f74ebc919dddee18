"""Structured logging and request tracing.

JSON or console log output, request ID propagation through contextvars,
and timing of slow engine operations.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import RequestContext, generate_request_id, get_request_id
from src.logging_config.middleware import RequestTracingMiddleware
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import configure_logging

__all__ = [
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "RequestContext",
    "RequestTracingMiddleware",
    "PerformanceTimer",
    "configure_logging",
    "generate_request_id",
    "get_request_id",
    "log_performance",
]
