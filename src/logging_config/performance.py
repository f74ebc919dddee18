"""Performance logging.

Times engine operations and reports the slow ones.
"""

import functools
import logging
import time
from typing import Any, Callable, Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG

logger = logging.getLogger(__name__)


def _report(log: logging.Logger, name: str, duration_ms: float, threshold_ms: float, error: Optional[BaseException]) -> None:
    extra = {"duration_ms": round(duration_ms, 2)}
    if error is not None:
        log.error("%s failed after %.1fms: %s", name, duration_ms, type(error).__name__, extra=extra)
    elif duration_ms >= threshold_ms:
        log.warning("Slow operation: %s took %.1fms", name, duration_ms, extra=extra)
    else:
        log.debug("%s completed in %.1fms", name, duration_ms, extra=extra)


def log_performance(threshold_ms: Optional[float] = None) -> Callable:
    """Decorator that logs execution time.

    Every call is logged at DEBUG, calls above the threshold at WARNING,
    and failures at ERROR (the exception still propagates).

    Args:
        threshold_ms: Slow operation threshold; defaults to the logging
            config's ``slow_threshold_ms``.

    Example:
        @log_performance(threshold_ms=250)
        def ingest(self, samples):
            ...
    """
    if threshold_ms is None:
        threshold_ms = DEFAULT_LOGGING_CONFIG.slow_threshold_ms

    def decorator(func: Callable) -> Callable:
        func_logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            error: Optional[BaseException] = None
            try:
                return func(*args, **kwargs)
            except Exception as exc:
                error = exc
                raise
            finally:
                duration_ms = (time.perf_counter() - start) * 1000
                _report(func_logger, func.__qualname__, duration_ms, threshold_ms, error)

        return wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing code blocks.

    Example:
        with PerformanceTimer("snapshot_save") as timer:
            store.save(snapshot)
        print(f"Save took {timer.duration_ms:.1f}ms")
    """

    def __init__(self, operation_name: str, threshold_ms: Optional[float] = None):
        self.operation_name = operation_name
        self.threshold_ms = threshold_ms or DEFAULT_LOGGING_CONFIG.slow_threshold_ms
        self.start_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        _report(logger, self.operation_name, self.duration_ms, self.threshold_ms, exc_val)
