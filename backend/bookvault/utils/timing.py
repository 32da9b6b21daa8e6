"""Lightweight timing utilities for performance debugging."""
import time
from typing import Optional, Callable
import logging

logger = logging.getLogger(__name__)


def now_ms() -> float:
    """Return current time in milliseconds using high-resolution timer."""
    return time.perf_counter() * 1000


def log_elapsed(start_ms: float, label: str, log_fn: Optional[Callable[[str], None]] = None) -> float:
    """
    Log elapsed time since start_ms and return current time.

    Args:
        start_ms: Start time in milliseconds (from now_ms())
        label: Description of the operation
        log_fn: Optional logging function (defaults to logger.debug)

    Returns:
        Current time in milliseconds (for chaining)
    """
    elapsed = now_ms() - start_ms
    if log_fn:
        log_fn(f"{label}: {elapsed:.2f}ms")
    else:
        logger.debug(f"{label}: {elapsed:.2f}ms")
    return now_ms()


class Deadline:
    """
    Request-level time budget.

    A Deadline with seconds=None never expires.
    """

    def __init__(self, seconds: Optional[float] = None):
        self.seconds = seconds
        self._started = now_ms()

    def elapsed_ms(self) -> float:
        return now_ms() - self._started

    def expired(self) -> bool:
        if self.seconds is None:
            return False
        return self.elapsed_ms() >= self.seconds * 1000
