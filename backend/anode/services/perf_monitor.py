"""Render timing and counters for the technical-sheet service."""
import functools
import logging
import threading
import time
from typing import Any, Callable, Dict

logger = logging.getLogger("anode-api.perf")


def timed_async(func: Callable) -> Callable:
    """
    Decorator that measures and logs execution time for async functions.

    Usage::

        @timed_async
        async def prefetch(...):
            ...
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        start = time.perf_counter()
        try:
            return await func(*args, **kwargs)
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.debug(
                "async function timed",
                extra={
                    "function": func.__qualname__,
                    "duration_ms": duration_ms,
                },
            )
    return wrapper


class PerformanceTracker:
    """
    Thread-safe in-memory tracker for render metrics.

    Tracks:
    - Sheets rendered and pages produced
    - Cumulative, average and slowest render duration
    - Failed renders
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._sheets_rendered: int = 0
        self._pages_rendered: int = 0
        self._total_render_ms: float = 0.0
        self._slowest_render_ms: float = 0.0
        self._failures: int = 0

    # ------------------------------------------------------------------
    # Public write API
    # ------------------------------------------------------------------

    def record_render(self, duration_ms: float, page_count: int) -> None:
        """Call once per sheet that reached save()."""
        with self._lock:
            self._sheets_rendered += 1
            self._pages_rendered += page_count
            self._total_render_ms += duration_ms
            self._slowest_render_ms = max(self._slowest_render_ms, duration_ms)

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1

    # ------------------------------------------------------------------
    # Public read API
    # ------------------------------------------------------------------

    def get_metrics(self) -> Dict[str, Any]:
        """
        Return a snapshot of all collected metrics.

        Returns
        -------
        dict with keys:
            sheets_rendered         : int
            pages_rendered          : int
            avg_render_duration_ms  : float  (0 if none rendered)
            slowest_render_ms       : float
            error_count             : int
        """
        with self._lock:
            avg = (
                round(self._total_render_ms / self._sheets_rendered, 2)
                if self._sheets_rendered > 0
                else 0.0
            )
            return {
                "sheets_rendered": self._sheets_rendered,
                "pages_rendered": self._pages_rendered,
                "avg_render_duration_ms": avg,
                "slowest_render_ms": round(self._slowest_render_ms, 2),
                "error_count": self._failures,
            }

    def reset(self) -> None:
        """Reset all counters (useful in tests)."""
        with self._lock:
            self._sheets_rendered = 0
            self._pages_rendered = 0
            self._total_render_ms = 0.0
            self._slowest_render_ms = 0.0
            self._failures = 0


# Module-level singleton, import this instance everywhere else.
tracker = PerformanceTracker()
