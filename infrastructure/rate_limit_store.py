# infrastructure/rate_limit_store.py
"""Simple in-memory fixed-window request counter with size limit"""
import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from config import settings


class RateLimitStore:
    """
    Per-client request counts for the current window (keyed by client IP).

    Auto-cleanup at MAX_ENTRIES (expired windows dropped first, then oldest).
    Lost on server restart; each worker process counts separately.
    Safe to call from FastAPI's threadpool: every read-modify-write holds the lock.
    Usage: hit(key) -> None when allowed, else seconds until the window resets.
    """
    MAX_ENTRIES = 10_000

    def __init__(self, max_requests: int, window_seconds: int,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}  # key -> (window_start, count)

    def _cleanup_if_full(self, now: float) -> None:
        # Caller holds self._lock
        if len(self._windows) < self.MAX_ENTRIES:
            return
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        if len(self._windows) >= self.MAX_ENTRIES:
            oldest = sorted(self._windows.items(), key=lambda item: item[1][0])
            for key, _ in oldest[: len(self._windows) // 2]:
                del self._windows[key]

    def hit(self, key: str) -> Optional[int]:
        """Count one request. Returns None if allowed, otherwise retry-after seconds."""
        with self._lock:
            now = self._clock()
            start, count = self._windows.get(key, (now, 0))

            if now - start >= self.window_seconds:
                start, count = now, 0
            elif key not in self._windows:
                self._cleanup_if_full(now)

            if count >= self.max_requests:
                return max(1, math.ceil(self.window_seconds - (now - start)))

            self._windows[key] = (start, count + 1)
            return None

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


# Global instance
chat_rate_limiter = RateLimitStore(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)
