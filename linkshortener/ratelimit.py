"""Fixed-window rate limiting keyed by client IP.

The counters live in a `FixedWindowRateLimiter` instance that the app keeps
on `app.state`, so tests can swap or reset it and a shared store could
replace it when running more than one process.
"""

import logging
import math
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request, status

from linkshortener.visitors import client_ip

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float  # seconds until the current window closes


class FixedWindowRateLimiter:
    """Allow `max_requests` per key in each `window_seconds` window."""

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        if max_requests < 1:
            raise ValueError(f"max_requests must be positive (given: {max_requests})")
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be positive (given: {window_seconds})")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[int, int]] = {}  # key -> (window index, count)
        self._lock = Lock()

    def hit(self, key: str) -> RateLimitResult:
        with self._lock:
            now = self._clock()
            window = int(now // self.window_seconds)
            reset_after = (window + 1) * self.window_seconds - now

            current, count = self._windows.get(key, (window, 0))
            if current != window:
                count = 0
            if count >= self.max_requests:
                return RateLimitResult(False, self.max_requests, 0, reset_after)

            self._windows[key] = (window, count + 1)
            self._prune(window)
            return RateLimitResult(True, self.max_requests, self.max_requests - count - 1, reset_after)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _prune(self, window: int) -> None:
        # Drop keys from closed windows so idle clients don't accumulate
        if len(self._windows) > 10_000:
            self._windows = {k: v for k, v in self._windows.items() if v[0] == window}


def rate_limit(state_attr: str, message: str) -> Callable[[Request], None]:
    """Build a FastAPI dependency enforcing the limiter stored at `app.state.<state_attr>`."""

    def dependency(request: Request) -> None:
        limiter: FixedWindowRateLimiter = getattr(request.app.state, state_attr)
        key = client_ip(request)
        result = limiter.hit(key)
        if not result.allowed:
            retry_after = max(1, math.ceil(result.reset_after))
            logger.warning("Rate limit exceeded: limiter=%s client=%s path=%s", state_attr, key, request.url.path)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=message,
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return dependency
