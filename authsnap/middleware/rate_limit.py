"""
In-memory sliding-window rate limiter for login initiation.

Each key (usually a client IP) keeps the timestamps of its accepted
requests. A request is accepted while fewer than ``max_requests``
timestamps fall inside the last ``window_ms`` milliseconds; rejected
requests are not recorded.
"""

import logging
import time
from typing import Callable, Dict, List, Optional, Union

from ..config import RateLimitConfig

logger = logging.getLogger(__name__)


PRUNE_INTERVAL_SECONDS = 5 * 60


class RateLimiter:
    """
    Sliding-window limiter.

    Args:
        window_ms: Window length in milliseconds
        max_requests: Requests allowed per window per key
        clock: Returns the current time in epoch milliseconds
    """

    def __init__(
        self,
        window_ms: int = 60_000,
        max_requests: int = 10,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._hits: Dict[str, List[int]] = {}

    def _in_window(self, timestamps: List[int], now: int) -> List[int]:
        return [t for t in timestamps if now - t < self.window_ms]

    def check(self, key: str) -> bool:
        """
        Record a request for ``key`` if it is within the limit.

        Returns:
            True if the request is allowed, False if rate limited
        """
        now = self._clock()
        valid = self._in_window(self._hits.get(key, []), now)

        if len(valid) >= self.max_requests:
            self._hits[key] = valid
            logger.info("Rate limit exceeded", extra={"key": key, "max_requests": self.max_requests})
            return False

        valid.append(now)
        self._hits[key] = valid
        return True

    def reset(self, key: str) -> None:
        self._hits.pop(key, None)

    def clear(self) -> None:
        self._hits.clear()

    def prune(self) -> int:
        """
        Drop timestamps outside the window and keys left with none.

        Returns:
            Number of keys removed
        """
        now = self._clock()
        removed = 0
        for key in list(self._hits):
            valid = self._in_window(self._hits[key], now)
            if valid:
                self._hits[key] = valid
            else:
                del self._hits[key]
                removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._hits)


def create_rate_limiter(
    options: Union[RateLimitConfig, Dict[str, int], None] = None,
    clock: Optional[Callable[[], int]] = None,
) -> RateLimiter:
    """
    Build a RateLimiter from a RateLimitConfig (or a dict of the same shape).

    Defaults: 60000 ms window, 10 requests.
    """
    if options is None:
        options = RateLimitConfig()
    elif isinstance(options, dict):
        options = RateLimitConfig(**options)

    return RateLimiter(window_ms=options.window_ms, max_requests=options.max_requests, clock=clock)
