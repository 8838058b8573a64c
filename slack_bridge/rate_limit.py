"""Per-endpoint rate limiting for the Slack bridge.

Counts calls per endpoint in fixed windows keyed by
(endpoint, floor(now / window_seconds)). Keys for windows older than the
current one are pruned on every check, so memory stays bounded by the
number of endpoints.
"""

import logging
import threading
import time
from typing import Callable

logger = logging.getLogger("slack_bridge.rate_limit")

RATE_LIMIT_MAX_REQUESTS = 60
RATE_LIMIT_WINDOW_SECONDS = 60


class RateLimiter:
    """Fixed-window rate limiter held in process memory."""

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: int = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._counts: dict[tuple[str, int], int] = {}
        # check-then-increment must not interleave across callers
        self._lock = threading.Lock()

    def _key(self, endpoint: str) -> tuple[str, int]:
        """Build the window key for an endpoint at the current time."""
        return endpoint, int(self._clock() // self.window_seconds)

    def _prune(self, current_window: int) -> None:
        for key in [k for k in self._counts if k[1] < current_window]:
            del self._counts[key]

    @property
    def window_keys(self) -> list[tuple[str, int]]:
        """Window keys currently tracked."""
        with self._lock:
            return list(self._counts)

    def check_and_record(self, endpoint: str) -> tuple[bool, int]:
        """Check the limit for an endpoint and record the call if allowed.

        Args:
            endpoint: Logical endpoint name (e.g. "post_message")

        Returns:
            Tuple of (is_allowed, current_count)
        """
        with self._lock:
            key = self._key(endpoint)
            current_count = self._counts.get(key, 0)
            if current_count >= self.max_requests:
                logger.warning(
                    "rate_limited endpoint=%s count=%d limit=%d",
                    endpoint, current_count, self.max_requests,
                )
                return False, current_count

            self._counts[key] = current_count + 1
            self._prune(key[1])
            return True, current_count + 1
