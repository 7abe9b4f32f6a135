"""
Per-source rate limiter

Some price sources publish a hard request budget (VVS Finance allows one
call per minute). The limiter never sleeps: callers ask for a slot and skip
the source when none is free.
"""

import logging
import time
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class SourceRateLimiter:
    """Minimum-interval limiter keyed by source name"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._intervals: Dict[str, float] = {}
        self._last_request: Dict[str, float] = {}

    def configure(self, source: str, min_interval_seconds: float):
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self._intervals[source] = min_interval_seconds

    def try_acquire(self, source: str) -> bool:
        """
        Claim a request slot for a source.

        Returns:
            False if the previous granted request was less than the configured
            interval ago, True otherwise (the slot is recorded as used)
        """
        interval = self._intervals.get(source)
        if not interval:
            return True

        now = self._clock()
        last = self._last_request.get(source)
        if last is not None and now - last < interval:
            logger.debug(f"Rate limit: {source} next slot in {interval - (now - last):.1f}s")
            return False

        self._last_request[source] = now
        return True

    def seconds_until_available(self, source: str) -> float:
        interval = self._intervals.get(source)
        last = self._last_request.get(source)
        if not interval or last is None:
            return 0.0
        return max(0.0, interval - (self._clock() - last))

    def reset(self, source: Optional[str] = None):
        """Forget request history for one source, or all of them"""
        if source is None:
            self._last_request.clear()
        else:
            self._last_request.pop(source, None)
