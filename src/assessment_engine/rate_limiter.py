"""
rate_limiter.py — Fixed-interval limiter for external collaborators
===================================================================
Keeps successive calls to the generative provider and the narrative
feedback collaborator at least ``min_interval`` seconds apart.  The clock
and sleep functions are injectable so tests run with zero real delay.

Usage::

    limiter = RateLimiter(2.0)
    for q in questions:
        with limiter:
            score(q)
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    def __init__(
        self,
        min_interval: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if min_interval < 0:
            raise ValueError(f"min_interval must be non-negative, got {min_interval}")
        self.min_interval = float(min_interval)
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None

    def wait(self) -> float:
        """Block until the interval since the previous call has elapsed; return the pause."""
        now = self._clock()
        pause = 0.0
        if self._last is not None and self.min_interval > 0:
            pause = self.min_interval - (now - self._last)
            if pause > 0:
                logger.debug("Rate limiter pausing %.2fs", pause)
                self._sleep(pause)
                now = self._clock()
            else:
                pause = 0.0
        self._last = now
        return pause

    def reset(self) -> None:
        self._last = None

    def __enter__(self) -> "RateLimiter":
        self.wait()
        return self

    def __exit__(self, *exc_info) -> None:
        return None
