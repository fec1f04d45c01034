# core/utils/rate_limit.py

import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class AdmissionQueue:
    """Single-slot admission queue served strictly in arrival order.

    A plain Lock makes no fairness promise, so waiters take a ticket and
    are admitted when their ticket comes up.
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._next_ticket = 0
        self._now_serving = 0

    def __enter__(self) -> "AdmissionQueue":
        with self._condition:
            ticket = self._next_ticket
            self._next_ticket += 1
            while ticket != self._now_serving:
                self._condition.wait()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        with self._condition:
            self._now_serving += 1
            self._condition.notify_all()
        return False

    @property
    def waiting(self) -> int:
        """Number of callers queued or in flight"""
        with self._condition:
            return self._next_ticket - self._now_serving


class RateLimiter:
    def __init__(self,
                 min_interval: float = 1.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize rate limiter.

        Args:
            min_interval: Minimum time in seconds between the start of two requests
            clock: Monotonic clock returning seconds
            sleep: Function used to wait
        """
        self.min_interval = min_interval
        self.clock = clock
        self.sleep = sleep
        self.request_count = 0
        self.last_request_time: Optional[float] = None

    def delay(self) -> float:
        """Wait until the next request may start and mark it as started.

        The gap is measured from the start of the previous request, so a slow
        request eats into the wait rather than adding to it.

        Returns:
            The number of seconds waited
        """
        waited = 0.0
        if self.last_request_time is not None:
            wait_time = self.min_interval - (self.clock() - self.last_request_time)
            if wait_time > 0:
                logger.debug(f"Rate limiting: waiting {wait_time * 1000:.0f}ms before next request")
                self.sleep(wait_time)
                waited = wait_time

        self.request_count += 1
        self.last_request_time = self.clock()
        return waited
