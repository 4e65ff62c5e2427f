"""
Rate Limiter Module

Sliding-window admission control for outbound chat requests. One global
window is shared by every caller of a ChatService.
"""

import time
from collections import deque
from typing import Callable, Deque


class RateLimiter:
    """
    Sliding-window request counter.

    `can_make_request()` and `record_request()` are deliberately separate
    calls: the caller checks, then records once it commits to sending. Under
    asyncio nothing can run between the two as long as no await separates
    them.

    Attributes:
        limit (int): Maximum requests inside one window
        window (float): Window length in seconds
    """

    def __init__(self, limit: int, window: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self.requests: Deque[float] = deque()

    def _prune(self):
        now = self.clock()
        while self.requests and now - self.requests[0] >= self.window:
            self.requests.popleft()

    def can_make_request(self) -> bool:
        """Return True when one more request fits into the current window."""
        self._prune()
        return len(self.requests) < self.limit

    def record_request(self):
        """Record a request at the current time. Not guarded by an admission check."""
        self.requests.append(self.clock())

    def get_remaining_requests(self) -> int:
        """Number of requests still admissible in the current window."""
        self._prune()
        return max(0, self.limit - len(self.requests))

    def reset(self):
        """Forget every recorded request."""
        self.requests.clear()
