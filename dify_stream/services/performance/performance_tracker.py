"""
Performance Tracker Module

This module provides the PerformanceTracker class, the process-wide running
aggregate of chat request outcomes.

The tracker counts:
- Total, successful and failed requests
- Running average latency over every recorded request
- Cache hits and misses
- Requests rejected by the local rate limiter

Counters only go back to zero through reset().
"""

from dataclasses import dataclass, asdict
from typing import Dict, Any


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Immutable snapshot of the tracker's counters.

    Attributes:
        total_requests (int): Requests recorded through record_request()
        successful_requests (int): Requests recorded as successful
        failed_requests (int): Requests recorded as failed
        average_response_time_ms (float): Running mean latency, cache hits included at 0 ms
        cache_hits (int): Requests served from the response cache
        cache_misses (int): Requests that were not served from the cache
        rate_limit_hits (int): Requests rejected before sending by the rate limiter
    """
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time_ms: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    rate_limit_hits: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PerformanceTracker:
    """
    Running aggregate of request outcomes and latency.

    The average is updated incrementally
    (`new_avg = (old_avg * (n - 1) + sample) / n`) rather than kept as a
    sum and a count. Cache hits are recorded with a latency of 0 and so pull
    the average down.
    """

    def __init__(self):
        """Initialize a tracker with every counter at zero."""
        self.reset()

    def record_request(self, success: bool, latency_ms: float, cache_hit: bool = False):
        """
        Record the outcome of one request.

        Args:
            success (bool): Whether the request succeeded
            latency_ms (float): Observed latency in milliseconds, 0 for cache hits
            cache_hit (bool): Whether the response came from the cache
        """
        self.total_requests += 1

        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        n = self.total_requests
        self.average_response_time_ms = (self.average_response_time_ms * (n - 1) + latency_ms) / n

        if cache_hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1

    def record_rate_limit_hit(self):
        """Count a request rejected by the rate limiter. Not part of total_requests."""
        self.rate_limit_hits += 1

    def get_metrics(self) -> PerformanceMetrics:
        """
        Return an immutable snapshot of every counter.

        Returns:
            PerformanceMetrics: Snapshot; later records do not change it
        """
        return PerformanceMetrics(
            total_requests=self.total_requests,
            successful_requests=self.successful_requests,
            failed_requests=self.failed_requests,
            average_response_time_ms=self.average_response_time_ms,
            cache_hits=self.cache_hits,
            cache_misses=self.cache_misses,
            rate_limit_hits=self.rate_limit_hits
        )

    def reset(self):
        """Zero every counter."""
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.average_response_time_ms = 0.0
        self.cache_hits = 0
        self.cache_misses = 0
        self.rate_limit_hits = 0
