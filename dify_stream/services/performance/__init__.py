"""
Performance Package

Admission control, caching, deduplication and metrics shared by every chat
call of a ChatService.

Modules:
- rate_limiter: Sliding-window admission control
- response_cache: Bounded, expiring response store
- deduplicator: At-most-one in-flight call per key
- performance_tracker: Running request outcome and latency aggregate
"""

from .rate_limiter import RateLimiter
from .response_cache import ResponseCache, CacheEntry
from .deduplicator import RequestDeduplicator
from .performance_tracker import PerformanceTracker, PerformanceMetrics

__all__ = [
    "RateLimiter",
    "ResponseCache",
    "CacheEntry",
    "RequestDeduplicator",
    "PerformanceTracker",
    "PerformanceMetrics"
]
