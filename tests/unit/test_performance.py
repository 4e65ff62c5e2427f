"""
Tests for the shared performance components: rate limiter, response cache,
request deduplicator and performance tracker.
"""

import asyncio

import pytest

from dify_stream.services.performance import (
    RateLimiter,
    ResponseCache,
    RequestDeduplicator,
    PerformanceTracker,
)


class TestRateLimiter:
    """Sliding-window admission control."""

    def test_denies_after_limit_within_window(self, fake_clock):
        limiter = RateLimiter(limit=3, window=60.0, clock=fake_clock)

        for _ in range(3):
            assert limiter.can_make_request()
            limiter.record_request()

        assert not limiter.can_make_request()
        assert limiter.get_remaining_requests() == 0

    def test_admits_again_after_window_elapses(self, fake_clock):
        limiter = RateLimiter(limit=2, window=60.0, clock=fake_clock)
        limiter.record_request()
        fake_clock.advance(30)
        limiter.record_request()
        assert not limiter.can_make_request()

        fake_clock.advance(30)
        # First timestamp is now exactly one window old
        assert limiter.can_make_request()
        assert limiter.get_remaining_requests() == 1

        fake_clock.advance(30)
        assert limiter.get_remaining_requests() == 2

    def test_record_is_not_guarded(self, fake_clock):
        limiter = RateLimiter(limit=1, clock=fake_clock)
        limiter.record_request()
        limiter.record_request()
        assert limiter.get_remaining_requests() == 0
        assert len(limiter.requests) == 2

    def test_reset_clears_window(self, fake_clock):
        limiter = RateLimiter(limit=1, clock=fake_clock)
        limiter.record_request()
        limiter.reset()
        assert limiter.can_make_request()


class TestResponseCache:
    """Bounded, expiring FIFO cache."""

    def test_value_returned_before_ttl(self, fake_clock):
        cache = ResponseCache(max_size=10, ttl=300, clock=fake_clock)
        cache.set("a", {"answer": 1})
        fake_clock.advance(299)
        assert cache.get("a") == {"answer": 1}
        assert cache.has("a")

    def test_expired_entry_is_a_miss_and_removed(self, fake_clock):
        cache = ResponseCache(max_size=10, ttl=300, clock=fake_clock)
        cache.set("a", "value")
        fake_clock.advance(301)

        assert cache.get("a") is None
        assert len(cache) == 0

    def test_has_triggers_lazy_expiry(self, fake_clock):
        cache = ResponseCache(ttl=1, clock=fake_clock)
        cache.set("a", "value")
        fake_clock.advance(2)
        assert len(cache) == 1
        assert not cache.has("a")
        assert len(cache) == 0

    def test_evicts_oldest_inserted_when_full(self, fake_clock):
        cache = ResponseCache(max_size=2, ttl=300, clock=fake_clock)
        cache.set("first", 1)
        cache.set("second", 2)
        # Reads do not refresh insertion order
        assert cache.get("first") == 1

        cache.set("third", 3)

        assert cache.get("first") is None
        assert cache.get("second") == 2
        assert cache.get("third") == 3
        assert len(cache) == 2

    def test_set_purges_expired_before_evicting(self, fake_clock):
        cache = ResponseCache(max_size=2, ttl=10, clock=fake_clock)
        cache.set("old", 1)
        fake_clock.advance(5)
        cache.set("fresh", 2)
        fake_clock.advance(6)

        cache.set("new", 3)

        assert cache.get("fresh") == 2
        assert cache.get("new") == 3
        assert len(cache) == 2

    def test_disabled_cache_never_stores(self, fake_clock):
        cache = ResponseCache(enabled=False, clock=fake_clock)
        cache.set("a", 1)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_clear(self, fake_clock):
        cache = ResponseCache(clock=fake_clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.size() == 0


class TestRequestDeduplicator:
    """At-most-one in-flight execution per key."""

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_execution(self):
        deduplicator = RequestDeduplicator()
        calls = 0
        release = asyncio.Event()

        async def work():
            nonlocal calls
            calls += 1
            await release.wait()
            return "result"

        first = asyncio.ensure_future(deduplicator.deduplicate("k", work))
        second = asyncio.ensure_future(deduplicator.deduplicate("k", work))
        await asyncio.sleep(0)
        assert deduplicator.is_pending("k")

        release.set()
        results = await asyncio.gather(first, second)

        assert results == ["result", "result"]
        assert calls == 1
        assert deduplicator.pending_count() == 0

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_failure(self):
        deduplicator = RequestDeduplicator()
        release = asyncio.Event()

        async def work():
            await release.wait()
            raise ValueError("boom")

        first = asyncio.ensure_future(deduplicator.deduplicate("k", work))
        second = asyncio.ensure_future(deduplicator.deduplicate("k", work))
        await asyncio.sleep(0)
        release.set()

        results = await asyncio.gather(first, second, return_exceptions=True)

        assert all(isinstance(r, ValueError) for r in results)
        assert results[0] is results[1]
        assert not deduplicator.is_pending("k")

    @pytest.mark.asyncio
    async def test_settled_key_starts_fresh_execution(self):
        deduplicator = RequestDeduplicator()
        calls = 0

        async def work():
            nonlocal calls
            calls += 1
            return calls

        assert await deduplicator.deduplicate("k", work) == 1
        assert await deduplicator.deduplicate("k", work) == 2

    @pytest.mark.asyncio
    async def test_different_keys_run_independently(self):
        deduplicator = RequestDeduplicator()

        async def work(value):
            await asyncio.sleep(0)
            return value

        results = await asyncio.gather(
            deduplicator.deduplicate("a", lambda: work("a")),
            deduplicator.deduplicate("b", lambda: work("b")),
        )
        assert results == ["a", "b"]


class TestPerformanceTracker:
    """Running aggregate of outcomes."""

    def test_incremental_average_and_counters(self):
        tracker = PerformanceTracker()
        tracker.record_request(True, 100)
        tracker.record_request(False, 200)
        tracker.record_request(True, 0, cache_hit=True)

        metrics = tracker.get_metrics()
        assert metrics.total_requests == 3
        assert metrics.successful_requests == 2
        assert metrics.failed_requests == 1
        assert metrics.cache_hits == 1
        assert metrics.cache_misses == 2
        assert metrics.average_response_time_ms == pytest.approx(100.0)

    def test_rate_limit_hits_do_not_count_as_requests(self):
        tracker = PerformanceTracker()
        tracker.record_rate_limit_hit()
        tracker.record_rate_limit_hit()

        metrics = tracker.get_metrics()
        assert metrics.rate_limit_hits == 2
        assert metrics.total_requests == 0

    def test_snapshot_is_immutable(self):
        tracker = PerformanceTracker()
        snapshot = tracker.get_metrics()
        tracker.record_request(True, 50)

        assert snapshot.total_requests == 0
        with pytest.raises(AttributeError):
            snapshot.total_requests = 5

    def test_reset(self):
        tracker = PerformanceTracker()
        tracker.record_request(True, 10)
        tracker.record_rate_limit_hit()
        tracker.reset()
        assert tracker.get_metrics().to_dict() == {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "average_response_time_ms": 0.0,
            "cache_hits": 0,
            "cache_misses": 0,
            "rate_limit_hits": 0,
        }
