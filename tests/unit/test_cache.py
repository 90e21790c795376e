"""Tests for the TTL response cache service."""

import asyncio

import pytest

from community_scraper.core.cache import ResponseCache


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestResponseCache:
    """Tests for entry expiry with an injected clock."""

    def test_get_returns_fresh_entry(self):
        cache = ResponseCache(ttl=300, clock=FakeClock())
        cache.set("https://example.com", b"<html/>", 200, {"content-type": "text/html"})

        entry = cache.get("https://example.com")

        assert entry is not None
        assert entry.content == b"<html/>"
        assert entry.status_code == 200

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = ResponseCache(ttl=300, clock=clock)
        cache.set("https://example.com", b"x", 200, {})

        clock.advance(299)
        assert cache.get("https://example.com") is not None

        clock.advance(2)
        assert cache.get("https://example.com") is None
        assert cache.size == 0

    def test_purge_expired_counts_removed(self):
        clock = FakeClock()
        cache = ResponseCache(ttl=10, clock=clock)
        cache.set("https://a.example", b"a", 200, {})
        clock.advance(5)
        cache.set("https://b.example", b"b", 200, {})
        clock.advance(6)

        assert cache.purge_expired() == 1
        assert cache.get("https://b.example") is not None

    def test_miss(self):
        cache = ResponseCache()
        assert cache.get("https://nowhere.example") is None


class TestCacheLifecycle:
    """Tests for start/stop of the eviction task."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        cache = ResponseCache(cleanup_interval=3600)

        await cache.start()
        assert cache.running

        await cache.start()  # no-op
        assert cache.running

        cache.set("https://example.com", b"x", 200, {})
        await cache.stop()

        assert not cache.running
        assert cache.size == 0

    @pytest.mark.asyncio
    async def test_background_task_purges(self):
        clock = FakeClock()
        cache = ResponseCache(ttl=1, cleanup_interval=0.01, clock=clock)
        cache.set("https://example.com", b"x", 200, {})
        clock.advance(5)

        async with cache:
            await asyncio.sleep(0.05)
            assert cache.size == 0

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        cache = ResponseCache()
        await cache.stop()
        assert not cache.running
