"""
TTL response cache.

A small service with an explicit lifecycle: ``start()`` launches a
background task that evicts expired entries, ``stop()`` cancels it. The
clock is injectable so expiry can be tested without sleeping.
"""

import asyncio
import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class CacheEntry:
    """Cached HTTP response."""
    content: bytes
    status_code: int
    headers: dict
    timestamp: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class ResponseCache:
    """
    URL keyed response cache with periodic eviction.

    Usage:
        cache = ResponseCache(ttl=300)
        await cache.start()
        ...
        await cache.stop()
    """

    def __init__(
        self,
        ttl: float = 300,
        cleanup_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def _key(url: str) -> str:
        return hashlib.md5(url.encode()).hexdigest()

    def get(self, url: str) -> Optional[CacheEntry]:
        """Return a live entry for url, dropping it if expired."""
        key = self._key(url)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def set(self, url: str, content: bytes, status_code: int, headers: dict) -> None:
        self._entries[self._key(url)] = CacheEntry(
            content=content,
            status_code=status_code,
            headers=headers,
            timestamp=self._clock(),
            ttl=self.ttl,
        )

    def purge_expired(self) -> int:
        """Evict expired entries. Returns number removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache_purged", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            self.purge_expired()

    async def start(self) -> None:
        """Start the eviction task. Calling twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._cleanup_loop())
        logger.debug("cache_started", ttl=self.ttl, interval=self.cleanup_interval)

    async def stop(self) -> None:
        """Cancel the eviction task and drop all entries."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.clear()
        logger.debug("cache_stopped")

    async def __aenter__(self) -> "ResponseCache":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop()
