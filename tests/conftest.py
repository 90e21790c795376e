"""Shared fixtures for unit and integration tests."""

from datetime import datetime, timezone

import httpx
import pytest

from community_scraper.config.heuristics import default_heuristics
from community_scraper.core.http_client import HttpClient

FIXED_NOW = datetime(2025, 7, 10, 12, 0, tzinfo=timezone.utc)


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FailingCollection:
    async def find_all(self, filter=None):
        raise ConnectionError("store down")

    async def find_by_id(self, id):
        raise ConnectionError("store down")

    async def upsert_by_id(self, id, data):
        raise ConnectionError("store down")

    async def delete_many(self, filter=None):
        raise ConnectionError("store down")

    async def count(self, filter=None):
        raise ConnectionError("store down")


class FailingStore:
    """Store whose every call fails, as if the database were unreachable."""

    def collection(self, name):
        return FailingCollection()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def heuristics():
    return default_heuristics()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def make_client(sleep):
    """Build an HttpClient backed by an httpx.MockTransport handler."""

    def factory(handler, **kwargs) -> HttpClient:
        options = {
            "min_delay": 0.0,
            "max_delay": 0.0,
            "backoff_jitter": 0.0,
            "sleep": sleep,
        }
        options.update(kwargs)
        return HttpClient(transport=httpx.MockTransport(handler), **options)

    return factory


@pytest.fixture
def failing_store():
    return FailingStore()
