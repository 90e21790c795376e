"""
Async HTTP client with politeness delay, retries, and caching.

Built on httpx with:
- Randomized delay before every network request
- Exponential backoff retry on transient failures (tenacity)
- Optional TTL response cache service
- Browser-like default headers
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional

import httpx
import structlog
from bs4 import BeautifulSoup
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from ..errors import FetchError
from .cache import ResponseCache

logger = structlog.get_logger(__name__)


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-CA,en;q=0.9",
    "Cache-Control": "no-cache",
}

# Sites answer bursts with 403 as often as with 429
RETRYABLE_STATUS = frozenset({403, 429})

TRANSIENT_ERRORS = (
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def is_retryable_status(status: int) -> bool:
    """Whether an HTTP status is worth another attempt."""
    return status in RETRYABLE_STATUS or 500 <= status < 600


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable


class HttpClient:
    """
    Async HTTP client with politeness delay, retries, and caching.

    Usage:
        async with HttpClient() as client:
            soup = await client.fetch("https://example.com")
    """

    def __init__(
        self,
        min_delay: float = 0.2,
        max_delay: float = 0.6,
        timeout: float = 30.0,
        max_attempts: int = 4,
        backoff_base: float = 0.5,
        backoff_jitter: float = 0.3,
        user_agent: str = DEFAULT_USER_AGENT,
        cache: Optional[ResponseCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            min_delay: Lower bound of the politeness delay in seconds
            max_delay: Upper bound of the politeness delay in seconds
            timeout: Request timeout in seconds
            max_attempts: Total attempts per URL, including the first
            backoff_base: First backoff delay in seconds, doubled per retry
            backoff_jitter: Upper bound of uniform jitter added to backoff
            user_agent: User-Agent header value
            cache: Optional response cache service
            transport: Optional httpx transport (tests use MockTransport)
            sleep: Awaitable sleep used for delays and backoff
            rng: Random source for delay and jitter
        """
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_jitter = backoff_jitter
        self.user_agent = user_agent
        self.cache = cache

        self._transport = transport
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings, cache: Optional[ResponseCache] = None, **kwargs) -> "HttpClient":
        """Build a client from ScraperSettings."""
        return cls(
            min_delay=settings.min_delay,
            max_delay=settings.max_delay,
            timeout=settings.timeout,
            max_attempts=settings.max_attempts,
            backoff_base=settings.backoff_base,
            backoff_jitter=settings.backoff_jitter,
            user_agent=settings.user_agent,
            cache=cache,
            **kwargs,
        )

    async def __aenter__(self) -> "HttpClient":
        """Enter async context."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            headers={**DEFAULT_HEADERS, "User-Agent": self.user_agent},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt (1-based)."""
        return self.backoff_base * 2 ** (attempt - 1) + self._rng.uniform(0, self.backoff_jitter)

    def _wait(self, retry_state: RetryCallState) -> float:
        delay = self.backoff_delay(retry_state.attempt_number)
        logger.warning(
            "http_retry",
            attempt=retry_state.attempt_number,
            delay=round(delay, 3),
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )
        return delay

    async def _request_once(self, url: str) -> httpx.Response:
        """Single attempt; maps every failure to FetchError."""
        if not self._client:
            raise RuntimeError("Client not initialized. Use 'async with' context.")

        await self._sleep(self._rng.uniform(self.min_delay, self.max_delay))
        logger.debug("http_get", url=url)

        try:
            response = await self._client.get(url)
        except TRANSIENT_ERRORS as e:
            raise FetchError(url, f"Transient network error: {e!r}", retryable=True, cause=e) from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"HTTP error: {e!r}", cause=e) from e

        if not response.is_success:
            status = response.status_code
            raise FetchError(
                url,
                f"HTTP {status}",
                status=status,
                retryable=is_retryable_status(status),
            )
        return response

    async def get(self, url: str, use_cache: bool = True) -> httpx.Response:
        """
        GET with politeness delay, retry and caching.

        Raises:
            FetchError: terminal failure (retryable is always False here)
        """
        if use_cache and self.cache is not None:
            cached = self.cache.get(url)
            if cached:
                logger.debug("cache_hit", url=url)
                return httpx.Response(
                    status_code=cached.status_code,
                    headers=cached.headers,
                    content=cached.content,
                    request=httpx.Request("GET", url),
                )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait,
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._request_once(url)
        except FetchError as e:
            if not e.retryable:
                logger.warning("http_failed", url=url, status=e.status, error=str(e))
                raise
            logger.error("http_retries_exhausted", url=url, attempts=self.max_attempts, status=e.status)
            raise FetchError(
                url,
                f"Gave up after {self.max_attempts} attempts",
                status=e.status,
                retryable=False,
                cause=e.cause or e,
            ) from e

        if self.cache is not None and response.status_code == 200:
            # Content is stored decoded
            headers = {
                k: v for k, v in response.headers.items()
                if k.lower() not in ("content-encoding", "content-length", "transfer-encoding")
            }
            self.cache.set(url, response.content, response.status_code, headers)

        return response

    async def get_text(self, url: str, **kwargs) -> str:
        """GET request returning text content."""
        response = await self.get(url, **kwargs)
        return response.text

    async def fetch(self, url: str, **kwargs) -> BeautifulSoup:
        """GET request returning a parsed document."""
        html = await self.get_text(url, **kwargs)
        return BeautifulSoup(html, "lxml")
