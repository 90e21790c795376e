"""
Error taxonomy for the scraping pipeline.

Only RunFatalError escapes a run; everything else is recovered where the
page or record is processed and reported in the run summary.
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for all pipeline errors."""


class FetchError(ScraperError):
    """
    Network or HTTP failure for a single URL.

    Attributes:
        url: URL being fetched
        status: HTTP status code, None for network failures
        retryable: Whether the failure is worth another attempt
        cause: Underlying exception, if any
    """

    def __init__(
        self,
        url: str,
        message: str,
        status: Optional[int] = None,
        retryable: bool = False,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.url = url
        self.status = status
        self.retryable = retryable
        self.cause = cause

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (status={self.status}, url={self.url})"
        return f"{base} (url={self.url})"


class ParseError(ScraperError):
    """A required field is missing or unreadable."""


class ValidationError(ScraperError):
    """A record was extracted but fails semantic checks."""


class PersistenceError(ScraperError):
    """A store round-trip failed for one record."""


class RunFatalError(ScraperError):
    """
    The persistence collaborator is unreachable.

    Carries whatever partial results were produced before the failure.
    """

    def __init__(self, message: str, partial=None):
        super().__init__(message)
        self.partial = partial
