"""
Base class for source scrapers.

A source scraper turns one configured website into candidate records.
The only capability the orchestrator relies on is ``scrape()``; concrete
scrapers are looked up by ``SourceConfig.kind`` in the registry.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

import structlog

from ..config.heuristics import Heuristics, default_heuristics
from ..config.loader import SourceConfig
from ..core.classifier import CategoryClassifier
from ..core.http_client import HttpClient
from ..core.models import ContentType
from ..core.normalizer import utc_now

logger = structlog.get_logger(__name__)


class SourceScraper(ABC):
    """
    Abstract base class for source scrapers.

    Item level failures are collected in ``errors`` instead of raised, so
    one bad page never stops the rest of the source.
    """

    content_type: ContentType

    def __init__(
        self,
        source: SourceConfig,
        http_client: HttpClient,
        heuristics: Optional[Heuristics] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize scraper.

        Args:
            source: Source configuration
            http_client: Shared HTTP client (already entered)
            heuristics: Keyword data (defaults to the packaged heuristics)
            clock: Returns the current UTC time
        """
        self.source = source
        self.http_client = http_client
        self.heuristics = heuristics or default_heuristics()
        self.clock = clock
        self.classifier = CategoryClassifier.for_content_type(
            self.content_type.value, self.heuristics
        )
        self.errors: list[str] = []
        self.logger = logger.bind(
            scraper=self.__class__.__name__,
            source=source.source_id,
        )

    @abstractmethod
    async def scrape(self) -> list:
        """
        Scrape the source.

        Returns:
            Candidate records (ScrapedNewsArticle, ScrapedEvent or ScrapedBusiness)
        """

    def record_error(self, message: str, **context) -> None:
        """Log an item failure and keep it for the run summary."""
        self.logger.error("item_failed", message=message, **context)
        self.errors.append(f"{self.source.source_id}: {message}")
