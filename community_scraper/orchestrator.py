"""
Orchestrator for the community scraping pipeline.

Coordinates:
- Store reachability check
- Retention cleanup
- Source scraper selection and execution
- Duplicate resolution and id based diffing
- Run summary aggregation
"""

import asyncio
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from .config.heuristics import Heuristics, default_heuristics
from .config.loader import ScraperSettings, SourceConfig
from .core.deduplicator import DuplicateResolver
from .core.http_client import HttpClient
from .core.identity import generate_business_id, generate_content_id
from .core.models import (
    ContentType,
    ExistingEntity,
    RunResult,
    RunSummary,
    RunTally,
    ScrapedBusiness,
    ScrapedEvent,
    ScrapedNewsArticle,
)
from .core.normalizer import utc_now
from .errors import PersistenceError, RunFatalError
from .sources.base import SourceScraper
from .sources.business_directory import BusinessDirectoryScraper
from .sources.civic_calendar import CivicCalendarScraper
from .sources.jsonld_calendar import JsonLdCalendarScraper
from .sources.news_site import NewsSiteScraper
from .storage import DocumentCollection, DocumentStore

logger = structlog.get_logger(__name__)

CATEGORIES = (ContentType.EVENTS.value, ContentType.NEWS.value, ContentType.BUSINESSES.value)

# Fields whose change triggers an update; None compares the whole document
TRACKED_FIELDS = {
    ContentType.NEWS.value: ("title", "summary", "content", "imageUrl"),
    ContentType.EVENTS.value: None,
    ContentType.BUSINESSES.value: None,
}


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def has_changes(existing: dict, document: dict, tracked: Optional[tuple] = None) -> bool:
    """Compare a fresh document against the stored one."""
    keys = tracked if tracked is not None else document.keys()
    return any(existing.get(key) != document.get(key) for key in keys)


class ScrapeOrchestrator:
    """
    Runs configured sources and reconciles their output with the store.

    Categories run concurrently and touch disjoint collections; sources
    inside a category run one after another.
    """

    # Scraper registry, keyed by SourceConfig.kind
    SCRAPERS = {
        "news_site": NewsSiteScraper,
        "civic_calendar": CivicCalendarScraper,
        "jsonld_calendar": JsonLdCalendarScraper,
        "business_directory": BusinessDirectoryScraper,
    }

    def __init__(
        self,
        settings: ScraperSettings,
        store: DocumentStore,
        http_client: HttpClient,
        sources: list[SourceConfig],
        heuristics: Optional[Heuristics] = None,
        clock: Callable[[], datetime] = utc_now,
        resolver: Optional[DuplicateResolver] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Run settings (retention, cleanup phase)
            store: Persistence collaborator
            http_client: Shared HTTP client, already entered
            sources: Enabled source definitions
            heuristics: Keyword data (defaults to the packaged heuristics)
            clock: Returns the current UTC time
            resolver: Duplicate resolver (built from heuristics if omitted)
        """
        self.settings = settings
        self.store = store
        self.http_client = http_client
        self.sources = sources
        self.heuristics = heuristics or default_heuristics()
        self.clock = clock
        self.resolver = resolver or DuplicateResolver(self.heuristics)

    def build_scraper(self, source: SourceConfig) -> SourceScraper:
        scraper_class = self.SCRAPERS.get(source.kind)
        if scraper_class is None:
            raise ValueError(f"Unknown source kind: {source.kind}")
        return scraper_class(
            source,
            self.http_client,
            heuristics=self.heuristics,
            clock=self.clock,
        )

    async def run(self, categories: Optional[list[str]] = None) -> RunSummary:
        """
        Run the pipeline for the given categories (all by default).

        Raises:
            RunFatalError: The store cannot be reached at run start
        """
        started_at = self.clock()
        started = time.monotonic()
        categories = list(categories or CATEGORIES)

        unknown = [c for c in categories if c not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories: {unknown}")

        logger.info("starting_run", categories=categories, sources=len(self.sources))

        await self._probe_store(categories, started_at)

        results = await asyncio.gather(
            *(self.run_category(category) for category in categories)
        )

        summary = RunSummary(
            results={r.category: r for r in results},
            duration_ms=_elapsed_ms(started),
            started_at=started_at,
        )
        logger.info(
            "run_complete",
            total=summary.total,
            new=summary.new,
            updated=summary.updated,
            deleted=summary.deleted,
            errors=len(summary.errors),
            duration_ms=summary.duration_ms,
        )
        return summary

    async def _probe_store(self, categories: list[str], started_at: datetime) -> None:
        for category in categories:
            try:
                await self.store.collection(category).count()
            except Exception as e:
                logger.error("store_unreachable", collection=category, error=str(e))
                partial = RunSummary(results={}, duration_ms=0, started_at=started_at)
                raise RunFatalError(f"Store unreachable ({category}): {e}", partial=partial) from e

    async def run_category(self, category: str) -> RunResult:
        """Scrape every source of one category and persist the results."""
        started = time.monotonic()
        tally = RunTally(category=category)
        collection = self.store.collection(category)
        log = logger.bind(category=category)

        if self.settings.cleanup_phase == "before":
            await self._cleanup(category, collection, tally)

        records = []
        for source in self.sources:
            if source.category != category:
                continue
            records.extend(await self._scrape_source(source, tally))

        log.info("category_scraped", records=len(records))

        if category == ContentType.NEWS.value:
            await self._persist_news(records, collection, tally)
        elif category == ContentType.EVENTS.value:
            await self._persist_events(records, collection, tally)
        else:
            await self._persist_businesses(records, collection, tally)

        if self.settings.cleanup_phase == "after":
            await self._cleanup(category, collection, tally)

        result = tally.freeze(_elapsed_ms(started))
        log.info(
            "category_complete",
            total=result.total,
            new=result.new,
            updated=result.updated,
            deleted=result.deleted,
            errors=len(result.errors),
        )
        return result

    async def _scrape_source(self, source: SourceConfig, tally: RunTally) -> list:
        try:
            scraper = self.build_scraper(source)
            records = await scraper.scrape()
        except Exception as e:
            logger.error("source_failed", source=source.source_id, error=str(e))
            tally.errors.append(f"{source.source_id}: {e}")
            return []

        tally.errors.extend(scraper.errors)
        return records

    # Retention

    def news_cutoff(self) -> datetime:
        return self.clock() - timedelta(days=self.settings.news_retention_days)

    async def _cleanup(self, category: str, collection: DocumentCollection, tally: RunTally) -> None:
        if category == ContentType.NEWS.value:
            filter = {"publishedAt": {"$lt": self.news_cutoff()}}
        elif category == ContentType.EVENTS.value:
            filter = {"date": {"$lt": self.clock()}}
        else:
            return

        try:
            deleted = await collection.delete_many(filter)
        except Exception as e:
            logger.error("cleanup_failed", category=category, error=str(e))
            tally.errors.append(f"cleanup {category}: {e}")
            return

        tally.deleted += deleted
        if deleted:
            logger.info("cleanup_complete", category=category, deleted=deleted)

    # Persistence

    async def _upsert(
        self,
        collection: DocumentCollection,
        record_id: str,
        document: dict,
        tally: RunTally,
    ) -> None:
        """Insert if missing, update if a tracked field changed, else leave alone."""
        tally.total += 1
        now = self.clock()
        try:
            existing = await collection.find_by_id(record_id)
            if existing is None:
                await collection.upsert_by_id(
                    record_id, {**document, "createdAt": now, "lastScraped": now}
                )
                tally.new += 1
                logger.debug("record_created", category=tally.category, id=record_id)
            elif has_changes(existing, document, TRACKED_FIELDS.get(tally.category)):
                await collection.upsert_by_id(record_id, {**document, "lastScraped": now})
                tally.updated += 1
                logger.debug("record_updated", category=tally.category, id=record_id)
        except Exception as e:
            error = e if isinstance(e, PersistenceError) else PersistenceError(str(e))
            logger.error("persist_failed", category=tally.category, id=record_id, error=str(error))
            tally.errors.append(f"{tally.category} {record_id}: {error}")

    async def _persist_news(
        self,
        articles: list[ScrapedNewsArticle],
        collection: DocumentCollection,
        tally: RunTally,
    ) -> None:
        cutoff = self.news_cutoff()
        seen: set[str] = set()

        for article in articles:
            if article.published_at < cutoff:
                logger.debug("article_too_old", title=article.title[:60], published_at=article.published_at.isoformat())
                continue

            article_id = generate_content_id(article.title, article.published_at)
            if article_id in seen:
                continue
            seen.add(article_id)

            await self._upsert(collection, article_id, article.to_document(), tally)

    async def _persist_events(
        self,
        events: list[ScrapedEvent],
        collection: DocumentCollection,
        tally: RunTally,
    ) -> None:
        seen: set[str] = set()

        for event in events:
            event_id = generate_content_id(event.title, event.date)
            if event_id in seen:
                continue
            seen.add(event_id)

            await self._upsert(collection, event_id, event.to_document(), tally)

    async def load_snapshot(self, collection: DocumentCollection) -> list[ExistingEntity]:
        """Read persisted businesses for duplicate comparison."""
        documents = await collection.find_all()
        return [
            ExistingEntity(id=d["id"], name=d.get("name", ""), address=d.get("address", ""))
            for d in documents
            if d.get("id")
        ]

    async def _persist_businesses(
        self,
        businesses: list[ScrapedBusiness],
        collection: DocumentCollection,
        tally: RunTally,
    ) -> None:
        if not businesses:
            return

        try:
            snapshot = await self.load_snapshot(collection)
        except Exception as e:
            logger.error("snapshot_failed", error=str(e))
            tally.errors.append(f"businesses snapshot: {e}")
            return

        batch: list[ScrapedBusiness] = []
        for business in businesses:
            match = self.resolver.find_duplicate(business, batch, snapshot)
            if match and match.origin == "batch":
                logger.debug("batch_duplicate", name=business.name, address=business.address)
                continue

            batch.append(business)
            if match:
                business_id = match.existing_id
                logger.debug("matched_existing", name=business.name, id=business_id)
            else:
                business_id = generate_business_id(business.name, business.address)

            await self._upsert(collection, business_id, business.to_document(), tally)
