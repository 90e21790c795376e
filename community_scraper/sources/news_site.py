"""
News site scraper.

Listing pages -> article links -> detail pages. Everything site specific
(listing URLs, link filters, locators, title suffixes, URL category
overrides) comes from the source definition.
"""

from typing import Optional

from bs4 import BeautifulSoup

from ..core.models import ContentType, ScrapedNewsArticle
from ..core.normalizer import normalize_date, normalize_whitespace, parse_url_date
from ..core.selectors import (
    BoilerplateFilter,
    FieldLocators,
    cleanup_navigation,
    discover_links,
    extract_body,
    extract_field,
    extract_summary,
    extract_tags,
    is_valid_article,
    resolve_url,
)
from ..errors import FetchError, ParseError, ValidationError
from .base import SourceScraper


class NewsSiteScraper(SourceScraper):
    """Scraper for article based news sites."""

    content_type = ContentType.NEWS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.locators = FieldLocators.from_dict(self.source.locators)
        self.boilerplate = BoilerplateFilter.from_heuristics(self.heuristics)

    async def scrape(self) -> list[ScrapedNewsArticle]:
        articles: list[ScrapedNewsArticle] = []
        visited: set[str] = set()

        for listing_url in self.source.listing_urls:
            try:
                soup = await self.http_client.fetch(listing_url)
            except FetchError as e:
                self.record_error(f"listing fetch failed: {e}", url=listing_url)
                continue

            links = discover_links(
                soup,
                self.source.base_url,
                link_selector=self.source.link_selector,
                include_patterns=self.source.include_patterns,
                exclude_patterns=self.source.exclude_patterns,
                limit=self.source.limit_for(listing_url),
            )
            self.logger.info("listing_scanned", url=listing_url, links=len(links))

            for url in links:
                if url in visited:
                    continue
                visited.add(url)

                article = await self.scrape_article(url)
                if article:
                    articles.append(article)

        self.logger.info("source_scraped", articles=len(articles), errors=len(self.errors))
        return articles

    async def scrape_article(self, url: str) -> Optional[ScrapedNewsArticle]:
        """Fetch and parse one article. Failures are recorded, not raised."""
        try:
            soup = await self.http_client.fetch(url)
        except FetchError as e:
            self.record_error(f"article fetch failed: {e}", url=url)
            return None

        try:
            return self.parse_article(soup, url)
        except (ParseError, ValidationError) as e:
            self.logger.info("article_dropped", url=url, reason=str(e))
            return None

    def _clean_title(self, title: str) -> str:
        suffix = self.source.title_suffix
        if suffix and title.endswith(suffix):
            title = title[: -len(suffix)]
        return normalize_whitespace(title)

    def _category(self, title: str, body: str, url: str) -> str:
        category = self.classifier.classify(title, body)
        # URL sections override content keywords; later entries win
        for fragment, override in self.source.url_categories.items():
            if fragment in url:
                category = override
        return category

    def parse_article(self, soup: BeautifulSoup, url: str) -> ScrapedNewsArticle:
        """
        Extract an article from a parsed detail page.

        Raises:
            ParseError: No title
            ValidationError: Section page, short body or sponsored content
        """
        now = self.clock()

        title = extract_field(soup, self.locators.title)
        if not title:
            raise ParseError("No title found")
        title = self._clean_title(title)

        date_text = extract_field(soup, self.locators.date)
        date_result = normalize_date(date_text, now)
        published_at = date_result.value
        if date_result.degraded:
            published_at = parse_url_date(url) or published_at

        author = extract_field(soup, self.locators.author)
        if author:
            author = normalize_whitespace(author.removeprefix("By ").removeprefix("by "))

        image = extract_field(soup, self.locators.image)
        image_url = resolve_url(image, self.source.base_url) if image else None

        tags = extract_tags(soup, self.locators.tags)

        cleanup_navigation(soup)
        body = extract_body(soup, self.locators.body, self.boilerplate)

        if not is_valid_article(
            title,
            body,
            self.source.invalid_title_patterns,
            self.heuristics.sponsored_markers,
        ):
            raise ValidationError(f"Invalid article: {title[:60]!r}")

        summary = extract_summary(soup, self.locators.summary, body) or title

        return ScrapedNewsArticle(
            title=title,
            summary=summary,
            category=self._category(title, body, url),
            published_at=published_at,
            source_url=url,
            source_name=self.source.source_name,
            content=body,
            author=author or None,
            image_url=image_url,
            tags=tags,
        )
