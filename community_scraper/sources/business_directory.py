"""
Municipal business directory scraper.

The directory renders every listing as a ``.listItemsRow`` element whose
text is an unstructured blob; ``parse_business_entry`` does the heavy
lifting.
"""

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from ..core.business_parser import parse_business_entry
from ..core.models import ContentType, ScrapedBusiness
from ..errors import FetchError, ParseError, ValidationError
from .base import SourceScraper

ROW_SELECTOR = ".listItemsRow, .alt.listItemsRow"
MIN_ROW_LENGTH = 20


def show_all_url(url: str) -> str:
    """Ask the directory for every listing on a single page."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "ysnShowAll"]
    query.append(("ysnShowAll", "1"))
    return urlunsplit(parts._replace(query=urlencode(query)))


class BusinessDirectoryScraper(SourceScraper):
    """Scraper for the city business directory."""

    content_type = ContentType.BUSINESSES

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.row_selector = self.source.metadata.get("row_selector", ROW_SELECTOR)

    async def scrape(self) -> list[ScrapedBusiness]:
        businesses: list[ScrapedBusiness] = []

        for listing_url in self.source.listing_urls:
            url = show_all_url(listing_url)
            try:
                soup = await self.http_client.fetch(url)
            except FetchError as e:
                self.record_error(f"directory fetch failed: {e}", url=url)
                continue
            businesses.extend(self.parse_directory(soup, listing_url))

        self.logger.info("source_scraped", businesses=len(businesses), errors=len(self.errors))
        return businesses

    def parse_directory(self, soup: BeautifulSoup, source_url: str) -> list[ScrapedBusiness]:
        rows = soup.select(self.row_selector)
        self.logger.debug("directory_rows", count=len(rows))

        businesses = []
        for row in rows:
            text = row.get_text(" ", strip=True)
            if len(text) <= MIN_ROW_LENGTH or self.heuristics.city not in text:
                continue

            try:
                business = parse_business_entry(text, source_url, self.heuristics)
            except (ParseError, ValidationError) as e:
                self.logger.info("row_dropped", reason=str(e), text=text[:80])
                continue

            business.category = self.classifier.classify(business.name)
            businesses.append(business)

        return businesses
