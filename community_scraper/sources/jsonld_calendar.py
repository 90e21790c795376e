"""
Calendar scraper for pages that publish schema.org Event data as JSON-LD.
"""

import json
from typing import Iterator, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from ..core.models import ContentType, ScrapedEvent
from ..core.normalizer import extract_email, extract_phone, normalize_whitespace, to_utc
from ..core.selectors import resolve_url
from ..errors import FetchError
from .base import SourceScraper

JSONLD_SELECTOR = 'script[type="application/ld+json"]'


def iter_jsonld_nodes(soup: BeautifulSoup) -> Iterator[dict]:
    """Yield every JSON-LD object on the page, flattening lists and @graph."""
    for script in soup.select(JSONLD_SELECTOR):
        raw = script.string or script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except ValueError:
            continue

        stack = data if isinstance(data, list) else [data]
        for node in stack:
            if not isinstance(node, dict):
                continue
            if isinstance(node.get("@graph"), list):
                yield from (n for n in node["@graph"] if isinstance(n, dict))
            else:
                yield node


def is_event(node: dict) -> bool:
    types = node.get("@type")
    if isinstance(types, list):
        return "Event" in types
    return types == "Event"


def event_location(node: dict) -> str:
    """Place name plus street address when present."""
    location = node.get("location")
    if isinstance(location, list):
        location = next(
            (item for item in location if isinstance(item, dict) and item.get("@type") == "Place"),
            None,
        )
    if isinstance(location, str):
        return normalize_whitespace(location)
    if not isinstance(location, dict):
        return ""

    name = normalize_whitespace(location.get("name", ""))
    address = location.get("address")
    street = address.get("streetAddress", "") if isinstance(address, dict) else address or ""
    street = normalize_whitespace(street)
    if street and street not in name:
        return f"{name}, {street}" if name else street
    return name


def event_time(start: str, value) -> str:
    """"3:00 PM" for timed events, "All Day" for date-only ones."""
    if "T" not in start:
        return "All Day"
    return value.strftime("%I:%M %p").lstrip("0")


def event_image(node: dict) -> Optional[str]:
    image = node.get("image")
    if isinstance(image, list):
        image = image[0] if image else None
    if isinstance(image, dict):
        image = image.get("url")
    return image or None


def plain_text(value: str) -> str:
    if "<" in value and ">" in value:
        value = BeautifulSoup(value, "lxml").get_text(" ")
    return normalize_whitespace(value)


class JsonLdCalendarScraper(SourceScraper):
    """Scraper for event calendars exposing structured data."""

    content_type = ContentType.EVENTS

    async def scrape(self) -> list[ScrapedEvent]:
        events: list[ScrapedEvent] = []

        for listing_url in self.source.listing_urls:
            try:
                soup = await self.http_client.fetch(listing_url)
            except FetchError as e:
                self.record_error(f"calendar fetch failed: {e}", url=listing_url)
                continue
            events.extend(self.parse_events(soup, listing_url))

        self.logger.info("source_scraped", events=len(events), errors=len(self.errors))
        return events

    def parse_events(self, soup: BeautifulSoup, listing_url: str) -> list[ScrapedEvent]:
        """Extract future events from the page's JSON-LD blocks."""
        now = self.clock()
        events = []

        for node in iter_jsonld_nodes(soup):
            if not is_event(node):
                continue
            start = node.get("startDate")
            title = normalize_whitespace(node.get("name", ""))
            if not start or not title:
                continue

            try:
                parsed = date_parser.isoparse(start)
            except ValueError:
                self.record_error(f"unparseable startDate {start!r}", title=title)
                continue
            date = to_utc(parsed)
            if date <= now:
                continue

            end_date = None
            if node.get("endDate"):
                try:
                    end_date = to_utc(date_parser.isoparse(node["endDate"]))
                except ValueError:
                    self.logger.debug("bad_end_date", title=title, value=node["endDate"])

            description = plain_text(node.get("description") or "") or title
            organizer = node.get("organizer")
            if isinstance(organizer, dict):
                organizer = organizer.get("name")

            url = node.get("url")
            events.append(ScrapedEvent(
                title=title,
                description=description,
                date=date,
                end_date=end_date,
                time=event_time(start, parsed),
                location=event_location(node) or f"{self.heuristics.city}, {self.heuristics.province}",
                category=self.classifier.classify(title, description),
                organizer=self.source.organizer or organizer or self.source.source_name,
                contact_email=extract_email(description),
                contact_phone=extract_phone(description),
                website=resolve_url(url, listing_url) if url else None,
                image_url=event_image(node),
                source_url=listing_url,
                source_name=self.source.source_name,
            ))

        return events
