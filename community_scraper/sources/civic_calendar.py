"""
Municipal calendar scraper.

The calendar lists each event as an ``h3`` heading linking to the event
page, followed by sibling blocks with a line like::

    July 9, 2025, 3:00 PM - 6:00 PM @ Civic Centre

and a free text description.
"""

import re
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup, Tag
from dateutil import tz

from ..core.models import ContentType, ScrapedEvent
from ..core.normalizer import (
    combine_date_time,
    extract_email,
    extract_phone,
    normalize_date,
    normalize_whitespace,
    to_utc,
)
from ..core.selectors import resolve_url
from ..errors import FetchError
from .base import SourceScraper

UNICODE_SPACES = re.compile(r"[\u00a0\u1680\u2000-\u200a\u202f\u205f\u3000]")

DATE = r"[A-Za-z]+ \d{1,2}, \d{4}"
TIME = r"\d{1,2}:\d{2} [AP]M"

DATE_TIME_PATTERNS = [
    # July 26, 2025, 9:00 AM - July 27, 2025, 5:00 PM
    ("multi_day", re.compile(rf"({DATE}),\s*({TIME})\s*-\s*({DATE}),\s*{TIME}")),
    # July 9, 2025, 3:00 PM - 6:00 PM @ Location
    ("ranged", re.compile(rf"({DATE}),\s*({TIME})(?:\s*-\s*{TIME})?\s*@?\s*(.+)?")),
]

LOCATION_PATTERN = re.compile(r"@\s*(.+)$")
MORE_DETAILS = "More Details"


@dataclass
class CalendarEntry:
    """Raw fields recovered from one calendar heading block."""
    title: str
    href: str
    date_text: str = ""
    time_text: str = ""
    end_date_text: str = ""
    location: str = ""
    description: str = ""


def parse_entry(heading: Tag, link: Tag) -> Optional[CalendarEntry]:
    """Walk the siblings after a heading until the next heading."""
    title = normalize_whitespace(link.get_text(" ", strip=True))
    href = link.get("href")
    if not title or not href:
        return None

    entry = CalendarEntry(title=title, href=href)

    for sibling in heading.find_next_siblings():
        if sibling.name == "h3":
            break
        text = normalize_whitespace(UNICODE_SPACES.sub(" ", sibling.get_text(" ", strip=True)))
        if not text:
            continue

        match = form = None
        for form, pattern in DATE_TIME_PATTERNS:
            match = pattern.search(text)
            if match:
                break

        if match:
            entry.date_text, entry.time_text = match.group(1), match.group(2)
            if form == "multi_day":
                entry.end_date_text = match.group(3)

            location = LOCATION_PATTERN.search(text)
            if location:
                entry.location = location.group(1).strip()
            elif form == "ranged" and match.group(3) and not re.search(r"\b[AP]M\b", match.group(3)):
                entry.location = match.group(3).strip()

            following = sibling.find_next_sibling()
            if following is not None and following.name != "h3":
                description = normalize_whitespace(following.get_text(" ", strip=True))
                if len(description) > 10 and MORE_DETAILS not in description:
                    entry.description = description
            break

        if not entry.description and len(text) > 10 and MORE_DETAILS not in text:
            entry.description = text

    return entry


class CivicCalendarScraper(SourceScraper):
    """Scraper for the municipal events calendar."""

    content_type = ContentType.EVENTS

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.link_selector = self.source.metadata.get("event_link_selector", 'a[href*="Calendar.aspx"]')
        self.timezone = tz.gettz(self.source.metadata.get("timezone", "America/Edmonton"))
        self.default_location = self.source.metadata.get(
            "default_location", f"{self.heuristics.city}, {self.heuristics.province}"
        )

    async def scrape(self) -> list[ScrapedEvent]:
        events: list[ScrapedEvent] = []

        for listing_url in self.source.listing_urls:
            try:
                soup = await self.http_client.fetch(listing_url)
            except FetchError as e:
                self.record_error(f"calendar fetch failed: {e}", url=listing_url)
                continue
            events.extend(self.parse_calendar(soup, listing_url))

        self.logger.info("source_scraped", events=len(events), errors=len(self.errors))
        return events

    def _localize(self, date_text: str, time_text: str = ""):
        result = normalize_date(date_text, self.clock())
        if result.degraded:
            return None
        local = result.value.replace(tzinfo=self.timezone)
        return to_utc(combine_date_time(local, time_text))

    def parse_calendar(self, soup: BeautifulSoup, listing_url: str) -> list[ScrapedEvent]:
        """Extract future events from a calendar page."""
        now = self.clock()
        events = []

        for heading in soup.find_all("h3"):
            link = heading.select_one(self.link_selector)
            if link is None:
                continue

            entry = parse_entry(heading, link)
            if entry is None:
                continue
            if not entry.date_text or not entry.time_text:
                self.logger.debug("event_without_date", title=entry.title)
                continue

            date = self._localize(entry.date_text, entry.time_text)
            if date is None:
                self.record_error(f"unparseable event date {entry.date_text!r}", title=entry.title)
                continue
            if date <= now:
                continue

            description = entry.description or entry.title
            events.append(ScrapedEvent(
                title=entry.title,
                description=description,
                date=date,
                end_date=self._localize(entry.end_date_text) if entry.end_date_text else None,
                time=entry.time_text,
                location=entry.location or self.default_location,
                category=self.classifier.classify(entry.title, description),
                organizer=self.source.organizer or self.source.source_name,
                contact_email=extract_email(description),
                contact_phone=extract_phone(description),
                website=resolve_url(entry.href, self.source.base_url),
                source_url=listing_url,
                source_name=self.source.source_name,
            ))

        return events
