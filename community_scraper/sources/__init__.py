"""
Source scrapers.

Each scraper turns one configured website into candidate records:
- NewsSiteScraper: listing -> article detail pages
- CivicCalendarScraper: municipal calendar headings
- JsonLdCalendarScraper: schema.org Event blocks
- BusinessDirectoryScraper: directory row blobs
"""

from .base import SourceScraper
from .business_directory import BusinessDirectoryScraper
from .civic_calendar import CivicCalendarScraper
from .jsonld_calendar import JsonLdCalendarScraper
from .news_site import NewsSiteScraper

__all__ = [
    "SourceScraper",
    "BusinessDirectoryScraper",
    "CivicCalendarScraper",
    "JsonLdCalendarScraper",
    "NewsSiteScraper",
]
