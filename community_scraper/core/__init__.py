"""
Core layer - stable foundation for the scraping pipeline.

Components:
- models: ScrapedBusiness, ScrapedNewsArticle, ScrapedEvent, RunResult
- http_client: Polite, retrying HTTP client
- cache: TTL response cache service
- selectors: Locator cascades, body and summary extraction
- normalizer: Date, time and text normalization
- classifier: Keyword rule category classification
- business_parser: Directory blob splitting
- identity: Deterministic ids and name normalization
- deduplicator: Fuzzy name and address duplicate detection
"""

from .models import (
    ContentType,
    ExistingEntity,
    RunResult,
    RunSummary,
    ScrapedBusiness,
    ScrapedEvent,
    ScrapedNewsArticle,
)
from .normalizer import DateResult, combine_date_time, normalize_date, parse_url_date
from .classifier import CategoryClassifier
from .business_parser import parse_business_entry
from .identity import generate_business_id, generate_content_id, normalize_name
from .deduplicator import DuplicateResolver, addresses_similar, names_equal

__all__ = [
    "ContentType",
    "ExistingEntity",
    "RunResult",
    "RunSummary",
    "ScrapedBusiness",
    "ScrapedEvent",
    "ScrapedNewsArticle",
    "DateResult",
    "combine_date_time",
    "normalize_date",
    "parse_url_date",
    "CategoryClassifier",
    "parse_business_entry",
    "generate_business_id",
    "generate_content_id",
    "normalize_name",
    "DuplicateResolver",
    "addresses_similar",
    "names_equal",
]
