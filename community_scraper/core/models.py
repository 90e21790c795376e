"""
Data models for the community scraper.

Scraped records are plain dataclasses; ``to_document()`` produces the
camelCase document handed to the persistence collaborator.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Optional


class ContentType(str, Enum):
    """Kind of record, also the store collection name."""
    BUSINESSES = "businesses"
    NEWS = "news"
    EVENTS = "events"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class ScrapedBusiness:
    """Business listing recovered from a directory row."""

    name: str
    address: str
    source_url: str
    contact: str = ""
    phone: Optional[str] = None
    website: Optional[str] = None
    category: Optional[str] = None

    def to_document(self) -> dict:
        return {
            "name": self.name.strip(),
            "address": self.address.strip(),
            "contact": self.contact or "",
            "phone": self.phone or "",
            "website": self.website or "",
            "category": self.category or "other",
            "sourceUrl": self.source_url,
        }


@dataclass
class ScrapedNewsArticle:
    """News article extracted from a detail page."""

    title: str
    summary: str
    category: str
    published_at: datetime
    source_url: str
    source_name: str
    content: Optional[str] = None
    author: Optional[str] = None
    image_url: Optional[str] = None
    tags: list[str] = field(default_factory=list)

    def to_document(self) -> dict:
        return {
            "title": self.title,
            "summary": self.summary,
            "content": self.content,
            "category": self.category,
            "author": self.author,
            "publishedAt": self.published_at,
            "imageUrl": self.image_url,
            "sourceUrl": self.source_url,
            "sourceName": self.source_name,
            "tags": list(self.tags),
        }


@dataclass
class ScrapedEvent:
    """Calendar event."""

    title: str
    description: str
    date: datetime
    time: str
    location: str
    category: str
    organizer: str
    end_date: Optional[datetime] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    website: Optional[str] = None
    image_url: Optional[str] = None
    price: Optional[float] = None
    source_url: Optional[str] = None
    source_name: Optional[str] = None

    def to_document(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "date": self.date,
            "endDate": self.end_date,
            "time": self.time,
            "location": self.location,
            "category": self.category,
            "organizer": self.organizer,
            "contactEmail": self.contact_email,
            "contactPhone": self.contact_phone,
            "website": self.website,
            "imageUrl": self.image_url,
            "price": self.price or 0,
            "sourceUrl": self.source_url,
            "sourceName": self.source_name,
        }


@dataclass(frozen=True)
class ExistingEntity:
    """Persisted business as seen by the duplicate resolver."""
    id: str
    name: str
    address: str


@dataclass(frozen=True)
class RunResult:
    """Outcome of one category run. Immutable once returned."""

    category: str
    total: int = 0
    new: int = 0
    updated: int = 0
    deleted: int = 0
    errors: tuple[str, ...] = ()
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        data = asdict(self)
        data["errors"] = list(self.errors)
        data["durationMs"] = data.pop("duration_ms")
        return data


@dataclass
class RunTally:
    """Mutable counters accumulated while a category runs."""

    category: str
    total: int = 0
    new: int = 0
    updated: int = 0
    deleted: int = 0
    errors: list[str] = field(default_factory=list)

    def freeze(self, duration_ms: int) -> RunResult:
        return RunResult(
            category=self.category,
            total=self.total,
            new=self.new,
            updated=self.updated,
            deleted=self.deleted,
            errors=tuple(self.errors),
            duration_ms=duration_ms,
        )


@dataclass(frozen=True)
class RunSummary:
    """Combined result of a full run across categories."""

    results: dict[str, RunResult]
    duration_ms: int
    started_at: datetime

    @property
    def total(self) -> int:
        return sum(r.total for r in self.results.values())

    @property
    def new(self) -> int:
        return sum(r.new for r in self.results.values())

    @property
    def updated(self) -> int:
        return sum(r.updated for r in self.results.values())

    @property
    def deleted(self) -> int:
        return sum(r.deleted for r in self.results.values())

    @property
    def errors(self) -> list[str]:
        return [e for r in self.results.values() for e in r.errors]

    def to_dict(self) -> dict:
        return {
            "startedAt": _isoformat(self.started_at),
            "results": {k: v.to_dict() for k, v in self.results.items()},
            "summary": {
                "totalItems": self.total,
                "totalNew": self.new,
                "totalUpdated": self.updated,
                "totalDeleted": self.deleted,
                "totalErrors": len(self.errors),
                "durationMs": self.duration_ms,
            },
        }
