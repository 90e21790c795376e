"""
Deterministic record identifiers.

Ids must be stable across runs so that upserts hit the same document.
"""

import hashlib
import re
from datetime import datetime
from typing import Iterable, Optional

from .normalizer import to_utc

LEGAL_SUFFIXES = (
    "ltd", "inc", "corp", "co", "llc",
    "limited", "incorporated", "corporation", "company",
)

NAME_ID_LENGTH = 50
BUSINESS_ID_LENGTH = 80
SLUG_LENGTH = 80

STREET_NUMBER_PATTERN = re.compile(r"^#?(\d+[a-z]?)\b", re.IGNORECASE)


def normalize_name(name: Optional[str], legal_suffixes: Iterable[str] = LEGAL_SUFFIXES) -> str:
    """
    Canonical form of a business name for comparison and ids.

    Lowercases, replaces punctuation with spaces, drops legal suffix words
    and collapses whitespace. A name made only of suffix words keeps them.
    Idempotent.
    """
    if not name:
        return ""
    tokens = re.sub(r"[^a-z0-9]+", " ", name.lower()).split()
    suffixes = set(legal_suffixes)
    kept = [t for t in tokens if t not in suffixes]
    return " ".join(kept or tokens)


def slugify(text: Optional[str], limit: int = SLUG_LENGTH) -> str:
    """Lowercase hyphenated slug, truncated without a trailing hyphen."""
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug[:limit].rstrip("-")


def street_number(address: Optional[str]) -> Optional[str]:
    """Leading street number token of an address (e.g. "4910", "12a")."""
    if not address:
        return None
    match = STREET_NUMBER_PATTERN.match(address.strip())
    return match.group(1).lower() if match else None


def generate_business_id(name: str, address: Optional[str] = None) -> str:
    """
    Stable id from business name and street number.

    Examples:
        >>> generate_business_id("Tim Hortons Inc.", "123 Main St, Wetaskiwin, AB")
        'tim-hortons-123'
    """
    base = slugify(normalize_name(name), NAME_ID_LENGTH)
    number = street_number(address)
    business_id = f"{base}-{number}" if number else base
    business_id = re.sub(r"-{2,}", "-", business_id).strip("-")
    return business_id[:BUSINESS_ID_LENGTH].rstrip("-")


def generate_content_id(title: str, when: datetime) -> str:
    """
    Stable id for articles and events: title slug plus UTC date.

    Titles with no letters or digits use a short hash of the title instead.
    """
    day = to_utc(when).date().isoformat()
    slug = slugify(title) or hashlib.sha256((title or "").encode("utf-8")).hexdigest()[:12]
    return f"{slug}-{day}"
