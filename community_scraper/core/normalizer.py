"""
Normalization utilities for scraped community content.

Handles:
- Heterogeneous date strings (Published Jul 4, 2025 / 5 days ago / 07/04/2025 / ISO)
- Event times of day (3:00 PM)
- Dates embedded in article URLs
- Text cleanup, contact email and North American phone extraction
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from dateutil import parser as date_parser

logger = structlog.get_logger(__name__)


RELATIVE_UNITS = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
}

PUBLISHED_PATTERN = re.compile(r"Published\s+([A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4})")
MONTH_DAY_YEAR_PATTERN = re.compile(r"^[A-Za-z]{3,9}\.?\s+\d{1,2},\s+\d{4}$")
RELATIVE_PATTERN = re.compile(r"(\d+)\s+(minute|hour|day|week)s?\s+ago", re.IGNORECASE)
US_NUMERIC_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
URL_DATE_PATTERN = re.compile(r"/(\d{4})[-/](\d{2})[-/](\d{2})(?:[/-]|$)")
TIME_PATTERN = re.compile(r"(\d{1,2})(?::(\d{2}))?\s*([AaPp]\.?[Mm]\.?)?")


@dataclass(frozen=True)
class DateResult:
    """
    Outcome of date normalization.

    Attributes:
        value: Timezone-aware UTC datetime
        degraded: True when nothing parsed and ``value`` is the current time
        form: Which recognized form produced the value
    """
    value: datetime
    degraded: bool = False
    form: str = "unknown"


def to_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_literal(text: str) -> Optional[datetime]:
    try:
        return date_parser.parse(text)
    except (ValueError, OverflowError):
        return None


def normalize_date(text: Optional[str], now: Optional[datetime] = None) -> DateResult:
    """
    Convert a raw date-like string into an absolute UTC timestamp.

    Forms are tried in order:
    1. "Published Jul 04, 2025 • 4 minute read"
    2. "July 5, 2025"
    3. "5 days ago", "2 hours ago", "1 week ago"
    4. "07/04/2025" (month first)
    5. "2025-07-04" or a full ISO timestamp
    6. Generic dateutil parse

    Anything else yields the current time flagged as degraded.

    Args:
        text: Raw date string
        now: Reference time for relative forms and the fallback

    Returns:
        DateResult
    """
    now = to_utc(now) if now else utc_now()
    raw = (text or "").strip()

    if not raw:
        logger.warning("date_missing")
        return DateResult(value=now, degraded=True, form="fallback")

    # 1. Published prefix
    if "Published" in raw:
        match = PUBLISHED_PATTERN.search(raw)
        if match:
            parsed = _parse_literal(match.group(1))
            if parsed:
                return DateResult(value=to_utc(parsed), form="published")

    # 2. Month D, YYYY
    if MONTH_DAY_YEAR_PATTERN.match(raw):
        parsed = _parse_literal(raw)
        if parsed:
            return DateResult(value=to_utc(parsed), form="month_day_year")

    # 3. Relative
    match = RELATIVE_PATTERN.search(raw)
    if match:
        amount = int(match.group(1))
        unit = RELATIVE_UNITS[match.group(2).lower()]
        return DateResult(value=now - amount * unit, form="relative")

    # 4. MM/DD/YYYY
    match = US_NUMERIC_PATTERN.match(raw)
    if match:
        month, day, year = (int(g) for g in match.groups())
        try:
            return DateResult(value=datetime(year, month, day, tzinfo=timezone.utc), form="us_numeric")
        except ValueError as e:
            logger.warning("invalid_date", text=raw, error=str(e))

    # 5. ISO
    if ISO_PATTERN.match(raw):
        try:
            return DateResult(value=to_utc(date_parser.isoparse(raw)), form="iso")
        except (ValueError, OverflowError) as e:
            logger.debug("iso_parse_failed", text=raw, error=str(e))

    # 6. Generic
    parsed = _parse_literal(raw)
    if parsed:
        return DateResult(value=to_utc(parsed), form="generic")

    logger.warning("date_unparsed", text=raw)
    return DateResult(value=now, degraded=True, form="fallback")


def parse_url_date(url: str) -> Optional[datetime]:
    """
    Recover a publication date embedded in an article URL.

    Matches /2025-07-04/ and /2025/07/04/ path segments.
    """
    if not url:
        return None
    match = URL_DATE_PATTERN.search(url)
    if not match:
        return None
    year, month, day = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, tzinfo=timezone.utc)
    except ValueError:
        return None


def combine_date_time(date: datetime, time_text: Optional[str]) -> datetime:
    """
    Apply a time of day such as "3:00 PM" or "15:30" to a date.

    Unparseable times leave the date unchanged.
    """
    if not time_text:
        return date

    match = TIME_PATTERN.search(time_text)
    if not match:
        return date

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").replace(".", "").lower()

    if meridiem == "pm" and hour < 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        logger.debug("invalid_time", text=time_text)
        return date

    return date.replace(hour=hour, minute=minute, second=0, microsecond=0)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace and strip."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", text).strip()


def truncate(text: str, limit: int = 250) -> str:
    """Cut text to limit characters, adding an ellipsis when cut."""
    text = normalize_whitespace(text)
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def extract_email(text: str) -> Optional[str]:
    """
    Extract email address from text.

    Args:
        text: Text to search

    Returns:
        First found email or None
    """
    if not text:
        return None

    pattern = r"[\w\.-]+@[\w\.-]+\.\w+"
    match = re.search(pattern, text)
    return match.group(0) if match else None


def extract_phone(text: str) -> Optional[str]:
    """
    Extract a North American phone number, normalized to 780-555-1234.

    Args:
        text: Text to search

    Returns:
        First found phone number or None
    """
    if not text:
        return None

    match = re.search(r"(?<!\d)\(?(\d{3})\)?[\s.-]*(\d{3})[\s.-]*(\d{4})(?!\d)", text)
    if not match:
        return None
    return "-".join(match.groups())
