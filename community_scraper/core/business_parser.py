"""
Business directory blob parser.

Directory rows arrive as one run of text where the business name, the
contact person, the address, the phone number and the website are glued
together. Fields are peeled off most specific first: website, phone,
address; what is left is split into name and contact.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import structlog

from ..config.heuristics import Heuristics, default_heuristics
from ..errors import ParseError, ValidationError
from .models import ScrapedBusiness

logger = structlog.get_logger(__name__)


BOILERPLATE_PATTERNS = [
    re.compile(r"<!--.*?-->", re.DOTALL),
    re.compile(r"<[^>]+>"),
    re.compile(r"\bView Map\b", re.IGNORECASE),
    re.compile(r"\(?Opens in new window\)?", re.IGNORECASE),
    re.compile(r"window\.[\w.]+\s*=\s*[^;]*;"),
    re.compile(r"Email:\s*\S+@\S+"),
    re.compile(r"\S+@\S+\.[A-Za-z]{2,}"),
    re.compile(r"Fax:\s*\(?\d{3}\)?[\s.,-]*\d{3}[\s.,-]*\d{4}"),
    re.compile(r"\b(?:Email|Fax|Facebook|Twitter|Instagram):?"),
]

WEBSITE_PATTERNS = [
    re.compile(r"Link:\s*((?:https?://|www\.)\S+?)(?=Phone:|\s|$)", re.IGNORECASE),
    re.compile(r"(https?://\S+?)(?=Phone:|\s|$)", re.IGNORECASE),
    re.compile(r"(?<![\w.@/])(www\.\S+?)(?=Phone:|\s|$)", re.IGNORECASE),
]

PHONE_LABELED = re.compile(r"Phone:\s*\(?(\d{3})\)?[\s.,-]*(\d{3})[\s.,-]*(\d{4})(?!\d)", re.IGNORECASE)
PHONE_BARE = re.compile(r"(?<!\d)\(?(\d{3})\)?[\s.-](\d{3})[\s.-](\d{4})(?!\d)")
BARE_PHONE_NAME = re.compile(r"^\d{3}-\d{3}-\d{4}$")

POSTAL = r"[A-Z]\d[A-Z]\s?\d[A-Z]\d"
UNIT = r"(?:(?:#|Unit\s*|Suite\s*)\d+[A-Za-z]?\s*[,-]?\s*)?"
DIRECTION = r"(?:\s+(?:NE|NW|SE|SW|N|S|E|W)\b)?"


@dataclass(frozen=True)
class AddressPatterns:
    """Compiled address regexes, most specific first."""
    full: re.Pattern
    no_postal: re.Pattern
    concatenated: re.Pattern
    po_box: re.Pattern
    rural_route: re.Pattern
    last_resort: re.Pattern
    glued_city: re.Pattern
    street_start: re.Pattern

    def ordered(self) -> list[tuple[str, re.Pattern]]:
        return [
            ("full", self.full),
            ("no_postal", self.no_postal),
            ("concatenated", self.concatenated),
            ("po_box", self.po_box),
            ("rural_route", self.rural_route),
            ("last_resort", self.last_resort),
        ]


@lru_cache(maxsize=8)
def _build_address_patterns(
    city: str,
    province: str,
    province_name: str,
    street_types: tuple[str, ...],
) -> AddressPatterns:
    types = "|".join(re.escape(t) for t in sorted(street_types, key=len, reverse=True))
    city_re = re.escape(city)
    prov = f"(?:{re.escape(province)}|{re.escape(province_name)})"
    locality = rf"[\s,]*{city_re}[\s,]*{prov}\b"
    street = rf"\d+[A-Za-z]?\s+(?:[\w.'-]+\s+){{0,4}}?(?:{types})\b\.?{DIRECTION}"
    optional_tail = rf"(?:[\s,]*{city_re})?(?:[\s,]*{prov}\b)?(?:[\s,]*{POSTAL})?"

    return AddressPatterns(
        full=re.compile(rf"(?<![\w-]){UNIT}{street}{locality}[\s,]*{POSTAL}", re.IGNORECASE),
        no_postal=re.compile(rf"(?<![\w-]){UNIT}{street}{locality}", re.IGNORECASE),
        concatenated=re.compile(
            rf"\d{{3,5}}\s*(?:[\w.'-]+?\s*){{0,4}}?(?:{types})\.?\s*,?\s*{city_re}\s*,?\s*{prov}"
            rf"(?:\s*,?\s*{POSTAL})?",
            re.IGNORECASE,
        ),
        # A Box right after "Site 5" or "RR 2," belongs to the rural route
        po_box=re.compile(rf"(?<![A-Za-z])(?<!\d\s)(?<!\d,)(?<!\d,\s)(?:P\.?\s?O\.?\s*)?Box\s*\d+{optional_tail}"),
        rural_route=re.compile(
            rf"(?<![A-Za-z])(?:RR|R\.R\.|Rural Route)\s*#?\s*\d+"
            rf"(?:[\s,]*(?:Site|Stn|Comp|Box)\s*\d+)*{optional_tail}"
        ),
        last_resort=re.compile(
            rf"(?:#?\d[\w.'#-]*(?:\s+[\w.'-]+){{0,3}}[\s,]+)?{city_re}[\s,]*{prov}\b(?:[\s,]*{POSTAL})?",
            re.IGNORECASE,
        ),
        glued_city=re.compile(rf"\b({types})\.?(?={city_re})", re.IGNORECASE),
        street_start=re.compile(rf"\d+[A-Za-z]?(?:\s*-)?\s+(?:\d+(?:st|nd|rd|th)?\b|(?:{types})\b)", re.IGNORECASE),
    )


def address_patterns(heuristics: Heuristics) -> AddressPatterns:
    return _build_address_patterns(
        heuristics.city,
        heuristics.province,
        heuristics.province_name,
        heuristics.street_types,
    )


def _remove_span(text: str, match: re.Match) -> str:
    return f"{text[:match.start()]} {text[match.end():]}"


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def strip_boilerplate(text: str) -> str:
    """Remove map links, markup remnants, script fragments and contact labels."""
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub(" ", text)
    return _squash(text.replace("\u00a0", " "))


def normalize_website(url: str) -> str:
    """Force https and drop trailing punctuation, keeping any path."""
    url = url.strip().rstrip(".,;:)]'\"")
    if url.lower().startswith("http://"):
        url = "https://" + url[len("http://"):]
    elif url.lower().startswith("www."):
        url = "https://" + url
    return url


def extract_website(text: str) -> tuple[Optional[str], str]:
    """Return (website, remaining text)."""
    for pattern in WEBSITE_PATTERNS:
        match = pattern.search(text)
        if match:
            return normalize_website(match.group(1)), _squash(_remove_span(text, match))
    return None, text


def extract_phone_number(text: str) -> tuple[Optional[str], str]:
    """Return (phone as 780-555-1234, remaining text)."""
    for pattern in (PHONE_LABELED, PHONE_BARE):
        match = pattern.search(text)
        if match:
            return "-".join(match.groups()), _squash(_remove_span(text, match))
    return None, text


def clean_address(address: str, patterns: AddressPatterns) -> str:
    """Repair glued street type and city, whitespace and comma runs."""
    address = address.replace("??", " ")
    address = patterns.glued_city.sub(r"\1 ", address)
    address = _squash(address)
    address = re.sub(r"\s+,", ",", address)
    address = re.sub(r",\s*,+", ",", address)
    return address.strip(" ,-")


NUMBER_START = re.compile(r"(?<![\w-])\d")


def _anchor_street_number(
    text: str,
    match: re.Match,
    pattern: re.Pattern,
    street_start: re.Pattern,
) -> re.Match:
    """
    Move a street match forward past digits that belong to the name.

    "Highway 2 Motors 4910 50 Ave" first matches at "2"; the later
    "4910 50" is followed by a numbered street and is preferred.
    """
    start = match.start()
    if not text[start].isdigit() or street_start.match(text, start):
        return match

    for number in NUMBER_START.finditer(text, start + 1, match.end()):
        if not street_start.match(text, number.start()):
            continue
        anchored = pattern.match(text, number.start())
        if anchored:
            return anchored
    return match


def extract_address(text: str, heuristics: Heuristics) -> tuple[Optional[str], str, Optional[str]]:
    """
    Return (address, remaining text, pattern name).

    Patterns run most to least specific; the first match wins.
    """
    patterns = address_patterns(heuristics)
    for name, pattern in patterns.ordered():
        match = pattern.search(text)
        if match and name in ("full", "no_postal"):
            match = _anchor_street_number(text, match, pattern, patterns.street_start)
        if match and match.group(0).strip():
            address = clean_address(match.group(0), patterns)
            return address, _squash(_remove_span(text, match)), name
    return None, text, None


def repair_word_boundaries(text: str, heuristics: Heuristics) -> str:
    """
    Re-insert spaces lost when markup was stripped.

    "Auto ServiceGary" -> "Auto Service Gary" and
    "Joe's PlumbingGary Smith" -> "Joe's Plumbing Gary Smith".
    """
    for keyword in heuristics.business_keywords:
        text = re.sub(rf"({re.escape(keyword)})(?=[A-Z][a-z])", r"\1 ", text)
    text = re.sub(r"([a-z])(?<!Mc)(?<!Mac)([A-Z][a-z]+\s+(?:Mc|Mac)?[A-Z][a-z]+)$", r"\1 \2", text)
    return _squash(text)


def _is_business_word(word: str, keywords: frozenset[str]) -> bool:
    return word.lower().rstrip(".") in keywords


def split_name_contact(text: str, heuristics: Heuristics) -> tuple[str, str]:
    """
    Split residue into (business name, contact person).

    First tries "<... business keyword> <1-2 capitalized words>" for each
    keyword in order, accepting the split only when no contact word is
    itself a business keyword. Falls back to the last 1-2 capitalized
    words that are not business words; with require_known_first_name set
    they must also start with a known first name.
    """
    text = _squash(text).strip(" ,-|")
    if not text:
        return "", ""

    keywords = frozenset(k.lower() for k in heuristics.business_keywords)
    contact_re = r"([A-Z][a-z]+(?:\s+(?:Mc|Mac)?[A-Z][a-z]+)?)"

    for keyword in heuristics.business_keywords:
        pattern = rf"^(.+?\b(?i:{re.escape(keyword)})\b\.?)\s+{contact_re}$"
        match = re.match(pattern, text)
        if not match:
            continue
        contact = match.group(2)
        if any(_is_business_word(w, keywords) for w in contact.split()):
            continue
        return match.group(1).strip(" ,.;:-"), contact

    words = text.split()
    for n in (2, 1):
        if len(words) <= n:
            continue
        tail = words[-n:]
        if not all(re.fullmatch(r"(?:Mc|Mac)?[A-Z][a-z]+", w) for w in tail):
            continue
        if any(_is_business_word(w, keywords) for w in tail):
            continue
        if heuristics.require_known_first_name and tail[0] not in heuristics.first_names:
            continue
        name = " ".join(words[:-n]).strip(" ,.;:-")
        if name:
            return name, " ".join(tail)

    return text, ""


def validate_business_name(name: str, heuristics: Heuristics) -> None:
    """
    Raise ValidationError for names that cannot be a business.

    Rejects empty, letterless, bare-phone, URL or email like, too short
    or too long names and known placeholders.
    """
    if not name:
        raise ValidationError("Business name is empty")
    if not re.search(r"[A-Za-z]", name):
        raise ValidationError(f"Business name has no letters: {name!r}")
    if BARE_PHONE_NAME.match(name):
        raise ValidationError(f"Business name is a phone number: {name!r}")
    if "Phone:" in name or "@" in name or name.lower().startswith("www."):
        raise ValidationError(f"Business name looks like contact data: {name!r}")
    if len(name) < heuristics.min_name_length or len(name) > heuristics.max_name_length:
        raise ValidationError(f"Business name length out of range: {len(name)}")
    if name.lower().strip() in heuristics.placeholder_names:
        raise ValidationError(f"Business name is a placeholder: {name!r}")


def parse_business_entry(
    text: str,
    source_url: str,
    heuristics: Optional[Heuristics] = None,
) -> ScrapedBusiness:
    """
    Parse one directory blob into a ScrapedBusiness.

    Args:
        text: Raw row text
        source_url: Directory page URL
        heuristics: Keyword data (defaults to the packaged heuristics)

    Returns:
        ScrapedBusiness without a category

    Raises:
        ParseError: No address could be found
        ValidationError: The remaining name is not a plausible business
    """
    heuristics = heuristics or default_heuristics()

    blob = strip_boilerplate(text or "")
    if not blob:
        raise ParseError("Empty directory entry")

    website, blob = extract_website(blob)
    phone, blob = extract_phone_number(blob)
    address, residue, pattern_name = extract_address(blob, heuristics)

    if not address:
        raise ParseError(f"No address found in entry: {blob[:80]!r}")

    residue = repair_word_boundaries(residue, heuristics)
    name, contact = split_name_contact(residue, heuristics)
    validate_business_name(name, heuristics)

    logger.debug(
        "business_parsed",
        name=name,
        contact=contact,
        address=address,
        address_pattern=pattern_name,
        has_phone=phone is not None,
        has_website=website is not None,
    )

    return ScrapedBusiness(
        name=name,
        address=address,
        source_url=source_url,
        contact=contact,
        phone=phone,
        website=website,
    )
