"""
Locator cascades and content extraction helpers.

A locator is a CSS selector, optionally suffixed with ``@attribute``:
``"h1"`` takes element text, ``"meta[property='og:title']@content"``
takes an attribute. Fields are extracted by trying locators in order.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional, Union
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

import structlog

from .normalizer import normalize_whitespace, truncate

logger = structlog.get_logger(__name__)


# Common selectors for finding main content
MAIN_SELECTORS = [
    "article",
    "main",
    ".article-content",
    ".entry-content",
    ".post-content",
    ".story-content",
    ".main-content",
    "#content",
    ".content",
]

DEFAULT_LOCATORS = {
    "title": ["h1", ".article-title", ".headline", "meta[property='og:title']@content", "title"],
    "body": [
        ".article-content p",
        ".entry-content p",
        ".post-content p",
        ".story-content p",
        "article p",
        ".content p",
        "main p",
    ],
    "summary": [
        ".excerpt",
        ".summary",
        ".post-excerpt",
        ".entry-summary",
        "meta[name='description']@content",
        "meta[property='og:description']@content",
    ],
    "date": [
        "time[datetime]@datetime",
        ".published-date",
        ".article-date",
        ".post-date",
        ".entry-date",
        ".date",
        "meta[property='article:published_time']@content",
    ],
    "author": [".author-name", ".author", ".byline", ".article-author", ".post-author", "meta[name='author']@content"],
    "image": [
        ".article-image img@src",
        ".featured-image img@src",
        "article img@src",
        "article img@data-src",
        "meta[property='og:image']@content",
    ],
    "tags": [".tags a", ".post-tags a", ".entry-tags a", ".categories a"],
}

# Everything after these markers is page chrome, not article text
TRAILING_SECTION_MARKERS = ["More News", "YOUR VOTE MATTERS", "TODAY IN ALBERTA"]

MIN_PARAGRAPH_LENGTH = 20
SUMMARY_LENGTH = 250


@dataclass
class FieldLocators:
    """Ordered locator lists per article field."""

    title: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["title"]))
    body: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["body"]))
    summary: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["summary"]))
    date: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["date"]))
    author: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["author"]))
    image: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["image"]))
    tags: list[str] = field(default_factory=lambda: list(DEFAULT_LOCATORS["tags"]))

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FieldLocators":
        """Override defaults per field; unknown fields raise ValueError."""
        data = data or {}
        known = set(DEFAULT_LOCATORS)
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown locator fields: {sorted(unknown)}")
        return cls(**{name: list(values) for name, values in data.items()})


def split_locator(locator: str) -> tuple[str, Optional[str]]:
    """Split ``"css@attr"`` into (css, attr)."""
    if "@" in locator:
        css, attr = locator.rsplit("@", 1)
        return css.strip(), attr.strip() or None
    return locator.strip(), None


def _element_value(element: Tag, attr: Optional[str]) -> str:
    if attr:
        value = element.get(attr)
        if isinstance(value, list):
            value = " ".join(value)
        return (value or "").strip()
    return normalize_whitespace(element.get_text(" ", strip=True))


def select_value(soup: Union[BeautifulSoup, Tag], locator: str) -> Optional[str]:
    """Value of the first element matching a locator, or None."""
    css, attr = split_locator(locator)
    for element in soup.select(css):
        value = _element_value(element, attr)
        if value:
            return value
    return None


def select_values(soup: Union[BeautifulSoup, Tag], locator: str) -> list[str]:
    """Non-empty values of every element matching a locator."""
    css, attr = split_locator(locator)
    values = []
    for element in soup.select(css):
        value = _element_value(element, attr)
        if value:
            values.append(value)
    return values


def extract_field(soup: Union[BeautifulSoup, Tag], locators: Iterable[str]) -> Optional[str]:
    """
    Try locators in order, return the first non-empty value.

    Args:
        soup: Parsed HTML
        locators: Ordered locator list

    Returns:
        Extracted value or None
    """
    for locator in locators:
        value = select_value(soup, locator)
        if value:
            return value
    return None


def extract_tags(soup: Union[BeautifulSoup, Tag], locators: Iterable[str]) -> list[str]:
    """Collect unique tag labels across all tag locators."""
    tags: list[str] = []
    for locator in locators:
        for value in select_values(soup, locator):
            if value not in tags:
                tags.append(value)
    return tags


class BoilerplateFilter:
    """
    Substring and regex denylist for paragraph-level junk.

    Matches ads, subscription prompts, related-content teasers and
    leaked script fragments.
    """

    def __init__(self, substrings: Iterable[str] = (), patterns: Iterable[str] = ()):
        self.substrings = tuple(substrings)
        self.patterns = tuple(re.compile(p, re.IGNORECASE) for p in patterns)

    @classmethod
    def from_heuristics(cls, heuristics) -> "BoilerplateFilter":
        return cls(heuristics.boilerplate_substrings, heuristics.boilerplate_patterns)

    def is_boilerplate(self, text: str) -> bool:
        if any(s in text for s in self.substrings):
            return True
        return any(p.search(text) for p in self.patterns)


def cut_trailing_sections(text: str, markers: Iterable[str] = TRAILING_SECTION_MARKERS) -> str:
    """Drop everything from the first trailing-section marker onward."""
    for marker in markers:
        index = text.find(marker)
        if index != -1:
            text = text[:index]
    return text


def get_main_container(soup: BeautifulSoup) -> Union[BeautifulSoup, Tag]:
    """
    Find the main content container in the page.

    Tries selectors from MAIN_SELECTORS in order.

    Args:
        soup: Parsed HTML

    Returns:
        Main container element or body/soup fallback
    """
    for selector in MAIN_SELECTORS:
        container = soup.select_one(selector)
        if container:
            return container
    return soup.body or soup


def cleanup_navigation(soup: BeautifulSoup) -> None:
    """
    Remove navigation, footer, scripts from soup.

    Modifies soup in place.
    """
    for elem in soup.select(
        "nav, footer, script, style, header, aside, .sidebar, .menu, .navigation, "
        ".social-share, .ads, .advertisement, .comments"
    ):
        elem.decompose()


def extract_body(
    soup: BeautifulSoup,
    locators: Iterable[str],
    boilerplate: BoilerplateFilter,
    min_paragraph: int = MIN_PARAGRAPH_LENGTH,
) -> str:
    """
    Concatenate paragraph text from the first productive locator.

    Paragraphs shorter than ``min_paragraph`` or matching the boilerplate
    denylist are dropped. Falls back to the main container text with
    trailing sections removed.
    """
    for locator in locators:
        paragraphs = [
            text for text in select_values(soup, locator)
            if len(text) >= min_paragraph and not boilerplate.is_boilerplate(text)
        ]
        body = " ".join(paragraphs)
        if len(body) > 50:
            return body

    container = get_main_container(soup)
    text = cut_trailing_sections(container.get_text("\n", strip=True))
    lines = [
        line for line in text.split("\n")
        if line.strip() and not boilerplate.is_boilerplate(line)
    ]
    return normalize_whitespace(" ".join(lines))


def extract_summary(
    soup: Union[BeautifulSoup, Tag],
    locators: Iterable[str],
    body: str,
    limit: int = SUMMARY_LENGTH,
) -> str:
    """
    Summary from explicit locators, else the leading part of the body.

    Explicit summaries shorter than 20 characters are ignored.
    """
    for locator in locators:
        value = select_value(soup, locator)
        if value and len(value) > 20:
            return truncate(value, limit)
    return truncate(body, limit) if body else ""


def is_valid_article(
    title: Optional[str],
    body: Optional[str],
    invalid_title_patterns: Iterable[str] = (),
    sponsored_markers: Iterable[str] = (),
) -> bool:
    """
    Minimal validity for an extracted article.

    Title present, body longer than 50 characters, title not a section or
    navigation heading, no sponsorship disclosure in the body.
    """
    if not title or not body or len(body) <= 50:
        return False
    if any(re.search(p, title, re.IGNORECASE) for p in invalid_title_patterns):
        return False
    body_lower = body.lower()
    return not any(marker in body_lower for marker in sponsored_markers)


def resolve_url(href: str, base_url: str) -> str:
    """Resolve a possibly relative or protocol-relative link."""
    if not href:
        return ""
    href = href.strip()
    if href.startswith("//"):
        return f"https:{href}"
    return urljoin(base_url.rstrip("/") + "/", href)


def discover_links(
    soup: BeautifulSoup,
    base_url: str,
    link_selector: str = "a[href]",
    include_patterns: Iterable[str] = (),
    exclude_patterns: Iterable[str] = (),
    limit: Optional[int] = None,
) -> list[str]:
    """
    Collect detail page links from a listing page.

    Links are resolved against base_url, kept on the same host, filtered
    by include (any) and exclude (none) regexes, de-duplicated in page
    order and capped at ``limit``.
    """
    include = [re.compile(p, re.IGNORECASE) for p in include_patterns]
    exclude = [re.compile(p, re.IGNORECASE) for p in exclude_patterns]
    host = urlparse(base_url).netloc.removeprefix("www.")

    links: list[str] = []
    seen: set[str] = set()

    for anchor in soup.select(link_selector):
        href = anchor.get("href")
        if not href or href.startswith(("#", "mailto:", "tel:", "javascript:")):
            continue

        url = resolve_url(href, base_url).split("#")[0]
        if urlparse(url).netloc.removeprefix("www.") != host:
            continue
        if include and not any(p.search(url) for p in include):
            continue
        if any(p.search(url) for p in exclude):
            continue
        if url in seen:
            continue

        seen.add(url)
        links.append(url)
        if limit is not None and len(links) >= limit:
            break

    logger.debug("links_discovered", base_url=base_url, count=len(links))
    return links
