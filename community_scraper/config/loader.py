"""
YAML configuration loader with validation.

Loads run settings and source definitions from YAML files with:
- Environment variable substitution
- Required field validation
- Default values
"""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml
import structlog

logger = structlog.get_logger(__name__)

CONFIG_DIR = Path(__file__).parent

CLEANUP_PHASES = ("before", "after")


def substitute_env_vars(text: str) -> str:
    """
    Substitute environment variables in text.

    Supports formats:
    - ${VAR_NAME} - required, warning and empty string if missing
    - ${VAR_NAME:-default} - optional with default

    Args:
        text: Text with env var placeholders

    Returns:
        Text with substituted values
    """
    def replace(match):
        var_expr = match.group(1)
        if ":-" in var_expr:
            var_name, default = var_expr.split(":-", 1)
            return os.getenv(var_name, default)
        value = os.getenv(var_expr)
        if value is None:
            logger.warning("env_var_not_set", var=var_expr)
            return ""
        return value

    return re.sub(r"\$\{([^}]+)\}", replace, text)


def read_yaml(filepath: Path) -> dict:
    """Read a YAML file after environment substitution."""
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    logger.debug("loading_config", file=str(filepath))

    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()

    return yaml.safe_load(substitute_env_vars(content)) or {}


@dataclass
class ScraperSettings:
    """Run-level knobs for fetching, retention and persistence."""

    # Politeness delay before every request, seconds
    min_delay: float = 0.2
    max_delay: float = 0.6

    # Retry policy
    max_attempts: int = 4
    backoff_base: float = 0.5
    backoff_jitter: float = 0.3
    timeout: float = 30.0

    # Response cache
    enable_cache: bool = False
    cache_ttl: int = 300
    cache_cleanup_interval: float = 60.0

    # Retention
    news_retention_days: int = 14
    cleanup_phase: str = "before"

    # Persistence
    store_path: str = "data/store.json"

    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    def __post_init__(self):
        if self.cleanup_phase not in CLEANUP_PHASES:
            raise ValueError(
                f"cleanup_phase must be one of {CLEANUP_PHASES}, got {self.cleanup_phase!r}"
            )
        if self.min_delay > self.max_delay:
            raise ValueError("min_delay must not exceed max_delay")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    @classmethod
    def from_dict(cls, data: dict) -> "ScraperSettings":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning("unknown_settings", keys=sorted(unknown))
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class SourceConfig:
    """Configuration for one scraped website."""

    source_id: str
    source_name: str
    kind: str  # registry key: news_site, civic_calendar, jsonld_calendar, business_directory
    category: str  # businesses, news, events
    base_url: str

    # Discovery settings
    listing_urls: list[str] = field(default_factory=list)
    listing_limits: dict[str, int] = field(default_factory=dict)
    link_selector: str = "a[href]"
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
    max_links_per_listing: int = 10

    # Extraction settings
    locators: dict[str, list[str]] = field(default_factory=dict)
    invalid_title_patterns: list[str] = field(default_factory=list)
    title_suffix: Optional[str] = None
    url_categories: dict[str, str] = field(default_factory=dict)
    organizer: Optional[str] = None

    enabled: bool = True

    # Extra kind-specific settings
    metadata: dict = field(default_factory=dict)

    REQUIRED = ("source_id", "source_name", "kind", "category", "base_url")

    @classmethod
    def from_dict(cls, data: dict) -> "SourceConfig":
        """
        Create from dictionary (e.g., from YAML).

        Raises:
            ValueError: If required fields are missing
        """
        for name in cls.REQUIRED:
            if not data.get(name):
                raise ValueError(f"Missing required field: {name}")

        base_url = data["base_url"].rstrip("/")

        # Listings are plain URLs or {url, limit} mappings
        listing_urls = []
        listing_limits = {}
        for entry in data.get("listing_urls") or [base_url]:
            if isinstance(entry, dict):
                if not entry.get("url"):
                    raise ValueError("Listing entry without url")
                listing_urls.append(entry["url"])
                if entry.get("limit") is not None:
                    listing_limits[entry["url"]] = int(entry["limit"])
            else:
                listing_urls.append(entry)

        return cls(
            source_id=data["source_id"],
            source_name=data["source_name"],
            kind=data["kind"],
            category=data["category"],
            base_url=base_url,
            listing_urls=listing_urls,
            listing_limits=listing_limits,
            link_selector=data.get("link_selector", "a[href]"),
            include_patterns=list(data.get("include_patterns", [])),
            exclude_patterns=list(data.get("exclude_patterns", [])),
            max_links_per_listing=data.get("max_links_per_listing", 10),
            locators=dict(data.get("locators", {})),
            invalid_title_patterns=list(data.get("invalid_title_patterns", [])),
            title_suffix=data.get("title_suffix"),
            url_categories=dict(data.get("url_categories", {})),
            organizer=data.get("organizer"),
            enabled=data.get("enabled", True),
            metadata=dict(data.get("metadata", {})),
        )

    def limit_for(self, listing_url: str) -> int:
        """Maximum detail links to follow from one listing page."""
        return self.listing_limits.get(listing_url, self.max_links_per_listing)


class ConfigLoader:
    """
    Configuration loader for settings and sources.

    Loads YAML config files and validates against expected schema.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_dir: Directory containing config files
                       (defaults to package config directory)
        """
        self.config_dir = Path(config_dir) if config_dir else CONFIG_DIR

    def load_file(self, filename: str) -> dict:
        """Load YAML config file relative to config_dir."""
        return read_yaml(self.config_dir / filename)

    def load_settings(self, filename: str = "settings.yml") -> ScraperSettings:
        """Load run settings."""
        config = self.load_file(filename)
        return ScraperSettings.from_dict(config.get("settings", {}))

    def load_sources(self, filename: str = "sources.yml") -> list[SourceConfig]:
        """
        Load source definitions from YAML.

        Invalid entries are logged and skipped.
        """
        config = self.load_file(filename)

        sources = []
        for source_data in config.get("sources", []):
            try:
                source = SourceConfig.from_dict(source_data)
            except ValueError as e:
                logger.error(
                    "source_load_failed",
                    source=source_data.get("source_id", "unknown"),
                    error=str(e),
                )
                continue

            if not source.enabled:
                logger.info("source_disabled", source_id=source.source_id)
                continue

            sources.append(source)
            logger.debug("source_loaded", source_id=source.source_id)

        return sources


def _split_path(config_path: Optional[str]) -> tuple[ConfigLoader, Optional[str]]:
    if not config_path:
        return ConfigLoader(), None
    path = Path(config_path)
    return ConfigLoader(str(path.parent)), path.name


def load_sources(config_path: Optional[str] = None) -> list[SourceConfig]:
    """
    Convenience function to load source configs.

    Args:
        config_path: Optional path to sources.yml
    """
    loader, filename = _split_path(config_path)
    return loader.load_sources(filename) if filename else loader.load_sources()


def load_settings(config_path: Optional[str] = None) -> ScraperSettings:
    """
    Convenience function to load run settings.

    Args:
        config_path: Optional path to settings.yml
    """
    loader, filename = _split_path(config_path)
    return loader.load_settings(filename) if filename else loader.load_settings()
