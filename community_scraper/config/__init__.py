"""
Configuration module.

Provides:
- YAML config loading with validation
- Run settings and source definitions
- Heuristic keyword data and thresholds
- Environment variable substitution
"""

from .loader import (
    ConfigLoader,
    ScraperSettings,
    SourceConfig,
    load_settings,
    load_sources,
)
from .heuristics import (
    CategoryRule,
    Heuristics,
    RuleSet,
    default_heuristics,
    load_heuristics,
)

__all__ = [
    "ConfigLoader",
    "ScraperSettings",
    "SourceConfig",
    "load_settings",
    "load_sources",
    "CategoryRule",
    "Heuristics",
    "RuleSet",
    "default_heuristics",
    "load_heuristics",
]
