"""
Tunable heuristic data: classifier rules, business vocabulary, thresholds.

The keyword lists and the address similarity threshold are empirically
tuned, so they live in heuristics.yml rather than in control flow.
"""

from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

import structlog

from .loader import CONFIG_DIR, read_yaml

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CategoryRule:
    """
    Keyword rule mapping text to a category.

    Fires when any keyword is a substring of the text, every ``requires``
    term is present and no ``excludes`` term is present.
    """

    category: str
    keywords: tuple[str, ...]
    requires: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "CategoryRule":
        return cls(
            category=data["category"],
            keywords=tuple(k.lower() for k in data["keywords"]),
            requires=tuple(k.lower() for k in data.get("requires", [])),
            excludes=tuple(k.lower() for k in data.get("excludes", [])),
        )

    def matches(self, text: str) -> bool:
        """Check rule against already lowercased text."""
        if not any(k in text for k in self.keywords):
            return False
        if not all(r in text for r in self.requires):
            return False
        return not any(e in text for e in self.excludes)


@dataclass(frozen=True)
class RuleSet:
    """Title rules, content rules and the fallback category."""

    default: str
    title_rules: tuple[CategoryRule, ...] = ()
    content_rules: tuple[CategoryRule, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "RuleSet":
        return cls(
            default=data["default"],
            title_rules=tuple(CategoryRule.from_dict(r) for r in data.get("title_rules", [])),
            content_rules=tuple(CategoryRule.from_dict(r) for r in data.get("content_rules", [])),
        )


@dataclass(frozen=True)
class Heuristics:
    """All tunable knobs used by parsing, classification and dedup."""

    city: str
    province: str
    province_name: str
    street_types: tuple[str, ...]
    address_synonyms: dict[str, str]
    business_keywords: tuple[str, ...]
    legal_suffixes: tuple[str, ...]
    first_names: frozenset[str]
    placeholder_names: frozenset[str]
    require_known_first_name: bool = False
    address_similarity_threshold: float = 0.80
    min_name_length: int = 2
    max_name_length: int = 150
    boilerplate_substrings: tuple[str, ...] = ()
    boilerplate_patterns: tuple[str, ...] = ()
    sponsored_markers: tuple[str, ...] = ()
    categories: dict[str, RuleSet] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Heuristics":
        business = data.get("business", {})
        content = data.get("content", {})
        threshold = float(data.get("address_similarity_threshold", 0.80))
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"address_similarity_threshold out of range: {threshold}")

        return cls(
            city=data["city"],
            province=data["province"],
            province_name=data.get("province_name", data["province"]),
            street_types=tuple(data["street_types"]),
            address_synonyms={
                k.lower(): v.lower() for k, v in data.get("address_synonyms", {}).items()
            },
            business_keywords=tuple(business.get("keywords", [])),
            legal_suffixes=tuple(s.lower() for s in business.get("legal_suffixes", [])),
            first_names=frozenset(business.get("first_names", [])),
            placeholder_names=frozenset(p.lower() for p in business.get("placeholder_names", [])),
            require_known_first_name=bool(business.get("require_known_first_name", False)),
            address_similarity_threshold=threshold,
            min_name_length=business.get("min_name_length", 2),
            max_name_length=business.get("max_name_length", 150),
            boilerplate_substrings=tuple(content.get("boilerplate_substrings", [])),
            boilerplate_patterns=tuple(content.get("boilerplate_patterns", [])),
            sponsored_markers=tuple(m.lower() for m in content.get("sponsored_markers", [])),
            categories={
                name: RuleSet.from_dict(rules)
                for name, rules in data.get("categories", {}).items()
            },
        )

    def rules_for(self, content_type: str) -> RuleSet:
        """Return the classifier rule set for a content type."""
        try:
            return self.categories[content_type]
        except KeyError:
            raise KeyError(f"No category rules configured for {content_type!r}") from None


def load_heuristics(path: Optional[str] = None) -> Heuristics:
    """
    Load heuristics from YAML.

    Args:
        path: Optional path to heuristics.yml (defaults to the packaged file)
    """
    filepath = Path(path) if path else CONFIG_DIR / "heuristics.yml"
    heuristics = Heuristics.from_dict(read_yaml(filepath))
    logger.debug(
        "heuristics_loaded",
        file=str(filepath),
        business_keywords=len(heuristics.business_keywords),
        rule_sets=sorted(heuristics.categories),
    )
    return heuristics


@lru_cache(maxsize=1)
def default_heuristics() -> Heuristics:
    """Packaged heuristics, loaded once."""
    return load_heuristics()
