"""
Priority-ordered keyword classification.

Title rules are checked first against the title alone, then content rules
against title and body combined, then the default category applies. Rule
order comes from heuristics.yml and is significant.
"""

from typing import Iterable, Optional

import structlog

from ..config.heuristics import CategoryRule, Heuristics, RuleSet, default_heuristics

logger = structlog.get_logger(__name__)


class CategoryClassifier:
    """Maps text to a category using ordered keyword rules."""

    def __init__(
        self,
        title_rules: Iterable[CategoryRule],
        content_rules: Iterable[CategoryRule],
        default: str,
    ):
        self.title_rules = tuple(title_rules)
        self.content_rules = tuple(content_rules)
        self.default = default

    @classmethod
    def from_rule_set(cls, rules: RuleSet) -> "CategoryClassifier":
        return cls(rules.title_rules, rules.content_rules, rules.default)

    @classmethod
    def for_content_type(
        cls,
        content_type: str,
        heuristics: Optional[Heuristics] = None,
    ) -> "CategoryClassifier":
        """Classifier for "news", "events" or "businesses"."""
        heuristics = heuristics or default_heuristics()
        return cls.from_rule_set(heuristics.rules_for(content_type))

    def classify(self, title: str, body: str = "") -> str:
        """
        Return the category for a record.

        Args:
            title: Record title (or business name)
            body: Optional body text

        Returns:
            Category slug
        """
        title_text = (title or "").lower()
        for rule in self.title_rules:
            if rule.matches(title_text):
                return rule.category

        combined = f"{title_text} {(body or '').lower()}"
        for rule in self.content_rules:
            if rule.matches(combined):
                return rule.category

        return self.default
