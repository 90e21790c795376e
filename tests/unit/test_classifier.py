"""Tests for keyword category classification."""

import pytest

from community_scraper.config.heuristics import CategoryRule
from community_scraper.core.classifier import CategoryClassifier


class TestNewsClassifier:
    """News rules: title first, then content, then local-news."""

    @pytest.fixture
    def classifier(self, heuristics):
        return CategoryClassifier.for_content_type("news", heuristics)

    def test_title_rule_wins(self, classifier):
        assert classifier.classify("Sharks win hockey final", "The council met on Tuesday") == "sports"

    def test_content_rule(self, classifier):
        assert classifier.classify("Budget approved", "The mayor said the council voted 5-2") == "city-council"

    def test_required_term(self, classifier):
        assert classifier.classify("Alberta reports surplus") == "city-council"
        assert classifier.classify("Bake sale surplus donated") == "local-news"

    def test_excluded_term(self, classifier):
        assert classifier.classify("Local gala", "Business owners attended the sports awards") == "local-news"

    def test_rule_order(self, classifier):
        # education is checked before city-council
        assert classifier.classify("New school opens", "The mayor cut the ribbon") == "education"

    def test_default(self, classifier):
        assert classifier.classify("Something happened", "") == "local-news"


class TestEventAndBusinessClassifier:
    """Event and business rule sets."""

    def test_event_categories(self, heuristics):
        classifier = CategoryClassifier.for_content_type("events", heuristics)

        assert classifier.classify("Summer Concert in the Park") == "music"
        assert classifier.classify("Kids Swim Day") == "family"
        assert classifier.classify("Quiet Evening", "") == "community"

    def test_business_categories(self, heuristics):
        classifier = CategoryClassifier.for_content_type("businesses", heuristics)

        assert classifier.classify("Joe's Pizza") == "restaurant"
        assert classifier.classify("Johnson Auto Repair") == "automotive"
        assert classifier.classify("Acme Widgets") == "other"

    def test_unknown_content_type(self, heuristics):
        with pytest.raises(KeyError):
            CategoryClassifier.for_content_type("recipes", heuristics)


class TestCustomRules:
    """Rules supplied directly rather than from YAML."""

    def test_custom_rules(self):
        classifier = CategoryClassifier(
            title_rules=[CategoryRule("alerts", ("warning",))],
            content_rules=[CategoryRule("roads", ("closure",), excludes=("parade",))],
            default="misc",
        )

        assert classifier.classify("Storm warning") == "alerts"
        assert classifier.classify("Update", "Road closure on 50 St") == "roads"
        assert classifier.classify("Update", "Road closure for the parade") == "misc"
