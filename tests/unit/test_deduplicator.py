"""Tests for deduplicator functionality."""

import itertools

import pytest

from community_scraper.core.deduplicator import (
    DuplicateResolver,
    addresses_similar,
    bigram_similarity,
    canonical_address,
    names_equal,
)
from community_scraper.core.models import ExistingEntity, ScrapedBusiness

SOURCE_URL = "https://www.wetaskiwin.ca/businessdirectoryii.aspx"


def business(name, address):
    return ScrapedBusiness(name=name, address=address, source_url=SOURCE_URL)


RECORDS = [
    business("Tim Hortons", "123 Main St, Wetaskiwin, AB T9A1A1"),
    business("Tim Hortons Inc.", "123 Main Street, Wetaskiwin AB T9A 1A1"),
    business("Tim Hortons", "456 Main St, Wetaskiwin, AB T9A1A1"),
    business("Joe's Pizza", "4910 50 Ave, Wetaskiwin, AB"),
    business("Joes Pizza", "4910 50 Avenue Wetaskiwin Alberta"),
    business("", ""),
]


class TestAddressesSimilar:
    """Tests for addresses_similar function."""

    def test_synonyms_and_postal_spacing(self):
        assert addresses_similar(
            "123 Main St, Wetaskiwin, AB T9A1A1",
            "123 Main Street, Wetaskiwin AB T9A 1A1",
        )

    def test_leading_number_mismatch(self):
        assert not addresses_similar(
            "123 Main St, Wetaskiwin, AB T9A1A1",
            "456 Main St, Wetaskiwin, AB T9A1A1",
        )

    def test_number_on_one_side_only(self):
        assert not addresses_similar("123 Main St, Wetaskiwin", "Main St, Wetaskiwin")

    def test_both_without_number(self):
        assert addresses_similar("Box 123, Wetaskiwin, AB", "Box 123 Wetaskiwin AB")

    def test_different_streets(self):
        assert not addresses_similar("123 Main St, Wetaskiwin", "123 Railway Ave, Camrose")

    def test_threshold_knob(self):
        a, b = "10 Main St, Wetaskiwin", "10 Main St, Millet"
        assert not addresses_similar(a, b, threshold=0.95)
        assert addresses_similar(a, b, threshold=0.3)


class TestSimilarityHelpers:
    """Tests for canonicalization and bigram overlap."""

    def test_canonical_address(self):
        assert canonical_address("4910 50 Avenue, Wetaskiwin, Alberta T9A 0S5") == [
            "4910", "50", "ave", "wetaskiwin", "ab", "t9a0s5",
        ]

    @pytest.mark.parametrize("a,b", [("main st", "main street"), ("abc", "xyz"), ("", "x")])
    def test_bigram_symmetric(self, a, b):
        assert bigram_similarity(a, b) == bigram_similarity(b, a)

    def test_bigram_identical(self):
        assert bigram_similarity("main st", "main st") == 1.0

    def test_names_equal(self):
        assert names_equal("Tim Hortons Inc.", "TIM HORTONS")
        assert not names_equal("Tim Hortons", "Tim's Hortons")
        assert not names_equal("", "")


class TestDuplicateResolver:
    """Tests for DuplicateResolver."""

    @pytest.fixture
    def resolver(self, heuristics):
        return DuplicateResolver(heuristics)

    def test_symmetric_for_all_pairs(self, resolver):
        for a, b in itertools.product(RECORDS, repeat=2):
            assert resolver.is_duplicate(a, [b]) == resolver.is_duplicate(b, [a])

    def test_batch_checked_before_snapshot(self, resolver):
        candidate = RECORDS[1]
        snapshot = [ExistingEntity(id="tim-hortons-123", name="Tim Hortons", address="123 Main St, Wetaskiwin")]

        match = resolver.find_duplicate(candidate, [RECORDS[0]], snapshot)

        assert match.origin == "batch"

    def test_snapshot_match_returns_existing_id(self, resolver):
        snapshot = [ExistingEntity(id="legacy-id-7", name="Tim Hortons", address="123 Main Street Wetaskiwin AB T9A 1A1")]

        match = resolver.find_duplicate(RECORDS[0], [], snapshot)

        assert match is not None
        assert match.origin == "snapshot"
        assert match.existing_id == "legacy-id-7"

    def test_no_match(self, resolver):
        assert resolver.find_duplicate(RECORDS[2], [RECORDS[3]], []) is None

    def test_candidate_not_matched_against_itself(self, resolver):
        assert resolver.find_duplicate(RECORDS[0], [RECORDS[0]]) is None

    def test_threshold_from_heuristics(self, heuristics):
        assert DuplicateResolver(heuristics).threshold == heuristics.address_similarity_threshold
        assert DuplicateResolver(heuristics, threshold=0.5).threshold == 0.5
