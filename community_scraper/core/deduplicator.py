"""
Business deduplication using fuzzy name and address matching.

Two records are duplicates when their normalized names are equal and
their addresses are similar: same leading street number (or both without
one) and a character bigram overlap at or above the threshold. Every
comparison here is symmetric.
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Protocol, Sequence

import structlog

from ..config.heuristics import Heuristics, default_heuristics
from .identity import LEGAL_SUFFIXES, generate_business_id, normalize_name

logger = structlog.get_logger(__name__)

DEFAULT_THRESHOLD = 0.80

DEFAULT_SYNONYMS = {
    "street": "st",
    "avenue": "ave",
    "av": "ave",
    "road": "rd",
    "drive": "dr",
    "boulevard": "blvd",
    "crescent": "cres",
    "court": "ct",
    "place": "pl",
    "lane": "ln",
    "highway": "hwy",
    "alberta": "ab",
}

POSTAL_CODE_PATTERN = re.compile(r"\b([a-z]\d[a-z])\s?(\d[a-z]\d)\b")
NUMBER_TOKEN_PATTERN = re.compile(r"^\d+[a-z]?$")


class NamedAddress(Protocol):
    name: str
    address: str


def canonical_address(address: Optional[str], synonyms: Mapping[str, str] = DEFAULT_SYNONYMS) -> list[str]:
    """
    Tokenize an address into a canonical comparable form.

    Lowercases, joins postal codes, strips punctuation and maps street
    type synonyms ("Street" -> "st").
    """
    text = POSTAL_CODE_PATTERN.sub(r"\1\2", (address or "").lower())
    tokens = re.sub(r"[^a-z0-9]+", " ", text).split()
    return [synonyms.get(t, t) for t in tokens]


def split_street_number(tokens: Sequence[str]) -> tuple[Optional[str], list[str]]:
    """Separate the leading street number token from the rest."""
    if tokens and NUMBER_TOKEN_PATTERN.match(tokens[0]):
        return tokens[0], list(tokens[1:])
    return None, list(tokens)


def _bigrams(text: str) -> Counter:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def bigram_similarity(a: str, b: str) -> float:
    """
    Dice coefficient over character bigrams (spaces ignored).

    Symmetric by construction; 1.0 for two empty strings.
    """
    a = a.replace(" ", "")
    b = b.replace(" ", "")
    if a == b:
        return 1.0
    grams_a, grams_b = _bigrams(a), _bigrams(b)
    total = sum(grams_a.values()) + sum(grams_b.values())
    if total == 0:
        return 0.0
    overlap = sum((grams_a & grams_b).values())
    return 2.0 * overlap / total


def names_equal(a: Optional[str], b: Optional[str], legal_suffixes: Iterable[str] = LEGAL_SUFFIXES) -> bool:
    """Compare names after normalization. Empty names never match."""
    norm_a = normalize_name(a, legal_suffixes)
    norm_b = normalize_name(b, legal_suffixes)
    return bool(norm_a) and norm_a == norm_b


def addresses_similar(
    a: Optional[str],
    b: Optional[str],
    threshold: float = DEFAULT_THRESHOLD,
    synonyms: Mapping[str, str] = DEFAULT_SYNONYMS,
) -> bool:
    """
    Fuzzy address comparison.

    Leading street numbers must match exactly or both be absent; the
    remaining text must reach ``threshold`` bigram similarity.
    """
    number_a, rest_a = split_street_number(canonical_address(a, synonyms))
    number_b, rest_b = split_street_number(canonical_address(b, synonyms))

    if number_a != number_b:
        return False

    return bigram_similarity(" ".join(rest_a), " ".join(rest_b)) >= threshold


@dataclass(frozen=True)
class DuplicateMatch:
    """Result of a duplicate lookup."""
    origin: str  # batch or snapshot
    name: str
    address: str
    existing_id: Optional[str] = None


class DuplicateResolver:
    """
    Finds duplicates of a candidate business.

    The persisted snapshot is passed explicitly on every call; the
    resolver holds only its configuration.
    """

    def __init__(self, heuristics: Optional[Heuristics] = None, threshold: Optional[float] = None):
        self.heuristics = heuristics or default_heuristics()
        self.threshold = threshold if threshold is not None else self.heuristics.address_similarity_threshold
        self.synonyms = self.heuristics.address_synonyms or DEFAULT_SYNONYMS
        self.legal_suffixes = self.heuristics.legal_suffixes or LEGAL_SUFFIXES

    def names_equal(self, a: str, b: str) -> bool:
        return names_equal(a, b, self.legal_suffixes)

    def addresses_similar(self, a: str, b: str) -> bool:
        return addresses_similar(a, b, self.threshold, self.synonyms)

    def records_match(self, a: NamedAddress, b: NamedAddress) -> bool:
        """Name equality and address similarity, both symmetric."""
        return self.names_equal(a.name, b.name) and self.addresses_similar(a.address, b.address)

    def find_duplicate(
        self,
        candidate: NamedAddress,
        batch: Iterable[NamedAddress] = (),
        snapshot: Iterable = (),
    ) -> Optional[DuplicateMatch]:
        """
        Look for a duplicate, first in the current batch, then in the snapshot.

        Args:
            candidate: Business being checked
            batch: Businesses already accepted in this run
            snapshot: ExistingEntity records read from the store

        Returns:
            DuplicateMatch or None
        """
        for other in batch:
            if other is candidate:
                continue
            if self.records_match(candidate, other):
                logger.debug("duplicate_in_batch", name=candidate.name, address=candidate.address)
                return DuplicateMatch(
                    origin="batch",
                    name=other.name,
                    address=other.address,
                    existing_id=generate_business_id(other.name, other.address),
                )

        for entity in snapshot:
            if self.records_match(candidate, entity):
                logger.debug(
                    "duplicate_in_store",
                    name=candidate.name,
                    existing_id=entity.id,
                )
                return DuplicateMatch(
                    origin="snapshot",
                    name=entity.name,
                    address=entity.address,
                    existing_id=entity.id,
                )

        return None

    def is_duplicate(
        self,
        candidate: NamedAddress,
        batch: Iterable[NamedAddress] = (),
        snapshot: Iterable = (),
    ) -> bool:
        return self.find_duplicate(candidate, batch, snapshot) is not None
