"""
Trigram TF-IDF index for fuzzy field name lookup.

SCORE(candidate, query) = SUM over trigrams t of the query of
    weight(t in query) * tf(t in candidate) * idf(t)
idf(t) = ln((1 + N) / (1 + number of candidates containing t))

Query trigrams missing from the index still count towards the best possible
score with weight max_idf = ln(1 + N), so poor matches are penalized.
"""

import math
from collections import Counter
from typing import Any, Dict, Generic, Iterable, List, Mapping, Sequence, TypeVar

from pydantic import BaseModel, Field

N = 3

T = TypeVar("T")


def count_ngrams(terms: Iterable[str], n: int = N) -> Dict[str, int]:
    """
    Count n-grams of each term independently (no windows across terms).
    """
    counts: Counter = Counter()
    for term in terms:
        for i in range(len(term) - n + 1):
            counts[term[i:i + n]] += 1
    return dict(counts)


class FieldCandidate(BaseModel):
    """A candidate string and its lower-cased search terms."""

    text: str
    terms: List[str] = Field(default_factory=list)

    @classmethod
    def from_path(cls, text: str) -> "FieldCandidate":
        return cls(text=text, terms=text.lower().split("."))


class Posting(BaseModel):
    candidate: int  # index into NGramIndex.candidates
    tf: int


class NGramMatch(BaseModel):
    value: Any
    score: float


def _terms_of(candidate: Any) -> List[str]:
    if isinstance(candidate, Mapping):
        return candidate["terms"]
    return candidate.terms


class NGramIndex(Generic[T]):
    """
    Inverted trigram index over candidates exposing a `terms` list
    (attribute or mapping key).

    Stateless once built; cheap enough to build per search.
    """

    def __init__(self, candidates: Sequence[T]):
        self.candidates: List[T] = list(candidates)
        self.postings: Dict[str, List[Posting]] = {}
        self.idf: Dict[str, float] = {}

        for position, candidate in enumerate(self.candidates):
            for ngram, tf in count_ngrams(_terms_of(candidate)).items():
                self.postings.setdefault(ngram, []).append(Posting(candidate=position, tf=tf))

        total = len(self.candidates)
        for ngram, postings in self.postings.items():
            self.idf[ngram] = math.log((1 + total) / (1 + len(postings)))
        self.max_idf = math.log(1 + total)

    @classmethod
    def build(cls, candidates: Sequence[T]) -> "NGramIndex[T]":
        return cls(candidates)

    def search(self, terms: Iterable[str], cutoff: float = 0.5) -> List[NGramMatch]:
        """
        Score candidates against query terms.

        Args:
            terms: Lower-cased query terms
            cutoff: Fraction of the best achievable score a candidate must exceed

        Returns:
            Matches in index order, unsorted by score
        """
        scores: Dict[int, float] = {}
        good_match = 0.0

        for ngram, weight in count_ngrams(terms).items():
            postings = self.postings.get(ngram)
            idf = self.idf[ngram] if postings else self.max_idf
            good_match += weight * idf

            if not postings:
                continue

            for posting in postings:
                scores[posting.candidate] = scores.get(posting.candidate, 0.0) + weight * posting.tf * idf

        threshold = cutoff * good_match
        return [
            NGramMatch(value=self.candidates[position], score=score)
            for position, score in scores.items()
            if score > threshold
        ]


def index(values: Sequence[Any]) -> NGramIndex:
    """Build an index over values."""
    return NGramIndex(values)


def search(ngram_index: NGramIndex, terms: Iterable[str], cutoff: float = 0.5) -> List[NGramMatch]:
    """Search a built index."""
    return ngram_index.search(terms, cutoff)
