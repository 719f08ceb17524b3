"""Fuzzy matching for field names and highlights."""

from query_autocomplete.search.fuzzy import FuzzyMatch, FuzzyMatcher
from query_autocomplete.search.ngram import FieldCandidate, NGramIndex, NGramMatch, count_ngrams

__all__ = [
    "FuzzyMatch",
    "FuzzyMatcher",
    "FieldCandidate",
    "NGramIndex",
    "NGramMatch",
    "count_ngrams",
]
