"""
Fuzzy text search with a cost-biased Levenshtein distance.

Matching is case-insensitive. Deleting a query character costs 1 and changing
one costs 1 unless it matches. Adding text characters is cheap: 0.01 before
the first query character, 0.1 between query characters and 0.0001 after the
whole query was consumed, so prefixes and substrings rank well.
"""

from typing import List, Sequence, Tuple

from pydantic import BaseModel, Field


class FuzzyMatch(BaseModel):
    """One search result."""

    text: str
    distance: float
    quality: float
    highlight: List[str] = Field(default_factory=list)  # odd indexes are highlighted


class _Matrix:
    """
    DP memory shared across candidates.

    cost[i][j] is the cheapest way to turn query[:i] into text[:j]; the three
    per-source tables keep each option so tied paths can be followed back.
    """

    def __init__(self, rows: int, columns: int, matcher: "FuzzyMatcher"):
        self.cost = [[0.0] * columns for _ in range(rows)]
        self.delete = [[0.0] * columns for _ in range(rows)]
        self.add = [[0.0] * columns for _ in range(rows)]
        self.change = [[0.0] * columns for _ in range(rows)]

        for i in range(rows):
            self.cost[i][0] = self.delete[i][0] = matcher.COST_DELETE * i
        for j in range(columns):
            self.cost[0][j] = self.add[0][j] = matcher.COST_ADD_BEFORE * j


class FuzzyMatcher:
    """
    Ranks texts against a query and highlights the matched characters.

    Usage:
        matches = FuzzyMatcher().search(["foo", "bar", "foobar"], "foo")
    """

    COST_ADD_BEFORE = 1e-2
    COST_ADD = 0.1
    COST_ADD_AFTER = 1e-4
    COST_DELETE = 1.0
    COST_CHANGE = 1.0

    def search(
        self,
        texts: Sequence[str],
        query: str,
        max_results: int = 7,
        min_quality: float = 0.8,
    ) -> List[FuzzyMatch]:
        """
        Find the texts closest to query.

        Args:
            texts: Candidate texts
            query: Search string
            max_results: Maximum number of results
            min_quality: Minimum 1 - distance / max(len(query), len(text))

        Returns:
            Matches ordered by distance, then text
        """
        # Sorted texts share longer prefixes with their predecessor
        texts = sorted(texts)
        if not texts:
            return []

        matrix = _Matrix(len(query) + 1, max(len(t) for t in texts) + 1, self)
        query_lower = query.lower()

        scored = []
        previous = ""
        for text in texts:
            shared = self._shared_prefix(previous, text)
            distance = self._fill(matrix, query_lower, text, shared)
            previous = text

            quality = self._quality(distance, query, text)
            if quality >= min_quality:
                scored.append((distance, text, quality))

        scored.sort(key=lambda item: (item[0], item[1]))

        results = []
        for distance, text, quality in scored[:max_results]:
            self._fill(matrix, query_lower, text, 0)
            results.append(
                FuzzyMatch(
                    text=text,
                    distance=distance,
                    quality=quality,
                    highlight=self._highlight(matrix, len(query), text),
                )
            )
        return results

    def distance(self, text: str, query: str) -> float:
        matrix = _Matrix(len(query) + 1, len(text) + 1, self)
        return self._fill(matrix, query.lower(), text, 0)

    def highlight(self, text: str, query: str) -> List[str]:
        """
        Split text into plain/highlighted segments for query.

        Works for any text, whatever its quality.
        """
        matrix = _Matrix(len(query) + 1, len(text) + 1, self)
        self._fill(matrix, query.lower(), text, 0)
        return self._highlight(matrix, len(query), text)

    @staticmethod
    def _shared_prefix(a: str, b: str) -> int:
        k = 0
        while k < len(a) and k < len(b) and a[k] == b[k]:
            k += 1
        return k

    @staticmethod
    def _quality(distance: float, query: str, text: str) -> float:
        longest = max(len(query), len(text))
        if longest == 0:
            return 1.0
        return 1 - distance / longest

    def _fill(self, matrix: _Matrix, query_lower: str, text: str, shared: int) -> float:
        """Fill columns after the shared prefix and return the distance."""
        text_lower = text.lower()
        rows = len(query_lower)
        cost, delete, add, change = matrix.cost, matrix.delete, matrix.add, matrix.change

        for i in range(1, rows + 1):
            add_cost = self.COST_ADD_AFTER if i == rows else self.COST_ADD
            query_char = query_lower[i - 1]
            row, above = cost[i], cost[i - 1]
            for j in range(shared + 1, len(text) + 1):
                cost_delete = above[j] + self.COST_DELETE
                cost_add = row[j - 1] + add_cost
                cost_change = above[j - 1] + (0 if query_char == text_lower[j - 1] else self.COST_CHANGE)
                row[j] = min(cost_delete, cost_add, cost_change)
                delete[i][j] = cost_delete
                add[i][j] = cost_add
                change[i][j] = cost_change

        return cost[rows][len(text)]

    def _highlight(self, matrix: _Matrix, rows: int, text: str) -> List[str]:
        matched = set(self._backtrack(matrix, rows, len(text)))

        segments = [""]
        was_high = False
        for j, char in enumerate(text):
            is_high = j in matched
            if is_high != was_high:
                segments.append("")
                was_high = is_high
            segments[-1] += char
        return segments

    def _backtrack(self, matrix: _Matrix, rows: int, columns: int) -> List[int]:
        """
        Follow tied optimal paths from (rows, columns) back to (0, 0).

        Picks the path matching the most text characters. Among those, each
        step prefers delete, then add, then change. Returns the matched text
        positions.
        """
        # best[i][j] is the most matches on an optimal path from (i, j) to (0, 0)
        best = [[0] * (columns + 1) for _ in range(rows + 1)]
        for i in range(rows + 1):
            for j in range(columns + 1):
                if i or j:
                    best[i][j] = max(
                        matched + best[pi][pj] for pi, pj, matched in self._steps(matrix, i, j)
                    )

        highs: List[int] = []
        i, j = rows, columns
        while i or j:
            for pi, pj, matched in self._steps(matrix, i, j):
                if matched + best[pi][pj] == best[i][j]:
                    break
            if matched:
                highs.append(j - 1)
            i, j = pi, pj
        highs.reverse()
        return highs

    @staticmethod
    def _steps(matrix: _Matrix, i: int, j: int) -> List[Tuple[int, int, int]]:
        """Predecessors of (i, j) on optimal paths, as (i, j, matched)."""
        m = matrix.cost[i][j]
        steps = []
        if i and m == matrix.delete[i][j]:
            steps.append((i - 1, j, 0))
        if j and m == matrix.add[i][j]:
            steps.append((i, j - 1, 0))
        if i and j and m == matrix.change[i][j]:
            steps.append((i - 1, j - 1, int(m == matrix.cost[i - 1][j - 1])))
        return steps
