"""Lexical matching of queries against chunk text using RapidFuzz."""

from __future__ import annotations

import re
from typing import Iterable, List

from rapidfuzz import fuzz, utils

SUGGESTION_THRESHOLD = 70
_FILENAME_SEPARATORS = re.compile(r"[\s_\-.]+")


class FuzzyMatcher:
    """Score chunk content against a query on a 0-100 scale.

    The score is the best of three views of the query: the whole query as a
    substring (partial ratio), the query's word set (token set ratio), and
    the single best-matching query word. Comparisons ignore case.
    """

    def __init__(self, threshold: int = 70) -> None:
        if not 0 <= threshold <= 100:
            raise ValueError("threshold must be between 0 and 100")
        self.threshold = threshold

    def score(self, query: str, content: str) -> int:
        normalized_query = query.strip().lower()
        normalized_content = content.lower()
        if not normalized_query or not normalized_content.strip():
            return 0

        best = max(
            fuzz.partial_ratio(normalized_query, normalized_content),
            fuzz.token_set_ratio(
                normalized_query, normalized_content, processor=utils.default_process
            ),
        )
        words = normalized_query.split()
        if len(words) > 1:
            best = max(
                best,
                max(fuzz.partial_ratio(word, normalized_content) for word in words),
            )
        return int(round(best))

    def is_match(self, query: str, content: str) -> bool:
        return self.score(query, content) >= self.threshold

    def suggest_corrections(
        self,
        query: str,
        filenames: Iterable[str],
        max_suggestions: int = 5,
    ) -> List[str]:
        """Return filename terms that look like what ``query`` meant to spell."""

        normalized_query = query.strip().lower()
        if not normalized_query or max_suggestions <= 0:
            return []

        suggestions: List[str] = []
        seen: set[str] = set()
        for filename in filenames:
            for term in _FILENAME_SEPARATORS.split(filename):
                if not term:
                    continue
                lowered = term.lower()
                if lowered in seen:
                    continue
                if fuzz.ratio(normalized_query, lowered) >= SUGGESTION_THRESHOLD:
                    seen.add(lowered)
                    suggestions.append(term)
                    if len(suggestions) >= max_suggestions:
                        return suggestions
        return suggestions


__all__ = ["FuzzyMatcher", "SUGGESTION_THRESHOLD"]
