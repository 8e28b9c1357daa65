"""Dataclasses describing hybrid search results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SearchMode(str, Enum):
    SEMANTIC = "semantic"
    FUZZY = "fuzzy"
    HYBRID = "hybrid"


class MatchType(str, Enum):
    SEMANTIC = "semantic"
    FUZZY = "fuzzy"
    BOTH = "both"


@dataclass(frozen=True)
class SearchResult:
    """A ranked chunk with the scores that placed it."""

    chunk_id: int
    document_id: str
    content: str
    chunk_index: int
    page_number: Optional[int]
    filename: str
    filepath: str
    file_type: str
    semantic_score: Optional[float] = None
    fuzzy_score: Optional[float] = None
    combined_score: float = 0.0
    match_type: MatchType = MatchType.SEMANTIC

    def highlight(self, query: str, context_length: int = 100) -> str:
        """Return a ``context_length`` window of ``content`` around a query word.

        The first query word found (case-insensitive) centres the window;
        without a match the head of the content is returned. Truncated sides
        are marked with ``...``.
        """

        content = self.content
        lowered = content.lower()
        position = -1
        for word in query.lower().split():
            position = lowered.find(word)
            if position >= 0:
                break

        if position < 0:
            if len(content) <= context_length:
                return content
            return content[:context_length] + "..."

        start = max(0, position - context_length // 2)
        end = min(len(content), start + context_length)
        prefix = "..." if start > 0 else ""
        suffix = "..." if end < len(content) else ""
        return f"{prefix}{content[start:end]}{suffix}"


__all__ = ["MatchType", "SearchMode", "SearchResult"]
