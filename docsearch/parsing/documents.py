"""Parsed document representation shared by all parsers."""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ParsedDocument:
    """Plain text extracted from a file plus the metadata needed for indexing."""

    filename: str
    filepath: str
    file_type: str
    full_text: str
    page_starts: List[int] = field(default_factory=lambda: [0])
    size_bytes: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        return len(self.page_starts)

    def page_for_offset(self, offset: int) -> Optional[int]:
        """Return the 1-based page containing ``offset``."""

        if not self.page_starts or offset < 0:
            return None
        return bisect_right(self.page_starts, offset)
