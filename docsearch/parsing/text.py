"""Plain text and Markdown extraction."""

from __future__ import annotations

from pathlib import Path

from docsearch.exceptions import ParseError
from docsearch.parsing.documents import ParsedDocument

PAGE_BREAK = "\f"


class TextParser:
    """Read UTF-8 text; form feeds mark page boundaries."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def parse(self, path: Path) -> ParsedDocument:
        try:
            raw = path.read_bytes()
            text = raw.decode(self.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(f"Unable to read text document {path}: {exc}") from exc

        page_starts = [0]
        for index, char in enumerate(text):
            if char == PAGE_BREAK:
                page_starts.append(index + 1)

        return ParsedDocument(
            filename=path.name,
            filepath=str(path),
            file_type=path.suffix.lstrip(".").lower() or "txt",
            # Keep offsets stable: the page break becomes an ordinary newline.
            full_text=text.replace(PAGE_BREAK, "\n"),
            page_starts=page_starts,
            size_bytes=len(raw),
        )
