"""Extension-keyed registry of document parsers."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Protocol

from docsearch.exceptions import ParseError
from docsearch.parsing.documents import ParsedDocument
from docsearch.parsing.html import HtmlParser
from docsearch.parsing.text import TextParser


class DocumentParser(Protocol):
    def parse(self, path: Path) -> ParsedDocument:
        """Extract text and metadata from ``path``."""


class ParserRegistry:
    """Map file extensions (``".txt"``) to parser implementations."""

    def __init__(self) -> None:
        self._parsers: Dict[str, DocumentParser] = {}

    def register(self, extensions: Iterable[str], parser: DocumentParser) -> None:
        for extension in extensions:
            self._parsers[_normalize_extension(extension)] = parser

    def supports(self, path: Path | str) -> bool:
        return _normalize_extension(Path(path).suffix) in self._parsers

    @property
    def extensions(self) -> list[str]:
        return sorted(self._parsers)

    def parse(self, path: Path | str) -> ParsedDocument:
        resolved = Path(path)
        extension = _normalize_extension(resolved.suffix)
        parser = self._parsers.get(extension)
        if parser is None:
            raise ParseError(f"Unsupported file format: {extension or resolved.name}")
        if not resolved.is_file():
            raise ParseError(f"Document not found: {resolved}")
        try:
            return parser.parse(resolved)
        except ParseError:
            raise
        except Exception as exc:
            raise ParseError(f"Failed to parse {resolved.name}: {exc}") from exc


def _normalize_extension(extension: str) -> str:
    extension = extension.lower()
    if extension and not extension.startswith("."):
        extension = f".{extension}"
    return extension


def default_registry() -> ParserRegistry:
    """Return a registry covering plain text, Markdown and HTML."""

    registry = ParserRegistry()
    registry.register([".txt", ".md", ".markdown"], TextParser())
    registry.register([".html", ".htm"], HtmlParser())
    return registry
