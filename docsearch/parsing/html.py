"""HTML text extraction built on lxml."""

from __future__ import annotations

from pathlib import Path

from lxml import etree, html as lxml_html

from docsearch.exceptions import ParseError
from docsearch.parsing.documents import ParsedDocument


def _normalize_text(text: str) -> str:
    return " ".join(text.split())


class HtmlParser:
    """Extract visible body text from an HTML file."""

    def parse(self, path: Path) -> ParsedDocument:
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ParseError(f"Unable to read HTML document {path}: {exc}") from exc

        try:
            root = lxml_html.fromstring(raw)
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
            raise ParseError(f"Invalid HTML in {path}") from exc

        for node in root.xpath("//script | //style | //noscript"):
            node.drop_tree()

        metadata: dict[str, str] = {}
        title = root.findtext(".//title")
        if title and title.strip():
            metadata["title"] = _normalize_text(title)

        body = root.find(".//body")
        text_root = body if body is not None else root
        return ParsedDocument(
            filename=path.name,
            filepath=str(path),
            file_type="html",
            full_text=_normalize_text(text_root.text_content()),
            size_bytes=len(raw),
            metadata=metadata,
        )
