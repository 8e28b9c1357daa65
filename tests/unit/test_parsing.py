from pathlib import Path

import pytest

from docsearch.exceptions import ParseError
from docsearch.parsing import HtmlParser, ParserRegistry, TextParser, default_registry


def test_text_parser_tracks_form_feed_pages(tmp_path: Path) -> None:
    path = tmp_path / "report.txt"
    path.write_text("Page one.\fPage two.\fPage three.", encoding="utf-8")

    parsed = TextParser().parse(path)

    assert parsed.filename == "report.txt"
    assert parsed.file_type == "txt"
    assert parsed.full_text == "Page one.\nPage two.\nPage three."
    assert parsed.page_starts == [0, 10, 20]
    assert parsed.total_pages == 3
    assert parsed.page_for_offset(0) == 1
    assert parsed.page_for_offset(12) == 2
    assert parsed.page_for_offset(25) == 3
    assert parsed.size_bytes == path.stat().st_size


def test_text_parser_reports_undecodable_files(tmp_path: Path) -> None:
    path = tmp_path / "binary.txt"
    path.write_bytes(b"\xff\xfe\x00broken")

    with pytest.raises(ParseError):
        TextParser().parse(path)


def test_html_parser_extracts_visible_text_and_title(tmp_path: Path) -> None:
    path = tmp_path / "page.html"
    path.write_text(
        "<html><head><title> Quarterly  Report </title><style>p {}</style></head>"
        "<body><h1>Results</h1><p>Revenue grew <b>12%</b>.</p>"
        "<script>track()</script></body></html>",
        encoding="utf-8",
    )

    parsed = HtmlParser().parse(path)

    assert parsed.file_type == "html"
    assert parsed.metadata == {"title": "Quarterly Report"}
    assert "Revenue grew 12%." in parsed.full_text
    assert "track()" not in parsed.full_text
    assert "p {}" not in parsed.full_text


def test_registry_dispatches_on_extension_case_insensitively(tmp_path: Path) -> None:
    path = tmp_path / "NOTES.MD"
    path.write_text("# Notes\n\nSome text.", encoding="utf-8")

    parsed = default_registry().parse(path)

    assert parsed.full_text.startswith("# Notes")


def test_registry_rejects_unknown_extensions(tmp_path: Path) -> None:
    path = tmp_path / "slides.pptx"
    path.write_bytes(b"data")

    with pytest.raises(ParseError, match="Unsupported file format"):
        default_registry().parse(path)


def test_registry_reports_missing_files(tmp_path: Path) -> None:
    with pytest.raises(ParseError, match="not found"):
        default_registry().parse(tmp_path / "missing.txt")


def test_custom_parsers_can_be_registered(tmp_path: Path) -> None:
    registry = ParserRegistry()
    registry.register(["log"], TextParser())
    path = tmp_path / "server.log"
    path.write_text("Started.", encoding="utf-8")

    assert registry.supports(path)
    assert registry.extensions == [".log"]
    assert registry.parse(path).full_text == "Started."


class ExplodingParser:
    def parse(self, path: Path):
        raise UnicodeError("bad byte order mark")


def test_registry_wraps_unexpected_parser_errors(tmp_path: Path) -> None:
    registry = ParserRegistry()
    registry.register([".txt"], ExplodingParser())
    path = tmp_path / "notes.txt"
    path.write_text("Anything.", encoding="utf-8")

    with pytest.raises(ParseError, match="Failed to parse notes.txt: bad byte order mark"):
        registry.parse(path)
