from pathlib import Path

import pytest

from docsearch.cli import main

pytest.importorskip("faiss")


def _base_args(tmp_path: Path) -> list[str]:
    return [
        "--db-url",
        f"sqlite:///{tmp_path / 'cli.db'}",
        "--embedder",
        "hashing",
        "--dimension",
        "128",
    ]


def test_index_search_list_and_delete(tmp_path, capsys):
    document = tmp_path / "budget_report.txt"
    document.write_text("The budget report lists every expense. Travel costs rose.", encoding="utf-8")
    base = _base_args(tmp_path)

    assert main([*base, "index", str(document)]) == 0
    indexed = capsys.readouterr().out
    assert "Indexed" in indexed and "1 chunks" in indexed

    assert main([*base, "search", "budget", "--mode", "fuzzy"]) == 0
    output = capsys.readouterr().out
    assert "budget_report.txt" in output
    assert "fuzzy" in output

    assert main([*base, "list"]) == 0
    listing = capsys.readouterr().out.strip().splitlines()
    assert len(listing) == 1
    document_id = listing[0].split("\t")[0]

    assert main([*base, "suggest", "reprot"]) == 0
    assert capsys.readouterr().out.split() == ["report"]

    assert main([*base, "delete", document_id]) == 0
    assert main([*base, "delete", document_id]) == 1
    assert "Document not found" in capsys.readouterr().err


def test_index_reports_failures(tmp_path, capsys):
    assert main([*_base_args(tmp_path), "index", str(tmp_path / "missing.txt")]) == 1
    assert "Failed" in capsys.readouterr().err


def test_dimension_mismatch_is_reported(tmp_path, capsys):
    base = _base_args(tmp_path)
    assert main([*base, "list"]) == 0

    mismatched = [*base[:-1], "64"]
    assert main([*mismatched, "list"]) == 1
    assert "embedding dimension" in capsys.readouterr().err
