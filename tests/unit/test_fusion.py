import pytest

from docsearch.retrieval import MatchType, SearchResult, fuse_results


def _result(chunk_id: int, *, semantic=None, fuzzy=None, content: str = "text") -> SearchResult:
    match_type = MatchType.SEMANTIC if semantic is not None else MatchType.FUZZY
    score = semantic if semantic is not None else fuzzy
    return SearchResult(
        chunk_id=chunk_id,
        document_id="doc",
        content=content,
        chunk_index=chunk_id,
        page_number=1,
        filename="doc.txt",
        filepath="/tmp/doc.txt",
        file_type="txt",
        semantic_score=semantic,
        fuzzy_score=fuzzy,
        combined_score=score,
        match_type=match_type,
    )


def test_hybrid_ranking_prefers_strong_single_source_hits() -> None:
    semantic = [_result(1, semantic=0.90), _result(3, semantic=0.60)]
    fuzzy = [_result(2, fuzzy=0.80), _result(3, fuzzy=0.75)]

    ranked = fuse_results(semantic, fuzzy, limit=2)

    assert [result.chunk_id for result in ranked] == [1, 2]
    assert ranked[0].combined_score == pytest.approx(0.90)
    assert ranked[0].match_type is MatchType.SEMANTIC
    assert ranked[1].combined_score == pytest.approx(0.80)
    assert ranked[1].match_type is MatchType.FUZZY


def test_chunks_found_twice_are_weighted() -> None:
    ranked = fuse_results([_result(3, semantic=0.60)], [_result(3, fuzzy=0.75)], limit=5)

    assert len(ranked) == 1
    fused = ranked[0]
    assert fused.match_type is MatchType.BOTH
    assert fused.semantic_score == pytest.approx(0.60)
    assert fused.fuzzy_score == pytest.approx(0.75)
    assert fused.combined_score == pytest.approx(0.645, abs=1e-4)


def test_custom_weights_are_applied() -> None:
    ranked = fuse_results(
        [_result(1, semantic=0.5)],
        [_result(1, fuzzy=1.0)],
        limit=1,
        semantic_weight=0.5,
        fuzzy_weight=0.5,
    )

    assert ranked[0].combined_score == pytest.approx(0.75)


def test_ties_are_broken_by_chunk_id() -> None:
    ranked = fuse_results(
        [_result(9, semantic=0.5), _result(4, semantic=0.5)],
        [_result(6, fuzzy=0.5)],
        limit=3,
    )

    assert [result.chunk_id for result in ranked] == [4, 6, 9]


def test_non_positive_limit_returns_nothing() -> None:
    assert fuse_results([_result(1, semantic=0.9)], [], limit=0) == []


def test_highlight_centres_on_first_matching_word() -> None:
    content = "x" * 200 + " needle " + "y" * 200
    result = _result(1, semantic=0.5, content=content)

    snippet = result.highlight("missing NEEDLE", context_length=40)

    assert snippet.startswith("...")
    assert snippet.endswith("...")
    assert "needle" in snippet
    assert len(snippet) == 40 + 6


def test_highlight_falls_back_to_head_of_content() -> None:
    result = _result(1, semantic=0.5, content="abcdefghij" * 5)

    assert result.highlight("zzz", context_length=10) == "abcdefghij..."
    assert _result(2, semantic=0.5, content="short").highlight("zzz") == "short"
