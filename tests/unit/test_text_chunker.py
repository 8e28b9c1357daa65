import pytest

from docsearch.chunking import TextChunker, iter_sentence_spans, split_text

# 99 characters, capitalised so the next sentence is not read as an abbreviation.
SENTENCE = ("Word " * 20)[:98] + "."


def _document(sentences: int) -> str:
    return " ".join([SENTENCE] * sentences)


def test_sentence_spans_skip_lowercase_continuations() -> None:
    text = "Use e.g. this tool. Next one."

    assert list(iter_sentence_spans(text)) == [(0, 19), (20, 29)]


def test_sentence_spans_strip_surrounding_whitespace() -> None:
    text = "  First!  Second?\n\nThird; fourth  "

    spans = list(iter_sentence_spans(text))

    assert [text[start:end] for start, end in spans] == ["First!", "Second?", "Third; fourth"]


def test_twelve_hundred_characters_make_three_overlapping_chunks() -> None:
    text = _document(12)
    assert len(SENTENCE) == 99
    assert len(text) == 1199

    chunks = TextChunker(max_chars=500, overlap_chars=100).split(text)

    assert [(chunk.char_start, chunk.char_end) for chunk in chunks] == [
        (0, 499),
        (400, 899),
        (800, 1199),
    ]
    for previous, current in zip(chunks, chunks[1:]):
        assert previous.char_end - current.char_start == 99


def test_chunk_content_is_recoverable_from_source_offsets() -> None:
    text = _document(9) + "\n\nTrailing words without a terminator"

    for chunk in split_text(text, max_chars=300, overlap_chars=60):
        assert chunk.content == text[chunk.char_start : chunk.char_end].strip()


def _uncovered(text: str, chunks) -> list[int]:
    covered = set()
    for chunk in chunks:
        covered.update(range(chunk.char_start, chunk.char_end))
    return [i for i in range(len(text)) if i not in covered]


def test_every_offset_is_covered() -> None:
    text = "  " + " ".join(f"Sentence {i} has a few words in it." for i in range(80)) + "  "

    chunks = TextChunker(max_chars=200, overlap_chars=40).split(text)

    assert _uncovered(text, chunks) == []


@pytest.mark.parametrize("overlap_chars", [0, 5])
def test_surrounding_and_separating_whitespace_is_covered(overlap_chars: int) -> None:
    text = "  Alpha beta gamma. Delta epsilon zeta.  "

    chunks = TextChunker(max_chars=20, overlap_chars=overlap_chars).split(text)

    assert [chunk.content for chunk in chunks][-1] == "Delta epsilon zeta."
    assert chunks[0].char_start == 0
    assert chunks[-1].char_end == len(text)
    assert _uncovered(text, chunks) == []


def test_chunks_respect_size_bound() -> None:
    text = " ".join(f"Sentence {i} talks about topic {i % 7}." for i in range(200))

    chunks = TextChunker(max_chars=500, overlap_chars=100).split(text)

    assert len(chunks) > 1
    assert all(len(chunk) <= 500 for chunk in chunks)
    assert all(not chunk.content[0].isspace() for chunk in chunks)


def test_overlong_sentence_is_kept_whole() -> None:
    long_sentence = "A" + "a" * 700 + "."
    text = f"Short intro. {long_sentence} Short outro."

    chunks = TextChunker(max_chars=500, overlap_chars=100).split(text)

    assert any(chunk.content.endswith(long_sentence) for chunk in chunks)
    assert chunks[-1].content.endswith("Short outro.")


def test_zero_overlap_starts_chunks_at_sentences() -> None:
    text = _document(8)

    chunks = TextChunker(max_chars=300, overlap_chars=0).split(text)

    assert [chunk.char_start for chunk in chunks] == [0, 300, 600]
    assert all(chunk.content.startswith("Word") for chunk in chunks)


@pytest.mark.parametrize("text", ["", "   \n\t  "])
def test_blank_text_produces_no_chunks(text: str) -> None:
    assert TextChunker().split(text) == []


@pytest.mark.parametrize(
    ("max_chars", "overlap_chars"),
    [(0, 0), (-5, 0), (100, -1), (100, 100), (100, 150)],
)
def test_invalid_configuration_is_rejected(max_chars: int, overlap_chars: int) -> None:
    with pytest.raises(ValueError):
        TextChunker(max_chars=max_chars, overlap_chars=overlap_chars)
