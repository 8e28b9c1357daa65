"""Split extracted document text into overlapping, sentence-aligned chunks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

SENTENCE_TERMINATORS = frozenset(".!?;")


@dataclass(frozen=True)
class TextSpan:
    """A chunk of text with its ``[char_start, char_end)`` range in the source.

    The range also claims the whitespace around the chunk, so consecutive
    ranges leave no gap; ``content`` is the range with that whitespace
    stripped.
    """

    content: str
    char_start: int
    char_end: int
    page_number: Optional[int] = None

    def __len__(self) -> int:
        return len(self.content)


def iter_sentence_spans(text: str) -> Iterator[Tuple[int, int]]:
    """Yield ``(start, end)`` offsets of the sentences in ``text``.

    A sentence ends at ``.``, ``!``, ``?`` or ``;`` followed by whitespace,
    unless the next non-whitespace character is lowercase (``e.g. this``),
    which is treated as an abbreviation. Spans never start or end with
    whitespace.
    """

    length = len(text)
    start: Optional[int] = None
    i = 0
    while i < length:
        char = text[i]
        if start is None:
            if char.isspace():
                i += 1
                continue
            start = i

        if char in SENTENCE_TERMINATORS and i + 1 < length and text[i + 1].isspace():
            j = i + 1
            while j < length and text[j].isspace():
                j += 1
            if j < length and text[j].islower():
                i = j
                continue
            yield start, i + 1
            start = None
            i = j
            continue
        i += 1

    if start is not None:
        end = length
        while end > start and text[end - 1].isspace():
            end -= 1
        yield start, end


class TextChunker:
    """Accumulate sentences into chunks of at most ``max_chars`` characters.

    Consecutive chunks share roughly ``overlap_chars`` characters taken from the
    tail of the previous chunk, snapped forward to a word boundary. A sentence
    longer than ``max_chars`` becomes a chunk of its own rather than being cut.
    """

    def __init__(self, max_chars: int = 500, overlap_chars: int = 100) -> None:
        if max_chars <= 0:
            raise ValueError("max_chars must be positive")
        if overlap_chars < 0 or overlap_chars >= max_chars:
            raise ValueError("overlap_chars must be in [0, max_chars)")
        self.max_chars = max_chars
        self.overlap_chars = overlap_chars

    def split(self, text: str) -> List[TextSpan]:
        """Return ordered chunks whose offsets together cover all of ``text``."""

        bounds: List[Tuple[int, int]] = []
        chunk_start: Optional[int] = None
        chunk_end = 0

        for sentence_start, sentence_end in iter_sentence_spans(text):
            if chunk_start is not None and sentence_end - chunk_start > self.max_chars:
                bounds.append((chunk_start, chunk_end))
                chunk_start = self._overlap_start(
                    text, chunk_start, chunk_end, sentence_start, sentence_end
                )
            if chunk_start is None:
                chunk_start = sentence_start
            chunk_end = sentence_end

        if chunk_start is not None:
            bounds.append((chunk_start, chunk_end))

        spans: List[TextSpan] = []
        for position, (start, end) in enumerate(bounds):
            # Each range claims the whitespace up to its neighbours.
            span_start = 0 if position == 0 else start
            if position + 1 < len(bounds):
                span_end = max(end, bounds[position + 1][0])
            else:
                span_end = len(text)
            spans.append(
                TextSpan(content=text[start:end], char_start=span_start, char_end=span_end)
            )
        return spans

    def _overlap_start(
        self,
        text: str,
        chunk_start: int,
        chunk_end: int,
        sentence_start: int,
        sentence_end: int,
    ) -> int:
        if self.overlap_chars == 0:
            return sentence_start

        # The new chunk must still fit the next sentence and must begin after
        # the previous chunk did.
        start = max(
            chunk_end - self.overlap_chars,
            chunk_start + 1,
            sentence_end - self.max_chars,
        )
        return _snap_to_word_start(text, start, limit=sentence_start)


def _snap_to_word_start(text: str, position: int, *, limit: int) -> int:
    """Move ``position`` forward to the start of the next whole word, capped at ``limit``."""

    if position >= limit:
        return limit
    if position > 0 and not text[position - 1].isspace():
        while position < limit and not text[position].isspace():
            position += 1
    while position < limit and text[position].isspace():
        position += 1
    return position


def split_text(text: str, max_chars: int = 500, overlap_chars: int = 100) -> List[TextSpan]:
    """Convenience wrapper around :meth:`TextChunker.split`."""

    return TextChunker(max_chars=max_chars, overlap_chars=overlap_chars).split(text)


__all__ = ["TextChunker", "TextSpan", "iter_sentence_spans", "split_text"]
