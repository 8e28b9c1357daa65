"""Chunking utilities for turning extracted text into embeddable spans.

Example: split a document and inspect the offsets
-------------------------------------------------
```python
from docsearch.chunking import TextChunker

text = open("notes.txt", encoding="utf-8").read()
chunker = TextChunker(max_chars=500, overlap_chars=100)
for span in chunker.split(text):
    assert text[span.char_start:span.char_end].strip() == span.content
```
"""

from .text_chunker import TextChunker, TextSpan, iter_sentence_spans, split_text

__all__ = ["TextChunker", "TextSpan", "iter_sentence_spans", "split_text"]
