"""
Recursive character-based chunking strategy.

This is the boundary-aware cousin of fixed chunking, in the spirit of
LangChain's RecursiveCharacterTextSplitter: each window is at most
`chunk_size` characters, but the cut is moved back to the most natural
boundary inside the window.

How it works:
=============
For each window, search backward from the `chunk_size`-th character for
the last occurrence of, in priority order:

    1. "\\n\\n"            - a blank line (paragraph boundary)
    2. ". " / "! " / "? "  - a sentence terminator followed by whitespace
                            or ending the window
    3. " "                - a word boundary
    4. (none)             - hard cut at chunk_size

The first separator kind that appears anywhere in the window wins, even
if a lower-priority separator sits closer to the end. The next window
starts `overlap` characters before the chosen split point, or at the
split point itself when that would not move past the previous start.

Trade-offs:
    - UNDERSHOOTS the target size to land on boundaries
    - Good balance of size control and coherence
    - Chunks are raw substrings: with overlap=0 they concatenate back
      to the original text
"""

import re

from .base import ChunkingStrategy, clamp_overlap, keep_nonblank
from .params import ChunkingMethod, RecursiveParams

PARAGRAPH_BREAK = "\n\n"
SENTENCE_END = re.compile(r"[.!?](?=\s|$)")
WORD_BREAK = " "


class RecursiveChunker(ChunkingStrategy):
    """
    Chunk text at the best natural boundary inside each window.

    Example:
        >>> chunker = RecursiveChunker(RecursiveParams(chunk_size=512, overlap=0))
        >>> chunker.chunk("Paragraph one.\\n\\nParagraph two.")
    """

    method = ChunkingMethod.RECURSIVE
    params_class = RecursiveParams

    def chunk(self, text: str) -> list[str]:
        size = self.params.chunk_size
        overlap = clamp_overlap(size, self.params.overlap)

        chunks = []
        start = 0
        while start < len(text):
            if len(text) - start <= size:
                chunks.append(text[start:])
                break

            end = start + self._split_offset(text[start:start + size])
            chunks.append(text[start:end])
            # Overlap only when it still moves past the previous start
            next_start = end - overlap
            start = next_start if next_start > start else end

        return keep_nonblank(chunks)

    @staticmethod
    def _split_offset(window: str) -> int:
        """Offset just past the preferred separator, or len(window) for a hard cut."""
        idx = window.rfind(PARAGRAPH_BREAK)
        if idx > 0:
            return idx + len(PARAGRAPH_BREAK)

        last_sentence = None
        for last_sentence in SENTENCE_END.finditer(window):
            pass
        if last_sentence is not None:
            return last_sentence.end()

        idx = window.rfind(WORD_BREAK)
        if idx > 0:
            return idx + 1

        return len(window)
