"""
Fixed-size character chunking strategy.

The simplest possible baseline: slide a window of `chunk_size` characters
over the text with a step of `chunk_size - overlap`. No attention is paid
to words, sentences or paragraphs.

Why keep a dumb baseline?
=========================
Every other strategy trades size control for boundary awareness. Fixed
chunking is the control group: exact sizes, no semantics. If a smarter
strategy does not beat it at the same size, the smarts are not helping.

Chunk count for a text of length L (L > chunk_size):
    ceil((L - overlap) / (chunk_size - overlap))

Key characteristics:
    - Exact chunk sizes (except the tail)
    - Will cut words and sentences in half
    - Chunks are raw substrings: with overlap=0 they concatenate back
      to the original text
"""

from .base import ChunkingStrategy, keep_nonblank, windows
from .params import ChunkingMethod, FixedParams


class FixedChunker(ChunkingStrategy):
    """
    Chunk text into fixed-size character windows.

    Example:
        >>> chunker = FixedChunker(FixedParams(chunk_size=1000, overlap=200))
        >>> chunks = chunker.chunk(text)
    """

    method = ChunkingMethod.FIXED
    params_class = FixedParams

    def chunk(self, text: str) -> list[str]:
        return keep_nonblank(windows(text, self.params.chunk_size, self.params.overlap))
