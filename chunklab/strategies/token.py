"""
Token-based chunking strategy.

This module implements chunking based on token count, which provides
the MOST CONSISTENT chunk sizes of all strategies. Essential for
controlled experiments where you need to isolate the effect of
chunk size from chunking strategy.

Tokens here are approximated by whitespace-delimited words. That keeps
the strategy deterministic and free of any tokenizer download, at the
cost of drifting from a real model tokenizer on punctuation-heavy text.

Why use token chunking?
=======================
1. PRECISE SIZE CONTROL: every chunk except the last holds exactly
   `token_count` words.

2. FAIR COMPARISONS: When comparing strategies, use token chunking
   as your baseline - it's the strategy that respects size config.

Trade-offs:
    - May break mid-sentence
    - Original whitespace (newlines, double spaces) is collapsed to
      single spaces inside a chunk
"""

from .base import ChunkingStrategy, windows
from .params import ChunkingMethod, TokenParams


class TokenChunker(ChunkingStrategy):
    """
    Chunk text by word count.

    Collects `token_count` words per chunk and repeats the last
    `overlap` words at the start of the next chunk.

    Example:
        >>> chunker = TokenChunker(TokenParams(token_count=256, overlap=50))
        >>> chunks = chunker.chunk(text)
        >>> print(f"Created {len(chunks)} chunks")
    """

    method = ChunkingMethod.TOKEN
    params_class = TokenParams

    def chunk(self, text: str) -> list[str]:
        words = text.split()
        return [
            " ".join(group)
            for group in windows(words, self.params.token_count, self.params.overlap)
        ]
