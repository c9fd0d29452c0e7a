"""
Sentence-boundary respecting chunking strategy.

This module implements chunking that groups whole sentences. A sentence
ends at `.`, `!` or `?` followed by whitespace or the end of the text;
the terminator stays with its sentence.

Size is controlled in sentences, not characters, so chunk length
follows the writing style of the document. Long-winded prose produces
long chunks: keep that in mind before comparing this strategy against
character-based ones "at the same size".

Key characteristics:
    - Never cuts a sentence in half
    - `sentence_count` sentences per chunk
    - `overlap` sentences repeated at the start of the next chunk
    - Abbreviations like "e.g. this" are treated as sentence ends
"""

import re

from .base import ChunkingStrategy, windows
from .params import ChunkingMethod, SentenceParams

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping terminators."""
    return [s for s in SENTENCE_BOUNDARY.split(text.strip()) if s.strip()]


class SentenceChunker(ChunkingStrategy):
    """
    Chunk text into groups of consecutive sentences.

    Example:
        >>> chunker = SentenceChunker(SentenceParams(sentence_count=2, overlap=0))
        >>> chunker.chunk("First sentence. Second one! Third?")
        ['First sentence. Second one!', 'Third?']
    """

    method = ChunkingMethod.SENTENCE
    params_class = SentenceParams

    def chunk(self, text: str) -> list[str]:
        sentences = split_sentences(text)
        return [
            " ".join(group)
            for group in windows(sentences, self.params.sentence_count, self.params.overlap)
        ]
