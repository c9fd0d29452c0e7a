"""
Semantic paragraph-merging chunking strategy.

This module groups consecutive paragraphs that talk about the same
thing. Real semantic chunkers compare sentence embeddings; here the
similarity is a cheap lexical proxy so that chunking stays independent
of the embedding model (and free).

IMPORTANT: Chunk size is NOT controllable!
==========================================
Chunks are determined by where the vocabulary shifts, not by a target
size. A document written as one paragraph is one chunk.

How it works:
=============
1. Split the document into paragraphs on blank lines
2. Start a running chunk with the first paragraph
3. For each following paragraph, compute the overlap coefficient
   between the running chunk's word set and the paragraph's word set:
       |A & B| / min(|A|, |B|)
4. If it is >= similarity_threshold, append the paragraph to the
   running chunk; otherwise emit the running chunk and start a new one

The default threshold of 0.5 is a heuristic that has not been tuned
against labelled data.
"""

import re

from ..scoring import tokenize
from .base import ChunkingStrategy
from .params import ChunkingMethod, SemanticParams

PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in PARAGRAPH_SPLIT.split(text) if p.strip()]


def token_overlap(a: str, b: str) -> float:
    """Overlap coefficient of the two texts' word sets (0 when either is empty)."""
    tokens_a = set(tokenize(a))
    tokens_b = set(tokenize(b))
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / min(len(tokens_a), len(tokens_b))


class SemanticChunker(ChunkingStrategy):
    """
    Chunk text by merging lexically similar adjacent paragraphs.

    Example:
        >>> chunker = SemanticChunker(SemanticParams(similarity_threshold=0.5))
        >>> chunks = chunker.chunk(document)
    """

    method = ChunkingMethod.SEMANTIC
    params_class = SemanticParams

    def chunk(self, text: str) -> list[str]:
        paragraphs = split_paragraphs(text)
        if not paragraphs:
            return []

        chunks = []
        current = paragraphs[0]
        for paragraph in paragraphs[1:]:
            if token_overlap(current, paragraph) >= self.params.similarity_threshold:
                current = f"{current}\n\n{paragraph}"
            else:
                chunks.append(current)
                current = paragraph
        chunks.append(current)

        return chunks
