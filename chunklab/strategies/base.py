"""
Base class for chunking strategies.

Every strategy turns one plain-text document into an ordered list of
chunk strings. The windowing helpers at the bottom are shared by the
count-based strategies (fixed, token, sentence).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Sequence

from .params import ChunkingMethod, ChunkParams

logger = logging.getLogger(__name__)


class ChunkingStrategy(ABC):
    """
    Abstract base class for chunking strategies.

    All chunking strategies must inherit from this class and implement
    the `chunk` method. A strategy is a pure function of its parameters
    and the input text: the same text always produces the same chunks.

    Contract for `chunk`:
        - empty text returns an empty list
        - text shorter than the window returns a single chunk
        - no returned chunk is empty or whitespace-only

    Attributes:
        method: Strategy identifier (e.g., ChunkingMethod.TOKEN)
        params: The method-specific parameter record

    Example:
        >>> class MyChunker(ChunkingStrategy):
        ...     method = ChunkingMethod.FIXED
        ...     params_class = FixedParams
        ...
        ...     def chunk(self, text):
        ...         return [text]
        >>>
        >>> chunker = MyChunker(FixedParams(chunk_size=512))
        >>> chunks = chunker.chunk("Some text")
    """

    # Class attributes - override in subclasses
    method: ChunkingMethod
    params_class: type

    def __init__(self, params: ChunkParams | None = None):
        """
        Bind the strategy to its parameters.

        Args:
            params: Parameters for this method. Defaults are used when None.

        Raises:
            TypeError: If params belong to a different method
        """
        if params is None:
            params = self.params_class()
        if not isinstance(params, self.params_class):
            raise TypeError(
                f"{self.__class__.__name__} expects {self.params_class.__name__}, "
                f"got {type(params).__name__}"
            )
        self.params = params

    @abstractmethod
    def chunk(self, text: str) -> list[str]:
        """
        Split text into an ordered list of chunk strings.

        This method must be implemented by all subclasses.

        Args:
            text: Plain text to chunk

        Returns:
            Ordered list of non-empty chunk strings

        Raises:
            NotImplementedError: If not implemented by subclass
        """
        raise NotImplementedError("Subclasses must implement chunk()")

    def verify_chunking(self, text: str, chunks: list[str]) -> dict[str, Any]:
        """
        Summarize what chunking produced.

        Catches the common experimental mistake of a document that is
        smaller than the window, which results in no actual chunking.

        Args:
            text: Original text before chunking
            chunks: Chunks after chunking

        Returns:
            Dict with:
                - chunk_count: Number of output chunks
                - doc_length: Input length in characters
                - avg_chunk_length: Average chunk length in characters
                - chunking_occurred: True if more than one chunk was produced

        Example:
            >>> stats = chunker.verify_chunking(text, chunks)
            >>> if not stats["chunking_occurred"]:
            ...     print("Document fits in one chunk")
        """
        chunk_count = len(chunks)
        avg_chunk_len = sum(len(c) for c in chunks) / chunk_count if chunk_count else 0
        chunking_occurred = chunk_count > 1

        if not chunking_occurred:
            logger.info(
                "No chunking occurred for %s: %d chunk(s) from %d chars",
                self.method.value, chunk_count, len(text),
            )

        return {
            "chunk_count": chunk_count,
            "doc_length": len(text),
            "avg_chunk_length": round(avg_chunk_len, 0),
            "chunking_occurred": chunking_occurred,
        }

    def __repr__(self) -> str:
        """String representation of the strategy."""
        return f"{self.__class__.__name__}({self.params!r})"


def clamp_overlap(window: int, overlap: int) -> int:
    """Keep the overlap strictly below the window so every step advances."""
    return max(0, min(overlap, window - 1))


def windows(items: Sequence, size: int, overlap: int) -> list[Sequence]:
    """
    Slide a window of `size` items with `overlap` items repeated.

    The last window holds whatever remains, even if shorter than `size`.
    """
    step = size - clamp_overlap(size, overlap)
    groups = []
    start = 0
    while start < len(items):
        groups.append(items[start:start + size])
        if start + size >= len(items):
            break
        start += step
    return groups


def keep_nonblank(chunks: list[str]) -> list[str]:
    """Drop empty and whitespace-only chunks."""
    return [c for c in chunks if c.strip()]
