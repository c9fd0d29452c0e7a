"""
Chunking Strategy Registry

This module provides a registry of all available chunking strategies.
Each strategy implements the ChunkingStrategy interface.

Available Strategies:
    - fixed: Fixed character windows (the no-frills baseline)
    - recursive: Character windows cut at paragraph/sentence/word boundaries
    - token: Fixed word count per chunk (may break mid-sentence)
    - sentence: Groups of whole sentences
    - semantic: Adjacent paragraphs merged by lexical similarity

Usage:
    >>> from chunklab.strategies import get_strategy, chunk_text
    >>>
    >>> # Get strategy by name
    >>> chunker = get_strategy("token", token_count=256, overlap=50)
    >>> chunks = chunker.chunk(text)
    >>>
    >>> # Or chunk directly from a params record
    >>> from chunklab.strategies import TokenParams
    >>> chunks = chunk_text(text, TokenParams(token_count=256))

Extending:
    To add a custom strategy:
    1. Create a new file in chunklab/strategies/
    2. Implement the ChunkingStrategy interface
    3. Register it in STRATEGIES below
"""

from typing import Any

from .base import ChunkingStrategy
from .fixed import FixedChunker
from .params import (
    ChunkingMethod,
    ChunkParams,
    FixedParams,
    RecursiveParams,
    SemanticParams,
    SentenceParams,
    TokenParams,
    params_for,
    params_from_dict,
    params_to_dict,
)
from .recursive import RecursiveChunker
from .semantic import SemanticChunker
from .sentence import SentenceChunker
from .token import TokenChunker

# Strategy Registry
# Maps method -> strategy class
STRATEGIES: dict[ChunkingMethod, type[ChunkingStrategy]] = {
    ChunkingMethod.FIXED: FixedChunker,
    ChunkingMethod.RECURSIVE: RecursiveChunker,
    ChunkingMethod.TOKEN: TokenChunker,
    ChunkingMethod.SENTENCE: SentenceChunker,
    ChunkingMethod.SEMANTIC: SemanticChunker,
}


def get_strategy(name: ChunkingMethod | str, **kwargs: Any) -> ChunkingStrategy:
    """
    Factory function to get a chunking strategy by name.

    Args:
        name: Strategy name (fixed, recursive, token, sentence, semantic)
        **kwargs: Parameter values; keys not used by the method are ignored

    Returns:
        Instantiated ChunkingStrategy

    Raises:
        ValueError: If strategy name is not recognized

    Example:
        >>> chunker = get_strategy("sentence", sentence_count=3, overlap=1)
        >>> chunks = chunker.chunk(text)
    """
    try:
        method = ChunkingMethod(name)
    except ValueError:
        available = ", ".join(m.value for m in STRATEGIES)
        raise ValueError(
            f"Unknown strategy '{name}'. Available strategies: {available}"
        ) from None

    return STRATEGIES[method](params_for(method, **kwargs))


def chunk_text(text: str, params: ChunkParams) -> list[str]:
    """Chunk text with the strategy selected by the params variant."""
    return STRATEGIES[params.method](params).chunk(text)


def list_strategies() -> list[dict[str, str]]:
    """
    List all available chunking strategies with descriptions.

    Returns:
        List of dicts with 'name' and 'description' keys

    Example:
        >>> for s in list_strategies():
        ...     print(f"{s['name']}: {s['description']}")
    """
    return [
        {
            "name": method.value,
            "description": cls.__doc__.strip().split("\n")[0] if cls.__doc__ else "No description",
        }
        for method, cls in STRATEGIES.items()
    ]


__all__ = [
    "ChunkingStrategy",
    "ChunkingMethod",
    "ChunkParams",
    "FixedParams",
    "RecursiveParams",
    "TokenParams",
    "SentenceParams",
    "SemanticParams",
    "FixedChunker",
    "RecursiveChunker",
    "TokenChunker",
    "SentenceChunker",
    "SemanticChunker",
    "STRATEGIES",
    "get_strategy",
    "chunk_text",
    "list_strategies",
    "params_for",
    "params_to_dict",
    "params_from_dict",
]
