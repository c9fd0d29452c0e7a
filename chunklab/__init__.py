"""
chunklab: chunking and retrieval experiments

A self-contained toolkit for seeing how text chunking strategies change
what a retrieval system finds. Documents are split with several
strategies, embedded into collections, and searched side by side with
dense, sparse (BM25) and hybrid scoring.

Key Questions:
    1. Strategy: Which chunking strategy surfaces the right passage?
    2. Parameters: How do chunk size and overlap shift the ranking?
    3. Retrieval: When does keyword scoring beat embeddings, and vice versa?

Quick Start:
    # Run from command line
    chunklab add notes.md                 # Add a document
    chunklab process -m recursive -m token
    chunklab search "budget cuts" -r dense -r hybrid

    # Use programmatically
    from chunklab.strategies import STRATEGIES
    from chunklab.pipeline import CollectionBuilder
    from chunklab.retrieval import RetrievalEngine

Example:
    >>> from chunklab.strategies import get_strategy
    >>> chunker = get_strategy("token", token_count=256, overlap=50)
    >>> chunks = chunker.chunk(text)
"""

__version__ = "1.0.0"

# Lazy imports to avoid pulling in the embedding stack on import
# Users should import from submodules directly:
#   from chunklab.strategies import STRATEGIES, TokenChunker
#   from chunklab.workspace import Workspace, open_workspace
#   from chunklab.pipeline import CollectionBuilder
