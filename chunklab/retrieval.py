"""
Multi-method retrieval over built collections.

This module provides the RetrievalEngine, which ranks the chunks of one
or more collections against a free-text query with any combination of:

    - dense:  cosine similarity between query and chunk embeddings
    - sparse: BM25 over the chunks of the collection, normalized to [0, 1]
    - hybrid: 0.7 * dense + 0.3 * normalized sparse

How ranking works:
==================
1. Validate the request (before any embedding call)
2. Embed the query ONCE; the vector is reused for every collection
3. For each collection, for each selected method, score every chunk
4. Merge everything, sort by score (stable: ties keep collection,
   method and chunk order), keep the top `top_k * len(methods)`

IMPORTANT: the cutoff is shared!
================================
The final slice is taken over ALL methods and collections together, not
per method or per collection. A method whose scores run higher (dense
usually does) or a collection that matches better can take every slot.

Example:
    >>> engine = RetrievalEngine(embedder, collection_store)
    >>> results = engine.search(
    ...     "What causes inflation?",
    ...     collection_ids=["col_abc", "col_def"],
    ...     methods=["dense", "sparse"],
    ...     top_k=5,
    ... )
    >>> for r in results:
    ...     print(f"{r.score:.3f} {r.retrieval_method} {r.collection_name}")
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from .embeddings import Embedder
from .errors import ValidationError
from .scoring import compute_bm25, cosine_similarity, hybrid_scores, normalize_sparse
from .store import Chunk, Collection, CollectionStore

logger = logging.getLogger(__name__)


class RetrievalMethod(str, Enum):
    """Available retrieval methods."""

    DENSE = "dense"
    SPARSE = "sparse"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class SearchResult:
    """
    One scored chunk.

    Attributes:
        chunk: The chunk that was scored
        score: Score in [0, 1] for normalized embeddings (not a probability)
        retrieval_method: Method that produced the score
        collection_name: Name of the chunk's collection
        collection_id: ID of the chunk's collection
    """

    chunk: Chunk
    score: float
    retrieval_method: RetrievalMethod
    collection_name: str
    collection_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunk": self.chunk.to_dict(),
            "score": self.score,
            "retrieval_method": self.retrieval_method.value,
            "collection_name": self.collection_name,
            "collection_id": self.collection_id,
        }


def validate_methods(methods: Sequence[RetrievalMethod | str]) -> list[RetrievalMethod]:
    """Parse and de-duplicate retrieval methods, keeping their order."""
    if not methods:
        raise ValidationError("Select at least one retrieval method.")
    parsed: list[RetrievalMethod] = []
    for m in methods:
        try:
            method = RetrievalMethod(m)
        except ValueError:
            available = ", ".join(x.value for x in RetrievalMethod)
            raise ValidationError(
                f"Unknown retrieval method '{m}'. Available methods: {available}"
            ) from None
        if method not in parsed:
            parsed.append(method)
    return parsed


def score_collection(
    query: str,
    query_vector: Sequence[float],
    collection: Collection,
    methods: Sequence[RetrievalMethod],
) -> list[SearchResult]:
    """
    Score every chunk of one collection with each method.

    Dense and sparse scores are computed at most once and shared with
    hybrid, so all three see the same chunk ordering.
    """
    dense: list[float] | None = None
    sparse: list[float] | None = None

    if RetrievalMethod.DENSE in methods or RetrievalMethod.HYBRID in methods:
        dense = [cosine_similarity(query_vector, v) for v in collection.vectors]
    if RetrievalMethod.SPARSE in methods or RetrievalMethod.HYBRID in methods:
        sparse = compute_bm25(query, [c.text for c in collection.chunks])

    results = []
    for method in methods:
        if method is RetrievalMethod.DENSE:
            scores = dense
        elif method is RetrievalMethod.SPARSE:
            scores = normalize_sparse(sparse)
        else:
            scores = hybrid_scores(dense, sparse)

        results.extend(
            SearchResult(
                chunk=chunk,
                score=score,
                retrieval_method=method,
                collection_name=collection.name,
                collection_id=collection.id,
            )
            for chunk, score in zip(collection.chunks, scores)
        )
    return results


def rank(results: list[SearchResult], limit: int) -> list[SearchResult]:
    """Stable sort by descending score, keeping the first `limit`."""
    return sorted(results, key=lambda r: r.score, reverse=True)[:limit]


class RetrievalEngine:
    """
    Ranks chunks from stored collections against a query.

    Attributes:
        embedder: Used for the query embedding only
        store: Source of the collections to search
    """

    def __init__(self, embedder: Embedder, store: CollectionStore):
        self.embedder = embedder
        self.store = store

    def search(
        self,
        query: str,
        collection_ids: Sequence[str],
        methods: Sequence[RetrievalMethod | str] = (RetrievalMethod.DENSE,),
        top_k: int = 5,
    ) -> list[SearchResult]:
        """
        Rank the chunks of the selected collections.

        Args:
            query: Free-text query
            collection_ids: Collections to search; unknown ids are skipped
            methods: Any non-empty combination of dense, sparse, hybrid
            top_k: Results per method; the cutoff is top_k * len(methods)

        Returns:
            Results sorted by descending score

        Raises:
            ValidationError: Blank query, no collections, no/unknown methods,
                or top_k < 1. Raised before any embedding call.
            EmbeddingError: If embedding the query fails
        """
        method_list = self.validate(query, collection_ids, methods, top_k)

        collections = []
        for collection_id in dict.fromkeys(collection_ids):
            collection = self.store.get(collection_id)
            if collection is None:
                logger.warning("Collection %s not found; skipping", collection_id)
                continue
            collections.append(collection)

        return self._rank(query, collections, method_list, top_k)

    def search_collections(
        self,
        query: str,
        collections: Sequence[Collection],
        methods: Sequence[RetrievalMethod | str],
        top_k: int,
    ) -> list[SearchResult]:
        """Same as search(), over collections already in hand."""
        method_list = self.validate(query, [c.id for c in collections], methods, top_k)
        return self._rank(query, collections, method_list, top_k)

    def _rank(
        self,
        query: str,
        collections: Sequence[Collection],
        method_list: list[RetrievalMethod],
        top_k: int,
    ) -> list[SearchResult]:
        if not collections:
            return []

        query_vector = self.embedder.embed_query(query)

        results: list[SearchResult] = []
        for collection in collections:
            results.extend(score_collection(query, query_vector, collection, method_list))

        ranked = rank(results, top_k * len(method_list))
        logger.debug(
            "Query %r: %d scored, %d returned from %d collection(s)",
            query, len(results), len(ranked), len(collections),
        )
        return ranked

    @staticmethod
    def validate(
        query: str,
        collection_ids: Sequence[str],
        methods: Sequence[RetrievalMethod | str],
        top_k: int,
    ) -> list[RetrievalMethod]:
        """Check a search request and return its deduplicated methods."""
        if not query or not query.strip():
            raise ValidationError("Enter a search query.")
        if not collection_ids:
            raise ValidationError("Select at least one collection.")
        if top_k < 1:
            raise ValidationError(f"top_k must be >= 1, got {top_k}")
        return validate_methods(methods)
