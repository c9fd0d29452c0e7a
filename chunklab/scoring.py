"""
Similarity and ranking functions for retrieval experiments.

Three ways to score a chunk against a query:

1. Dense (cosine similarity) - compares embedding vectors
   - Natively in [-1, 1]; in practice [0, 1] for normalized embeddings
   - Captures paraphrase and meaning, misses rare exact terms

2. Sparse (BM25) - lexical term matching
   - Raw scores are unbounded (>= 0) and corpus-dependent
   - Normalized for comparison by dividing by max(scores, 1)

3. Hybrid - weighted fusion of the two
   - hybrid = 0.7 * dense + 0.3 * normalized_sparse
   - Weights are fixed module constants

BM25 statistics (document frequency, average length, IDF) are computed
over the documents passed in, i.e. the chunks of the collection being
searched, never over a global corpus. The same chunk therefore scores
differently in different collections.
"""

import math
import re
from collections import Counter
from typing import Sequence

import numpy as np

# BM25 parameters
BM25_K1 = 1.5
BM25_B = 0.75

# Hybrid fusion weights
DENSE_WEIGHT = 0.7
SPARSE_WEIGHT = 0.3

_TOKEN = re.compile(r"[^\W_]+")


def tokenize(text: str) -> list[str]:
    """Lowercase and split on runs of non-alphanumeric characters."""
    return _TOKEN.findall(text.lower())


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Returns 0.0 when either vector has zero norm.

    Raises:
        ValueError: If the vectors have different lengths
    """
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} vs {vb.shape[0]}")

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


def compute_bm25(query: str, documents: Sequence[str]) -> list[float]:
    """
    Score every document against the query with BM25.

    Uses the non-negative IDF variant ln(1 + (N - df + 0.5) / (df + 0.5)),
    so scores are always >= 0. Repeated query terms count once per
    occurrence.

    Args:
        query: Free-text query
        documents: The corpus to score (its statistics define IDF)

    Returns:
        One raw score per document, in input order

    Example:
        >>> compute_bm25("cat", ["the cat sat", "the dog sat"])
        [0.69..., 0.0]
    """
    if not documents:
        return []

    doc_tokens = [tokenize(doc) for doc in documents]
    query_terms = tokenize(query)
    n_docs = len(doc_tokens)
    avg_len = sum(len(tokens) for tokens in doc_tokens) / n_docs

    if not query_terms or avg_len == 0:
        return [0.0] * n_docs

    doc_freq: Counter = Counter()
    for tokens in doc_tokens:
        doc_freq.update(set(tokens))

    idf = {
        term: math.log(1 + (n_docs - doc_freq[term] + 0.5) / (doc_freq[term] + 0.5))
        for term in set(query_terms)
    }

    scores = []
    for tokens in doc_tokens:
        term_freq = Counter(tokens)
        length_norm = 1 - BM25_B + BM25_B * len(tokens) / avg_len
        score = 0.0
        for term in query_terms:
            tf = term_freq[term]
            if tf:
                score += idf[term] * tf * (BM25_K1 + 1) / (tf + BM25_K1 * length_norm)
        scores.append(score)

    return scores


def normalize_sparse(scores: Sequence[float]) -> list[float]:
    """Map raw BM25 scores into [0, 1] by dividing by max(scores, 1)."""
    if not scores:
        return []
    denominator = max(max(scores), 1.0)
    return [s / denominator for s in scores]


def hybrid_scores(dense: Sequence[float], sparse: Sequence[float]) -> list[float]:
    """
    Fuse index-aligned dense and raw sparse scores.

    Both sequences must score the same chunks in the same order.

    Raises:
        ValueError: If the sequences have different lengths
    """
    if len(dense) != len(sparse):
        raise ValueError(
            f"Dense and sparse scores are not aligned: {len(dense)} vs {len(sparse)}"
        )
    return [
        DENSE_WEIGHT * d + SPARSE_WEIGHT * s
        for d, s in zip(dense, normalize_sparse(sparse))
    ]
