"""Shared fixtures: a deterministic fake embedder and record factories."""

import zlib

import pytest

from chunklab.embeddings import Embedder
from chunklab.errors import EmbeddingError, EmbeddingErrorCause
from chunklab.scoring import tokenize
from chunklab.store import Chunk, Collection, SourceFile
from chunklab.strategies import ChunkingMethod, params_for

SAMPLE_TEXT = (
    "Inflation rose sharply in the spring. Central banks responded by raising rates.\n\n"
    "Higher rates cooled the housing market. Mortgage applications fell for three months.\n\n"
    "Meanwhile the football season ended early. The home team won the final match on penalties.\n\n"
    "Analysts expect inflation to ease next year as energy prices stabilize."
)


class FakeEmbedder(Embedder):
    """Bag-of-words vectors hashed into a fixed number of buckets."""

    model_name = "fake"

    def __init__(self, dim: int = 64, fail_on_calls=(), error: Exception | None = None):
        self.dim = dim
        self.fail_on_calls = set(fail_on_calls)
        self.error = error or EmbeddingError(
            "model unavailable", cause=EmbeddingErrorCause.CONNECTIVITY
        )
        self.batch_calls = 0
        self.query_calls = 0

    def vector(self, text: str) -> list[float]:
        v = [0.0] * self.dim
        for token in tokenize(text):
            v[zlib.crc32(token.encode()) % self.dim] += 1.0
        return v

    def embed_batch(self, texts):
        self.batch_calls += 1
        if self.batch_calls in self.fail_on_calls:
            raise self.error
        return [self.vector(t) for t in texts]

    def embed_query(self, text):
        self.query_calls += 1
        return self.vector(text)


@pytest.fixture
def sample_text():
    return SAMPLE_TEXT


@pytest.fixture
def embedder():
    return FakeEmbedder()


@pytest.fixture
def make_file():
    def _make(file_id="f1", name="doc.txt", content=SAMPLE_TEXT, uploaded_at="2024-01-01T00:00:00+00:00"):
        return SourceFile(
            id=file_id,
            name=name,
            type="text",
            size=len(content.encode()),
            content=content,
            uploaded_at=uploaded_at,
        )
    return _make


@pytest.fixture
def make_collection(embedder):
    def _make(texts, collection_id="col_1", method=ChunkingMethod.FIXED, created_at="2024-01-01T00:00:00+00:00"):
        chunks = tuple(
            Chunk(
                id=f"chunk_{i}",
                text=text,
                index=i,
                source_file_id="f1",
                source_file_name="doc.txt",
                chunk_method=method,
                metadata={"char_length": len(text)},
            )
            for i, text in enumerate(texts)
        )
        return Collection(
            id=collection_id,
            name=f"doc.txt_{method.value}_{collection_id}",
            chunk_method=method,
            source_file_id="f1",
            source_file_name="doc.txt",
            chunk_count=len(chunks),
            params=params_for(method),
            created_at=created_at,
            chunks=chunks,
            vectors=tuple(tuple(embedder.vector(t)) for t in texts),
            embedding_model=embedder.model_name,
        )
    return _make
