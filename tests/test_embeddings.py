"""Tests for the embedding adapter."""

import pytest
from llama_index.core.embeddings import MockEmbedding

from chunklab.embeddings import (
    MOCK_EMBED_DIM,
    LlamaIndexEmbedder,
    classify_exception,
    get_embedder,
)
from chunklab.errors import EmbeddingError, EmbeddingErrorCause


class BrokenModel:
    model_name = "broken"

    def __init__(self, error):
        self.error = error

    def get_text_embedding_batch(self, texts):
        raise self.error

    def get_query_embedding(self, text):
        raise self.error


def test_classify_exception():
    assert classify_exception(ConnectionError("refused")) is EmbeddingErrorCause.CONNECTIVITY
    assert classify_exception(TimeoutError()) is EmbeddingErrorCause.CONNECTIVITY
    assert classify_exception(ImportError("no module")) is EmbeddingErrorCause.CONNECTIVITY
    assert classify_exception(MemoryError()) is EmbeddingErrorCause.ACCELERATION
    assert classify_exception(ValueError("bad")) is EmbeddingErrorCause.GENERIC

    wrapped = EmbeddingError("x", cause=EmbeddingErrorCause.ACCELERATION)
    assert classify_exception(wrapped) is EmbeddingErrorCause.ACCELERATION


def test_mock_embedder():
    embedder = get_embedder("mock")
    assert embedder.model_name == "mock"

    vectors = embedder.embed_batch(["one", "two", "three"])
    assert len(vectors) == 3
    assert all(len(v) == MOCK_EMBED_DIM for v in vectors)
    assert len(embedder.embed_query("one")) == MOCK_EMBED_DIM
    assert embedder.embed_batch([]) == []


def test_model_name_from_llamaindex_model():
    embedder = LlamaIndexEmbedder(MockEmbedding(embed_dim=4, model_name="tiny"))
    assert embedder.model_name == "tiny"


def test_failures_are_wrapped():
    embedder = LlamaIndexEmbedder(BrokenModel(ConnectionError("refused")))

    with pytest.raises(EmbeddingError) as excinfo:
        embedder.embed_batch(["text"])
    assert excinfo.value.cause is EmbeddingErrorCause.CONNECTIVITY
    assert isinstance(excinfo.value.__cause__, ConnectionError)
    assert "ConnectionError: refused" in excinfo.value.detail

    with pytest.raises(EmbeddingError) as excinfo:
        LlamaIndexEmbedder(BrokenModel(RuntimeError("boom"))).embed_query("q")
    assert excinfo.value.cause is EmbeddingErrorCause.GENERIC
