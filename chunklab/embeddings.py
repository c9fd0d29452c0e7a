"""
Embedding collaborators.

The collection builder and the retrieval engine never talk to a model
directly; they receive an Embedder:

    embed_batch(texts) -> one vector per text, same order
    embed_query(text)  -> one vector, comparable with embed_batch output

Any LlamaIndex embedding model can be plugged in through
LlamaIndexEmbedder. Failures are re-raised as EmbeddingError with a
cause picked from the exception TYPE (network errors, missing model
packages, out-of-memory), so callers can explain the failure without
parsing messages.

Example:
    >>> from llama_index.embeddings.openai import OpenAIEmbedding
    >>> embedder = LlamaIndexEmbedder(OpenAIEmbedding(model="text-embedding-3-small"))
    >>> vectors = embedder.embed_batch(["first chunk", "second chunk"])
"""

import logging
from abc import ABC, abstractmethod

import openai
from llama_index.core.embeddings import BaseEmbedding, MockEmbedding

from .errors import EmbeddingError, EmbeddingErrorCause, format_technical

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

# Name that selects the offline MockEmbedding (constant vectors)
MOCK_MODEL = "mock"
MOCK_EMBED_DIM = 8

_CONNECTIVITY_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,
    ConnectionError,
    TimeoutError,
    ImportError,
)
_ACCELERATION_ERRORS: tuple[type[BaseException], ...] = (MemoryError,)


def classify_exception(exc: BaseException) -> EmbeddingErrorCause:
    """Map an exception raised by a model to a failure category."""
    if isinstance(exc, EmbeddingError):
        return exc.cause
    if isinstance(exc, _CONNECTIVITY_ERRORS):
        return EmbeddingErrorCause.CONNECTIVITY
    if isinstance(exc, _ACCELERATION_ERRORS):
        return EmbeddingErrorCause.ACCELERATION
    return EmbeddingErrorCause.GENERIC


class Embedder(ABC):
    """
    Abstract embedding collaborator.

    Implementations raise EmbeddingError on failure. Timeouts are the
    implementation's business; callers only see success or failure.
    """

    model_name: str = "unknown"

    @abstractmethod
    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed texts, returning one vector per text in the same order."""

    @abstractmethod
    def embed_query(self, text: str) -> list[float]:
        """Embed a search query."""


class LlamaIndexEmbedder(Embedder):
    """
    Adapter around any LlamaIndex BaseEmbedding.

    Attributes:
        model_name: Name recorded on the collections it embeds
    """

    def __init__(self, embed_model: BaseEmbedding, model_name: str | None = None):
        self._embed_model = embed_model
        self.model_name = model_name or getattr(embed_model, "model_name", None) or "unknown"

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            return self._embed_model.get_text_embedding_batch(texts)
        except Exception as e:
            raise self._wrap(e, f"Embedding {len(texts)} texts failed") from e

    def embed_query(self, text: str) -> list[float]:
        try:
            return self._embed_model.get_query_embedding(text)
        except Exception as e:
            raise self._wrap(e, "Embedding the query failed") from e

    def _wrap(self, exc: Exception, message: str) -> EmbeddingError:
        cause = classify_exception(exc)
        logger.warning("%s with %s (%s): %s", message, self.model_name, cause.value, exc)
        return EmbeddingError(
            f"{message}: {exc}",
            cause=cause,
            detail=format_technical(exc),
        )

    def __repr__(self) -> str:
        return f"LlamaIndexEmbedder(model_name={self.model_name!r})"


def get_embedder(model_name: str = DEFAULT_EMBEDDING_MODEL) -> Embedder:
    """
    Factory function to build an embedder by model name.

    "mock" gives LlamaIndex's MockEmbedding (offline, constant vectors);
    anything else is treated as an OpenAI embedding model and needs
    OPENAI_API_KEY in the environment.
    """
    if model_name == MOCK_MODEL:
        return LlamaIndexEmbedder(MockEmbedding(embed_dim=MOCK_EMBED_DIM), model_name=MOCK_MODEL)

    from llama_index.embeddings.openai import OpenAIEmbedding

    return LlamaIndexEmbedder(OpenAIEmbedding(model=model_name), model_name=model_name)
