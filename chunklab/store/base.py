"""
Records and store interfaces for source files and collections.

This module defines the records that flow between the ingestion
adapter, the collection builder and the retrieval engine, plus the
abstract store interfaces they are persisted through.

The Records:
============
- SourceFile: plain text extracted from an uploaded file
- Chunk: one retrievable span of a source file
- Collection: all chunks of one (file, method) run plus one embedding
  per chunk

A Collection is built in full before it is saved and is never modified
afterwards, so readers can never observe a half-built one. Its
invariant is checked at construction:

    len(vectors) == len(chunks) == chunk_count

and chunks[i].index == i, so vectors[i] is always the embedding of
chunks[i].text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..errors import CollectionIntegrityError
from ..strategies import ChunkingMethod, ChunkParams, params_from_dict, params_to_dict


@dataclass
class SourceFile:
    """
    A file after parsing to plain text.

    Attributes:
        id: Unique identifier
        name: Original file name
        type: One of "text", "csv", "pdf", "markdown"
        size: Original size in bytes
        content: Extracted plain text
        uploaded_at: ISO-8601 timestamp
    """

    id: str
    name: str
    type: str
    size: int
    content: str
    uploaded_at: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "content": self.content,
            "uploaded_at": self.uploaded_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SourceFile":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            name=data["name"],
            type=data.get("type", "text"),
            size=data.get("size", len(data.get("content", ""))),
            content=data.get("content", ""),
            uploaded_at=data.get("uploaded_at", ""),
        )


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous span of source text treated as one retrievable unit.

    Attributes:
        id: Identifier, unique within the collection ("chunk_<index>")
        text: Chunk text
        index: 0-based position within its source
        source_file_id: ID of the file it came from
        source_file_name: Name of the file it came from
        chunk_method: Method that produced it
        metadata: Free-form extra data
    """

    id: str
    text: str
    index: int
    source_file_id: str
    source_file_name: str
    chunk_method: ChunkingMethod
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "index": self.index,
            "source_file_id": self.source_file_id,
            "source_file_name": self.source_file_name,
            "chunk_method": self.chunk_method.value,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chunk":
        return cls(
            id=data["id"],
            text=data["text"],
            index=data["index"],
            source_file_id=data["source_file_id"],
            source_file_name=data["source_file_name"],
            chunk_method=ChunkingMethod(data["chunk_method"]),
            metadata=data.get("metadata", {}),
        )


@dataclass(frozen=True)
class Collection:
    """
    The chunked-and-embedded output of one (file, method) processing run.

    Attributes:
        id: Unique identifier ("col_<hex>")
        name: Display name, unique across runs
        chunk_method: Method used to chunk the source
        source_file_id: ID of the source file
        source_file_name: Name of the source file
        chunk_count: Number of chunks (== len(chunks) == len(vectors))
        params: Chunking parameters used
        created_at: ISO-8601 timestamp
        chunks: Ordered chunks
        vectors: One embedding per chunk, same order
        embedding_model: Name of the model that produced the vectors

    Raises:
        CollectionIntegrityError: If chunks, vectors and chunk_count disagree
    """

    id: str
    name: str
    chunk_method: ChunkingMethod
    source_file_id: str
    source_file_name: str
    chunk_count: int
    params: ChunkParams
    created_at: str
    chunks: tuple[Chunk, ...]
    vectors: tuple[tuple[float, ...], ...]
    embedding_model: str = ""

    def __post_init__(self) -> None:
        if not (len(self.chunks) == len(self.vectors) == self.chunk_count):
            raise CollectionIntegrityError(
                f"Collection {self.id}: {len(self.chunks)} chunks, "
                f"{len(self.vectors)} vectors, chunk_count={self.chunk_count}"
            )
        for position, chunk in enumerate(self.chunks):
            if chunk.index != position:
                raise CollectionIntegrityError(
                    f"Collection {self.id}: chunk at position {position} "
                    f"has index {chunk.index}"
                )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "chunk_method": self.chunk_method.value,
            "source_file_id": self.source_file_id,
            "source_file_name": self.source_file_name,
            "chunk_count": self.chunk_count,
            "params": params_to_dict(self.params),
            "created_at": self.created_at,
            "chunks": [c.to_dict() for c in self.chunks],
            "vectors": [list(v) for v in self.vectors],
            "embedding_model": self.embedding_model,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Collection":
        """Create from dictionary (inverse of to_dict)."""
        return cls(
            id=data["id"],
            name=data["name"],
            chunk_method=ChunkingMethod(data["chunk_method"]),
            source_file_id=data["source_file_id"],
            source_file_name=data["source_file_name"],
            chunk_count=data["chunk_count"],
            params=params_from_dict(data["params"]),
            created_at=data["created_at"],
            chunks=tuple(Chunk.from_dict(c) for c in data["chunks"]),
            vectors=tuple(tuple(v) for v in data["vectors"]),
            embedding_model=data.get("embedding_model", ""),
        )


class CollectionStore(ABC):
    """
    Persistence interface for collections.

    Implementations must save a collection atomically (all or nothing)
    and raise StorageError on failure.
    """

    @abstractmethod
    def save(self, collection: Collection) -> None:
        """Persist a collection, replacing any with the same id."""

    @abstractmethod
    def get(self, collection_id: str) -> Collection | None:
        """Return a collection by id, or None."""

    @abstractmethod
    def list_all(self) -> list[Collection]:
        """Return all collections, oldest first."""

    @abstractmethod
    def delete(self, collection_id: str) -> None:
        """Delete a collection. Deleting a missing id is not an error."""

    @abstractmethod
    def clear(self) -> None:
        """Delete every collection."""


class FileStore(ABC):
    """Persistence interface for parsed source files."""

    @abstractmethod
    def save(self, source_file: SourceFile) -> None:
        """Persist a file, replacing any with the same id."""

    @abstractmethod
    def get(self, file_id: str) -> SourceFile | None:
        """Return a file by id, or None."""

    @abstractmethod
    def list_all(self) -> list[SourceFile]:
        """Return all files, oldest first."""

    @abstractmethod
    def delete(self, file_id: str) -> None:
        """Delete a file. Deleting a missing id is not an error."""
