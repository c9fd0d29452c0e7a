"""
Store Registry

Persistence for source files and collections.

Available Backends:
    - memory: In-process dicts (nothing is persisted)
    - json: One JSON document per record under a data directory

Usage:
    >>> from chunklab.store import get_stores
    >>> file_store, collection_store = get_stores("json", data_dir="~/.chunklab")
"""

from pathlib import Path

from .base import Chunk, Collection, CollectionStore, FileStore, SourceFile
from .json_store import JsonCollectionStore, JsonFileStore
from .memory import InMemoryCollectionStore, InMemoryFileStore

BACKENDS = ("memory", "json")


def get_stores(
    backend: str = "json",
    data_dir: str | Path | None = None,
) -> tuple[FileStore, CollectionStore]:
    """
    Factory function returning a (file store, collection store) pair.

    Raises:
        ValueError: If the backend is unknown or json is chosen without data_dir
    """
    if backend == "memory":
        return InMemoryFileStore(), InMemoryCollectionStore()
    if backend == "json":
        if data_dir is None:
            raise ValueError("The json backend requires a data_dir")
        root = Path(data_dir).expanduser()
        return JsonFileStore(root / "files"), JsonCollectionStore(root / "collections")

    available = ", ".join(BACKENDS)
    raise ValueError(f"Unknown store backend '{backend}'. Available backends: {available}")


__all__ = [
    "Chunk",
    "Collection",
    "SourceFile",
    "CollectionStore",
    "FileStore",
    "InMemoryCollectionStore",
    "InMemoryFileStore",
    "JsonCollectionStore",
    "JsonFileStore",
    "BACKENDS",
    "get_stores",
]
