"""
JSON-on-disk stores.

One JSON document per record, in the same spirit as the per-config
result files of the experiment runner:

    <data_dir>/
    ├── files/
    │   └── <file_id>.json
    └── collections/
        └── <collection_id>.json

Records are written to a temporary file and renamed into place, so a
crash mid-write never leaves a truncated collection behind. Listing
returns records ordered by their creation/upload timestamp.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, TypeVar

from ..errors import CollectionIntegrityError, StorageError
from .base import Collection, CollectionStore, FileStore, SourceFile

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _JsonDirectory:
    """Reads and writes one JSON document per record id."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create store directory {self.directory}: {e}") from e

    def _path(self, record_id: str) -> Path:
        if not record_id or "/" in record_id or record_id.startswith("."):
            raise StorageError(f"Invalid record id: {record_id!r}")
        return self.directory / f"{record_id}.json"

    def write(self, record_id: str, data: dict[str, Any]) -> None:
        path = self._path(record_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w") as f:
                json.dump(data, f)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Failed to save {path.name}: {e}") from e

    def read(self, record_id: str, parse: Callable[[dict[str, Any]], T]) -> T | None:
        path = self._path(record_id)
        if not path.exists():
            return None
        return self._load(path, parse)

    def read_all(self, parse: Callable[[dict[str, Any]], T]) -> list[T]:
        try:
            paths = sorted(self.directory.glob("*.json"))
        except OSError as e:
            raise StorageError(f"Failed to list {self.directory}: {e}") from e
        return [self._load(path, parse) for path in paths]

    def remove(self, record_id: str) -> None:
        try:
            self._path(record_id).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {record_id}: {e}") from e

    def remove_all(self) -> None:
        for path in self.directory.glob("*.json"):
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Failed to delete {path.name}: {e}") from e

    @staticmethod
    def _load(path: Path, parse: Callable[[dict[str, Any]], T]) -> T:
        try:
            with open(path) as f:
                return parse(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, CollectionIntegrityError) as e:
            raise StorageError(f"Failed to load {path.name}: {e}") from e


class JsonCollectionStore(CollectionStore):
    """
    Collections persisted as JSON documents.

    Example:
        >>> store = JsonCollectionStore("~/.chunklab/collections")
        >>> store.save(collection)
        >>> [c.name for c in store.list_all()]
    """

    def __init__(self, directory: str | Path):
        self._dir = _JsonDirectory(Path(directory).expanduser())

    def save(self, collection: Collection) -> None:
        self._dir.write(collection.id, collection.to_dict())
        logger.debug("Saved collection %s (%d chunks)", collection.id, collection.chunk_count)

    def get(self, collection_id: str) -> Collection | None:
        return self._dir.read(collection_id, Collection.from_dict)

    def list_all(self) -> list[Collection]:
        collections = self._dir.read_all(Collection.from_dict)
        return sorted(collections, key=lambda c: c.created_at)

    def delete(self, collection_id: str) -> None:
        self._dir.remove(collection_id)

    def clear(self) -> None:
        self._dir.remove_all()


class JsonFileStore(FileStore):
    """Source files persisted as JSON documents."""

    def __init__(self, directory: str | Path):
        self._dir = _JsonDirectory(Path(directory).expanduser())

    def save(self, source_file: SourceFile) -> None:
        self._dir.write(source_file.id, source_file.to_dict())

    def get(self, file_id: str) -> SourceFile | None:
        return self._dir.read(file_id, SourceFile.from_dict)

    def list_all(self) -> list[SourceFile]:
        files = self._dir.read_all(SourceFile.from_dict)
        return sorted(files, key=lambda f: f.uploaded_at)

    def delete(self, file_id: str) -> None:
        self._dir.remove(file_id)
