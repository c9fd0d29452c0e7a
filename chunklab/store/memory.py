"""In-process stores. Nothing survives the process; handy for tests and notebooks."""

from .base import Collection, CollectionStore, FileStore, SourceFile


class InMemoryCollectionStore(CollectionStore):
    """Collections kept in an insertion-ordered dict."""

    def __init__(self) -> None:
        self._items: dict[str, Collection] = {}

    def save(self, collection: Collection) -> None:
        self._items[collection.id] = collection

    def get(self, collection_id: str) -> Collection | None:
        return self._items.get(collection_id)

    def list_all(self) -> list[Collection]:
        return list(self._items.values())

    def delete(self, collection_id: str) -> None:
        self._items.pop(collection_id, None)

    def clear(self) -> None:
        self._items.clear()


class InMemoryFileStore(FileStore):
    """Source files kept in an insertion-ordered dict."""

    def __init__(self) -> None:
        self._items: dict[str, SourceFile] = {}

    def save(self, source_file: SourceFile) -> None:
        self._items[source_file.id] = source_file

    def get(self, file_id: str) -> SourceFile | None:
        return self._items.get(file_id)

    def list_all(self) -> list[SourceFile]:
        return list(self._items.values())

    def delete(self, file_id: str) -> None:
        self._items.pop(file_id, None)
