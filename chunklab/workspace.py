"""
The user's working set: uploaded files, built collections, experiment history.

A Workspace wires the stores, the collection builder and the retrieval
engine together and keeps the lists a front end shows. The visible lists
only change after the matching store call succeeded, so a failed delete
never hides an item that is still on disk.

Example:
    >>> ws = open_workspace(load_config())
    >>> ws.add_files(["notes.md"])
    >>> result = ws.process([f.id for f in ws.files], ["recursive", "sentence"])
    >>> hits = ws.search("budget cuts", [c.id for c in ws.collections], ["hybrid"])
"""

import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from .embeddings import Embedder, get_embedder
from .errors import ValidationError
from .experiments import Experiment, ExperimentLog
from .ingest import load_source_file
from .pipeline import BatchResult, CollectionBuilder, TaskListener
from .retrieval import RetrievalEngine, RetrievalMethod, SearchResult
from .store import Collection, CollectionStore, FileStore, SourceFile, get_stores
from .strategies import ChunkingMethod, ChunkParams

logger = logging.getLogger(__name__)

EXPERIMENTS_FILE = "experiments.json"


class Workspace:
    """
    Files, collections and experiments, plus the operations on them.

    Attributes:
        embedding_model: Model name used when no embedder was injected
    """

    def __init__(
        self,
        file_store: FileStore,
        collection_store: CollectionStore,
        experiment_log: ExperimentLog,
        embedder: Embedder | None = None,
        embedding_model: str = "text-embedding-3-small",
    ):
        self.file_store = file_store
        self.collection_store = collection_store
        self.experiment_log = experiment_log
        self.embedding_model = embedding_model
        self._embedder = embedder
        self._listeners: list[TaskListener] = []

        # Raises StorageError if the stores cannot be read
        self._files: list[SourceFile] = file_store.list_all()
        self._collections: list[Collection] = collection_store.list_all()
        logger.debug(
            "Workspace loaded: %d file(s), %d collection(s), %d experiment(s)",
            len(self._files), len(self._collections), len(experiment_log),
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def files(self) -> list[SourceFile]:
        return list(self._files)

    @property
    def collections(self) -> list[Collection]:
        return list(self._collections)

    @property
    def experiments(self) -> list[Experiment]:
        return self.experiment_log.entries

    @property
    def embedder(self) -> Embedder:
        """The injected embedder, or one built from embedding_model on first use."""
        if self._embedder is None:
            self._embedder = get_embedder(self.embedding_model)
        return self._embedder

    def get_file(self, file_id: str) -> SourceFile | None:
        return next((f for f in self._files if f.id == file_id), None)

    def get_collection(self, collection_id: str) -> Collection | None:
        return next((c for c in self._collections if c.id == collection_id), None)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def add_files(self, sources: Sequence[str | Path | SourceFile]) -> list[SourceFile]:
        """
        Ingest and persist files.

        Paths are read with load_source_file. Each file becomes visible as
        soon as it is saved; the first failure stops the loop and is raised.

        Raises:
            ValidationError: If a path cannot be read
            StorageError: If saving fails
        """
        parsed = [
            s if isinstance(s, SourceFile) else load_source_file(s)
            for s in sources
        ]
        for source_file in parsed:
            self.file_store.save(source_file)
            self._files.append(source_file)
            logger.info("Added %s (%d chars)", source_file.name, len(source_file.content))
        return parsed

    def remove_file(self, file_id: str) -> None:
        """Delete a file. Collections built from it are kept."""
        self.file_store.delete(file_id)
        self._files = [f for f in self._files if f.id != file_id]

    def clear_files(self) -> None:
        for source_file in list(self._files):
            self.remove_file(source_file.id)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def delete_collection(self, collection_id: str) -> None:
        self.collection_store.delete(collection_id)
        self._collections = [c for c in self._collections if c.id != collection_id]

    def clear_collections(self) -> None:
        self.collection_store.clear()
        self._collections = []

    # ------------------------------------------------------------------
    # Processing and search
    # ------------------------------------------------------------------

    def add_listener(self, listener: TaskListener) -> None:
        """Subscribe to task events of every future process() call."""
        self._listeners.append(listener)

    def process(
        self,
        file_ids: Sequence[str],
        methods: Sequence[ChunkingMethod | str],
        params: Mapping[ChunkingMethod, ChunkParams] | None = None,
    ) -> BatchResult:
        """
        Build collections for every (file, method) pair.

        Raises:
            ValidationError: If no files are selected or an id is unknown
        """
        if not file_ids:
            raise ValidationError("Select at least one file.")
        unknown = [fid for fid in file_ids if self.get_file(fid) is None]
        if unknown:
            raise ValidationError(f"Unknown file id(s): {', '.join(unknown)}")

        builder = CollectionBuilder(self.embedder, self.collection_store, self.experiment_log)
        for listener in self._listeners:
            builder.add_listener(listener)

        result = builder.build([self.get_file(fid) for fid in file_ids], methods, params)
        self._collections.extend(result.collections)
        return result

    def search(
        self,
        query: str,
        collection_ids: Sequence[str],
        methods: Sequence[RetrievalMethod | str] = (RetrievalMethod.DENSE,),
        top_k: int = 5,
    ) -> list[SearchResult]:
        """
        Rank chunks of the selected visible collections.

        Same contract as RetrievalEngine.search, except that ids missing
        from the workspace are skipped even if the store still has them.
        """
        method_list = RetrievalEngine.validate(query, collection_ids, methods, top_k)

        selected = []
        for collection_id in dict.fromkeys(collection_ids):
            collection = self.get_collection(collection_id)
            if collection is None:
                logger.warning("Collection %s is not in the workspace; skipping", collection_id)
                continue
            selected.append(collection)

        if not selected:
            return []
        engine = RetrievalEngine(self.embedder, self.collection_store)
        return engine.search_collections(query, selected, method_list, top_k)

    def summary(self) -> dict[str, Any]:
        return {
            "files": len(self._files),
            "collections": len(self._collections),
            "experiments": len(self.experiment_log),
        }


def open_workspace(cfg: Mapping[str, Any], embedder: Embedder | None = None) -> Workspace:
    """
    Open the workspace described by a loaded config.

    Raises:
        StorageError: If stored data cannot be read
        ValueError: If the store backend is unknown
    """
    backend = cfg.get("store_backend", "json")
    data_dir = Path(cfg["data_dir"]).expanduser()
    file_store, collection_store = get_stores(backend, data_dir)
    log_path = data_dir / EXPERIMENTS_FILE if backend == "json" else None
    return Workspace(
        file_store,
        collection_store,
        ExperimentLog(log_path),
        embedder=embedder,
        embedding_model=cfg.get("embedding_model", "text-embedding-3-small"),
    )
