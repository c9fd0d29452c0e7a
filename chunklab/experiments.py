"""
Experiment history.

Every processing batch that runs to completion leaves one Experiment
record behind: which files and methods were used, with which
parameters, how many chunks each method produced and how long it took.

The log is append-only. It is loaded once when opened and the whole
list is rewritten on every append:

    <data_dir>/experiments.json   # [ {experiment}, {experiment}, ... ]
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import StorageError
from .strategies import ChunkingMethod, ChunkParams, params_from_dict, params_to_dict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Experiment:
    """
    Audit record of one processing batch.

    Attributes:
        id: Unique identifier ("exp_<epoch-ms>")
        timestamp: ISO-8601 time the batch finished
        files_processed: Names of the files in the batch
        chunk_methods: Methods requested
        params: Parameters per method
        chunk_counts: Chunks produced per method (successful tasks only)
        processing_time_ms: Wall-clock duration of the batch
    """

    id: str
    timestamp: str
    files_processed: list[str]
    chunk_methods: list[ChunkingMethod]
    params: dict[ChunkingMethod, ChunkParams]
    chunk_counts: dict[ChunkingMethod, int] = field(default_factory=dict)
    processing_time_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "files_processed": list(self.files_processed),
            "chunk_methods": [m.value for m in self.chunk_methods],
            "params": {m.value: params_to_dict(p) for m, p in self.params.items()},
            "chunk_counts": {m.value: n for m, n in self.chunk_counts.items()},
            "processing_time_ms": self.processing_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Experiment":
        """Create from dictionary (inverse of to_dict)."""
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            files_processed=list(data.get("files_processed", [])),
            chunk_methods=[ChunkingMethod(m) for m in data.get("chunk_methods", [])],
            params={
                ChunkingMethod(m): params_from_dict(p)
                for m, p in data.get("params", {}).items()
            },
            chunk_counts={
                ChunkingMethod(m): n for m, n in data.get("chunk_counts", {}).items()
            },
            processing_time_ms=data.get("processing_time_ms", 0),
        )


class ExperimentLog:
    """
    Append-only list of Experiment records.

    With a path, the log is loaded at construction and rewritten in full
    on every append. Without one, it lives in memory only.

    Example:
        >>> log = ExperimentLog("~/.chunklab/experiments.json")
        >>> log.append(experiment)
        >>> len(log)
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path).expanduser() if path is not None else None
        self._entries: list[Experiment] = self._load()

    def _load(self) -> list[Experiment]:
        if self.path is None or not self.path.exists():
            return []
        try:
            with open(self.path) as f:
                data = json.load(f)
            return [Experiment.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to load experiment history {self.path}: {e}") from e

    def append(self, experiment: Experiment) -> None:
        """
        Add a record and persist the whole log.

        Raises:
            StorageError: If the log cannot be written (the record is not kept)
        """
        entries = self._entries + [experiment]
        if self.path is not None:
            self._write(entries)
        self._entries = entries
        logger.info("Recorded experiment %s", experiment.id)

    def _write(self, entries: list[Experiment]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump([e.to_dict() for e in entries], f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise StorageError(f"Failed to save experiment history {self.path}: {e}") from e

    @property
    def entries(self) -> list[Experiment]:
        """All records, oldest first."""
        return list(self._entries)

    def latest(self) -> Experiment | None:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
