"""
Batch pipeline that turns source files into embedded collections.

This module provides the CollectionBuilder class that orchestrates one
processing batch: for every (file, method) pair it chunks the file,
embeds the chunks and saves the result as a Collection.

The Task State Machine:
=======================

    waiting(0) → chunking(20) → vectorizing(50) → vectorizing(80) → finished(100)
         ↓            ↓               ↓                  ↓
       error(0)    error(0)        error(0)           error(0)

- One task per (file, method) pair, task_id = "<file_id>_<method>"
- Status never moves backward; every transition is emitted as a TaskEvent
- Up to 3 sample chunks are captured after chunking
- A failing task is marked `error` and the batch moves on; siblings are
  never aborted

Step-by-step:
1. Enqueue every (file, method) task as `waiting`
2. For each task, in program order (files outer, methods inner):
   a. Chunk the file with the method's parameters
   b. Embed all chunks in one embedder call
   c. Build the Collection and save it (visible only once complete)
3. Append one Experiment record once every task is terminal

Failure Modes:
==============
- Task failure: recorded on the task (human message + technical detail),
  batch continues, the task's chunks are left out of the Experiment
- Batch failure (anything outside a task, e.g. a listener or the
  experiment log raising): returned as BatchResult.global_error, no
  Experiment is written, collections already saved stay saved
- Cancellation: cancel() stops the batch before the next task starts;
  unstarted tasks stay `waiting` and no Experiment is written

Example:
    >>> builder = CollectionBuilder(embedder, collection_store, ExperimentLog())
    >>> builder.add_listener(lambda event: print(event.task.status, event.task.progress))
    >>> result = builder.build(files, [ChunkingMethod.RECURSIVE, ChunkingMethod.TOKEN])
    >>> print(f"{len(result.finished)} finished, {len(result.failed)} failed")
"""

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Mapping, Sequence

from .embeddings import Embedder
from .errors import EmbeddingError, ErrorInfo, ValidationError, format_technical
from .experiments import Experiment, ExperimentLog
from .store import Chunk, Collection, CollectionStore, SourceFile
from .strategies import STRATEGIES, ChunkingMethod, ChunkParams, params_for

logger = logging.getLogger(__name__)

SAMPLE_CHUNK_COUNT = 3

CRITICAL_FAILURE_MESSAGE = "A critical failure occurred during the processing batch."


class TaskStatus(str, Enum):
    """Lifecycle states of a processing task."""

    WAITING = "waiting"
    CHUNKING = "chunking"
    VECTORIZING = "vectorizing"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.FINISHED, TaskStatus.ERROR)


# Position of each status in the lifecycle; transitions may not go backward
_STAGE = {
    TaskStatus.WAITING: 0,
    TaskStatus.CHUNKING: 1,
    TaskStatus.VECTORIZING: 2,
    TaskStatus.FINISHED: 3,
    TaskStatus.ERROR: 3,
}


class InvalidTransitionError(RuntimeError):
    """A task was asked to move backward or out of a terminal state."""


@dataclass(frozen=True)
class ProcessingTask:
    """
    Snapshot of one (file, method) task.

    Attributes:
        task_id: "<file_id>_<method>"
        file_name: Source file name
        method: Chunking method
        status: Current lifecycle state
        progress: 0-100
        error: Set when status is ERROR
        sample_chunks: First chunks produced, for a quick look
    """

    task_id: str
    file_name: str
    method: ChunkingMethod
    status: TaskStatus = TaskStatus.WAITING
    progress: int = 0
    error: ErrorInfo | None = None
    sample_chunks: tuple[str, ...] = ()

    def advance(
        self,
        status: TaskStatus,
        progress: int,
        error: ErrorInfo | None = None,
        sample_chunks: Sequence[str] | None = None,
    ) -> "ProcessingTask":
        """
        Return the task moved to a new state.

        Staying in the same non-terminal state is allowed (progress
        updates); moving backward or leaving a terminal state is not.

        Raises:
            InvalidTransitionError: On a backward or post-terminal transition
        """
        if self.status.is_terminal or _STAGE[status] < _STAGE[self.status]:
            raise InvalidTransitionError(
                f"Task {self.task_id}: cannot move from {self.status.value} to {status.value}"
            )
        return replace(
            self,
            status=status,
            progress=progress,
            error=error,
            sample_chunks=tuple(sample_chunks) if sample_chunks is not None else self.sample_chunks,
        )


@dataclass(frozen=True)
class TaskEvent:
    """Emitted once per task state change (and once when a task is enqueued)."""

    task: ProcessingTask
    previous_status: TaskStatus | None = None


TaskListener = Callable[[TaskEvent], None]


@dataclass
class BatchResult:
    """
    Outcome of one build() call.

    Attributes:
        tasks: Final snapshot of every task, in program order
        collections: Collections saved by this batch
        experiment: The appended Experiment (None on batch failure or cancel)
        global_error: Set when the batch itself failed
        cancelled: True when cancel() stopped the batch early
    """

    tasks: list[ProcessingTask] = field(default_factory=list)
    collections: list[Collection] = field(default_factory=list)
    experiment: Experiment | None = None
    global_error: ErrorInfo | None = None
    cancelled: bool = False

    @property
    def finished(self) -> list[ProcessingTask]:
        return [t for t in self.tasks if t.status is TaskStatus.FINISHED]

    @property
    def failed(self) -> list[ProcessingTask]:
        return [t for t in self.tasks if t.status is TaskStatus.ERROR]


def task_id_for(file_id: str, method: ChunkingMethod) -> str:
    return f"{file_id}_{method.value}"


class CollectionBuilder:
    """
    Runs processing batches and owns the task state map.

    The builder is the only writer of task state. Observers subscribe
    with add_listener() and receive an immutable snapshot per transition,
    so any front end (CLI progress bar, web socket, test) can follow a
    batch without sharing mutable state.

    Attributes:
        embedder: Embedding collaborator
        store: Where finished collections are saved
        experiment_log: Where the batch's Experiment is appended
    """

    def __init__(
        self,
        embedder: Embedder,
        store: CollectionStore,
        experiment_log: ExperimentLog | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.embedder = embedder
        self.store = store
        self.experiment_log = experiment_log if experiment_log is not None else ExperimentLog()
        self._clock = clock
        self._listeners: list[TaskListener] = []
        self._tasks: dict[str, ProcessingTask] = {}
        self._cancel_requested = False

    def add_listener(self, listener: TaskListener) -> None:
        self._listeners.append(listener)

    @property
    def tasks(self) -> list[ProcessingTask]:
        """Current snapshot of the batch's tasks."""
        return list(self._tasks.values())

    def cancel(self) -> None:
        """Stop the running batch before its next task. The current task completes."""
        self._cancel_requested = True

    def build(
        self,
        files: Sequence[SourceFile],
        methods: Sequence[ChunkingMethod | str],
        params: Mapping[ChunkingMethod, ChunkParams] | None = None,
    ) -> BatchResult:
        """
        Run one processing batch.

        Args:
            files: Source files to process (duplicates by id are ignored)
            methods: Chunking methods to apply to every file
            params: Parameters per method; defaults fill in missing methods

        Returns:
            BatchResult with final task states, new collections and the Experiment

        Raises:
            ValidationError: If files or methods are empty, or params do not
                match their method. Nothing has run when this is raised.
        """
        files = list({f.id: f for f in files}.values())
        method_list = self._validate_methods(methods)
        if not files:
            raise ValidationError("Select at least one file.")
        resolved = self._resolve_params(method_list, params or {})

        self._cancel_requested = False
        self._tasks = {}
        result = BatchResult()
        start = time.monotonic()

        try:
            for source_file in files:
                for method in method_list:
                    self._enqueue(source_file, method)

            logger.info(
                "Processing %d file(s) x %d method(s) = %d task(s)",
                len(files), len(method_list), len(self._tasks),
            )

            chunk_counts: dict[ChunkingMethod, int] = {}
            for source_file in files:
                for method in method_list:
                    if self._cancel_requested:
                        result.cancelled = True
                        break
                    collection = self._run_task(source_file, method, resolved[method])
                    if collection is not None:
                        result.collections.append(collection)
                        chunk_counts[method] = chunk_counts.get(method, 0) + collection.chunk_count
                        # Listener failures from here on are batch failures
                        self._update(task_id_for(source_file.id, method), TaskStatus.FINISHED, 100)
                if result.cancelled:
                    break

            if result.cancelled:
                logger.warning("Batch cancelled; %d task(s) not started", len(self._waiting()))
            else:
                result.experiment = Experiment(
                    id=f"exp_{int(self._clock() * 1000)}",
                    timestamp=datetime.now(timezone.utc).isoformat(),
                    files_processed=[f.name for f in files],
                    chunk_methods=method_list,
                    params={m: resolved[m] for m in method_list},
                    chunk_counts=chunk_counts,
                    processing_time_ms=int((time.monotonic() - start) * 1000),
                )
                self.experiment_log.append(result.experiment)
        except Exception as e:
            logger.exception("Processing batch failed")
            result.experiment = None
            result.global_error = ErrorInfo(
                message=CRITICAL_FAILURE_MESSAGE,
                technical=format_technical(e),
            )

        result.tasks = self.tasks
        logger.info(
            "Batch done: %d finished, %d failed, %d collection(s) saved",
            len(result.finished), len(result.failed), len(result.collections),
        )
        return result

    def _run_task(
        self,
        source_file: SourceFile,
        method: ChunkingMethod,
        params: ChunkParams,
    ) -> Collection | None:
        """
        Run one task up to its saved collection.

        Failures end up on the task record, not in the caller. The caller
        marks the task finished once the collection is in the batch result.
        """
        task_id = task_id_for(source_file.id, method)
        try:
            # 1. Chunking
            self._update(task_id, TaskStatus.CHUNKING, 20)
            strategy = STRATEGIES[method](params)
            texts = strategy.chunk(source_file.content)
            stats = strategy.verify_chunking(source_file.content, texts)
            if not texts:
                raise ValidationError(f"{source_file.name} produced no chunks with {method.value}")
            logger.debug(
                "%s: %d chunks (avg %.0f chars)",
                task_id, stats["chunk_count"], stats["avg_chunk_length"],
            )

            # 2. Vectorization
            samples = texts[:SAMPLE_CHUNK_COUNT]
            self._update(task_id, TaskStatus.VECTORIZING, 50, sample_chunks=samples)
            vectors = self.embedder.embed_batch(texts)
            if len(vectors) != len(texts):
                raise EmbeddingError(
                    f"Embedder returned {len(vectors)} vectors for {len(texts)} chunks"
                )

            # 3. Create and save the collection
            self._update(task_id, TaskStatus.VECTORIZING, 80)
            collection = self._make_collection(source_file, method, params, texts, vectors)
            self.store.save(collection)
            return collection
        except Exception as e:
            logger.exception("Error processing %s", task_id)
            self._update(task_id, TaskStatus.ERROR, 0, error=ErrorInfo.from_exception(e))
            return None

    def _make_collection(
        self,
        source_file: SourceFile,
        method: ChunkingMethod,
        params: ChunkParams,
        texts: list[str],
        vectors: list[list[float]],
    ) -> Collection:
        chunks = tuple(
            Chunk(
                id=f"chunk_{idx}",
                text=text,
                index=idx,
                source_file_id=source_file.id,
                source_file_name=source_file.name,
                chunk_method=method,
                metadata={"char_length": len(text)},
            )
            for idx, text in enumerate(texts)
        )
        return Collection(
            id=f"col_{uuid.uuid4().hex[:12]}",
            name=f"{source_file.name}_{method.value}_{int(self._clock() * 1000)}",
            chunk_method=method,
            source_file_id=source_file.id,
            source_file_name=source_file.name,
            chunk_count=len(chunks),
            params=params,
            created_at=datetime.now(timezone.utc).isoformat(),
            chunks=chunks,
            vectors=tuple(tuple(float(x) for x in v) for v in vectors),
            embedding_model=self.embedder.model_name,
        )

    def _enqueue(self, source_file: SourceFile, method: ChunkingMethod) -> None:
        task = ProcessingTask(
            task_id=task_id_for(source_file.id, method),
            file_name=source_file.name,
            method=method,
        )
        self._tasks[task.task_id] = task
        self._emit(TaskEvent(task=task))

    def _update(
        self,
        task_id: str,
        status: TaskStatus,
        progress: int,
        error: ErrorInfo | None = None,
        sample_chunks: Sequence[str] | None = None,
    ) -> None:
        previous = self._tasks[task_id]
        task = previous.advance(status, progress, error=error, sample_chunks=sample_chunks)
        self._tasks[task_id] = task
        logger.debug("%s: %s -> %s (%d%%)", task_id, previous.status.value, status.value, progress)
        self._emit(TaskEvent(task=task, previous_status=previous.status))

    def _emit(self, event: TaskEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _waiting(self) -> list[ProcessingTask]:
        return [t for t in self._tasks.values() if t.status is TaskStatus.WAITING]

    @staticmethod
    def _validate_methods(methods: Sequence[ChunkingMethod | str]) -> list[ChunkingMethod]:
        if not methods:
            raise ValidationError("Select at least one chunking method.")
        method_list: list[ChunkingMethod] = []
        for m in methods:
            try:
                method = ChunkingMethod(m)
            except ValueError:
                available = ", ".join(x.value for x in ChunkingMethod)
                raise ValidationError(
                    f"Unknown chunking method '{m}'. Available methods: {available}"
                ) from None
            if method not in method_list:
                method_list.append(method)
        return method_list

    @staticmethod
    def _resolve_params(
        methods: list[ChunkingMethod],
        params: Mapping[ChunkingMethod, ChunkParams],
    ) -> dict[ChunkingMethod, ChunkParams]:
        resolved = {}
        for method in methods:
            chosen = params.get(method) or params_for(method)
            if chosen.method is not method:
                raise ValidationError(
                    f"Parameters for {method.value} are {type(chosen).__name__}"
                )
            resolved[method] = chosen
        return resolved
