"""Tests for the collection builder and its task state machine."""

import pytest

from chunklab.errors import (
    CAUSE_MESSAGES,
    EmbeddingErrorCause,
    StorageError,
    ValidationError,
)
from chunklab.experiments import ExperimentLog
from chunklab.pipeline import (
    CRITICAL_FAILURE_MESSAGE,
    _STAGE,
    CollectionBuilder,
    InvalidTransitionError,
    ProcessingTask,
    TaskStatus,
)
from chunklab.store import InMemoryCollectionStore
from chunklab.strategies import ChunkingMethod, TokenParams, chunk_text, params_for

from conftest import FakeEmbedder

METHODS = [ChunkingMethod.SENTENCE, ChunkingMethod.TOKEN]


class FailingLog(ExperimentLog):
    def append(self, experiment):
        raise StorageError("disk full")


def _two_files(make_file):
    return [
        make_file("f1", "a.txt"),
        make_file("f2", "b.txt", content="Short second file. It has two sentences."),
    ]


def test_build_all_tasks_finish(embedder, make_file):
    store = InMemoryCollectionStore()
    log = ExperimentLog()
    builder = CollectionBuilder(embedder, store, log)

    result = builder.build(_two_files(make_file), METHODS)

    assert [t.task_id for t in result.tasks] == ["f1_sentence", "f1_token", "f2_sentence", "f2_token"]
    assert all(t.status is TaskStatus.FINISHED and t.progress == 100 for t in result.tasks)
    assert len(result.collections) == 4
    assert len(store.list_all()) == 4
    assert result.experiment is not None
    assert log.entries == [result.experiment]
    assert result.experiment.files_processed == ["a.txt", "b.txt"]
    assert result.experiment.chunk_methods == METHODS


def test_collection_shape(embedder, make_file):
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    source = make_file()
    result = builder.build([source], [ChunkingMethod.SENTENCE])

    collection = result.collections[0]
    expected = chunk_text(source.content, params_for(ChunkingMethod.SENTENCE))
    assert [c.text for c in collection.chunks] == expected
    assert collection.chunk_count == len(expected) == len(collection.vectors)
    assert collection.id.startswith("col_")
    assert collection.name.startswith("doc.txt_sentence_")
    assert collection.embedding_model == "fake"
    assert collection.chunks[0].metadata == {"char_length": len(expected[0])}


def test_task_isolation(make_file):
    # Batch calls run in program order; the 2nd is f1 x token
    embedder = FakeEmbedder(fail_on_calls={2})
    log = ExperimentLog()
    builder = CollectionBuilder(embedder, InMemoryCollectionStore(), log)
    files = _two_files(make_file)

    result = builder.build(files, METHODS)

    statuses = {t.task_id: t.status for t in result.tasks}
    assert statuses == {
        "f1_sentence": TaskStatus.FINISHED,
        "f1_token": TaskStatus.ERROR,
        "f2_sentence": TaskStatus.FINISHED,
        "f2_token": TaskStatus.FINISHED,
    }
    assert len(result.finished) == 3
    assert len(result.failed) == 1
    assert len(result.collections) == 3

    failed = result.failed[0]
    assert failed.progress == 0
    assert failed.error.cause is EmbeddingErrorCause.CONNECTIVITY
    assert failed.error.message == CAUSE_MESSAGES[EmbeddingErrorCause.CONNECTIVITY]
    assert "model unavailable" in failed.error.technical

    sentence_count = sum(
        len(chunk_text(f.content, params_for(ChunkingMethod.SENTENCE))) for f in files
    )
    token_count = len(chunk_text(files[1].content, params_for(ChunkingMethod.TOKEN)))
    assert result.experiment.chunk_counts == {
        ChunkingMethod.SENTENCE: sentence_count,
        ChunkingMethod.TOKEN: token_count,
    }
    assert len(log) == 1


def test_events_follow_lifecycle(embedder, make_file):
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    events = []
    builder.add_listener(events.append)

    builder.build([make_file()], [ChunkingMethod.FIXED])

    assert [(e.task.status, e.task.progress) for e in events] == [
        (TaskStatus.WAITING, 0),
        (TaskStatus.CHUNKING, 20),
        (TaskStatus.VECTORIZING, 50),
        (TaskStatus.VECTORIZING, 80),
        (TaskStatus.FINISHED, 100),
    ]
    assert events[0].previous_status is None
    assert events[1].previous_status is TaskStatus.WAITING
    assert 1 <= len(events[2].task.sample_chunks) <= 3


def test_events_never_move_backward(make_file):
    embedder = FakeEmbedder(fail_on_calls={1, 4})
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    events = []
    builder.add_listener(events.append)

    builder.build(_two_files(make_file), METHODS)

    for task_id in {e.task.task_id for e in events}:
        stages = [_STAGE[e.task.status] for e in events if e.task.task_id == task_id]
        assert stages == sorted(stages)
        assert stages[-1] == 3


def test_failed_task_event_sequence(make_file):
    builder = CollectionBuilder(FakeEmbedder(fail_on_calls={1}), InMemoryCollectionStore())
    events = []
    builder.add_listener(events.append)

    builder.build([make_file()], [ChunkingMethod.FIXED])

    assert [(e.task.status, e.task.progress) for e in events] == [
        (TaskStatus.WAITING, 0),
        (TaskStatus.CHUNKING, 20),
        (TaskStatus.VECTORIZING, 50),
        (TaskStatus.ERROR, 0),
    ]


def test_empty_file_fails_its_task(embedder, make_file):
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    files = [make_file("f1", "empty.txt", content="   "), make_file("f2", "full.txt")]

    result = builder.build(files, [ChunkingMethod.SENTENCE])

    assert result.tasks[0].status is TaskStatus.ERROR
    assert "produced no chunks" in result.tasks[0].error.technical
    assert result.tasks[1].status is TaskStatus.FINISHED
    assert embedder.batch_calls == 1


def test_vector_count_mismatch_fails_task(make_file):
    class ShortEmbedder(FakeEmbedder):
        def embed_batch(self, texts):
            return super().embed_batch(texts)[:-1]

    result = CollectionBuilder(ShortEmbedder(), InMemoryCollectionStore()).build(
        [make_file()], [ChunkingMethod.SENTENCE]
    )
    assert result.tasks[0].status is TaskStatus.ERROR
    assert result.collections == []


def test_validation_before_any_work(embedder, make_file):
    store = InMemoryCollectionStore()
    builder = CollectionBuilder(embedder, store)

    with pytest.raises(ValidationError):
        builder.build([], METHODS)
    with pytest.raises(ValidationError):
        builder.build([make_file()], [])
    with pytest.raises(ValidationError, match="Unknown chunking method"):
        builder.build([make_file()], ["paragraph"])
    with pytest.raises(ValidationError):
        builder.build([make_file()], [ChunkingMethod.FIXED], {ChunkingMethod.FIXED: TokenParams()})

    assert embedder.batch_calls == 0
    assert store.list_all() == []


def test_params_are_used_and_recorded(embedder, make_file):
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    params = {ChunkingMethod.TOKEN: TokenParams(token_count=5, overlap=0)}

    result = builder.build([make_file()], [ChunkingMethod.TOKEN, ChunkingMethod.FIXED], params)

    token_collection = result.collections[0]
    assert token_collection.params == TokenParams(token_count=5, overlap=0)
    assert all(len(c.text.split()) <= 5 for c in token_collection.chunks)
    assert result.experiment.params[ChunkingMethod.FIXED] == params_for(ChunkingMethod.FIXED)


def test_duplicate_files_processed_once(embedder, make_file):
    builder = CollectionBuilder(embedder, InMemoryCollectionStore())
    result = builder.build([make_file(), make_file()], [ChunkingMethod.FIXED])
    assert len(result.tasks) == 1


def test_cancel_stops_between_tasks(embedder, make_file):
    log = ExperimentLog()
    builder = CollectionBuilder(embedder, InMemoryCollectionStore(), log)

    def cancel_after_first(event):
        if event.task.status is TaskStatus.FINISHED:
            builder.cancel()

    builder.add_listener(cancel_after_first)
    result = builder.build(_two_files(make_file), METHODS)

    assert result.cancelled
    assert result.experiment is None
    assert len(log) == 0
    assert [t.status for t in result.tasks] == [
        TaskStatus.FINISHED,
        TaskStatus.WAITING,
        TaskStatus.WAITING,
        TaskStatus.WAITING,
    ]
    assert len(result.collections) == 1


def test_batch_failure_sets_global_error(embedder, make_file):
    store = InMemoryCollectionStore()
    builder = CollectionBuilder(embedder, store, FailingLog())

    result = builder.build([make_file()], [ChunkingMethod.FIXED])

    assert result.global_error is not None
    assert result.global_error.message == CRITICAL_FAILURE_MESSAGE
    assert "disk full" in result.global_error.technical
    assert result.experiment is None
    # Collections saved before the failure stay saved
    assert len(store.list_all()) == 1


def test_listener_failure_on_finished_keeps_collection(embedder, make_file):
    store = InMemoryCollectionStore()
    builder = CollectionBuilder(embedder, store)

    def explode(event):
        if event.task.task_id == "f1_sentence" and event.task.status is TaskStatus.FINISHED:
            raise RuntimeError("listener broke")

    builder.add_listener(explode)
    result = builder.build(_two_files(make_file), METHODS)

    assert result.global_error is not None
    assert "listener broke" in result.global_error.technical
    assert result.experiment is None
    assert [c.id for c in result.collections] == [c.id for c in store.list_all()]
    assert len(result.collections) == 1
    assert result.tasks[0].status is TaskStatus.FINISHED


def test_task_transitions():
    task = ProcessingTask(task_id="f1_fixed", file_name="a.txt", method=ChunkingMethod.FIXED)
    chunking = task.advance(TaskStatus.CHUNKING, 20)
    vectorizing = chunking.advance(TaskStatus.VECTORIZING, 50, sample_chunks=["x"])
    vectorizing = vectorizing.advance(TaskStatus.VECTORIZING, 80)
    assert vectorizing.sample_chunks == ("x",)
    assert task.status is TaskStatus.WAITING

    with pytest.raises(InvalidTransitionError):
        vectorizing.advance(TaskStatus.CHUNKING, 20)

    finished = vectorizing.advance(TaskStatus.FINISHED, 100)
    with pytest.raises(InvalidTransitionError):
        finished.advance(TaskStatus.ERROR, 0)
