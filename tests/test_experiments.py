"""Tests for the experiment history."""

import json

import pytest

from chunklab.errors import StorageError
from chunklab.experiments import Experiment, ExperimentLog
from chunklab.strategies import ChunkingMethod, TokenParams, params_for


def _experiment(exp_id="exp_1"):
    return Experiment(
        id=exp_id,
        timestamp="2024-01-01T00:00:00+00:00",
        files_processed=["a.txt"],
        chunk_methods=[ChunkingMethod.TOKEN, ChunkingMethod.FIXED],
        params={
            ChunkingMethod.TOKEN: TokenParams(token_count=64, overlap=8),
            ChunkingMethod.FIXED: params_for("fixed"),
        },
        chunk_counts={ChunkingMethod.TOKEN: 12, ChunkingMethod.FIXED: 4},
        processing_time_ms=321,
    )


def test_in_memory_log():
    log = ExperimentLog()
    assert log.latest() is None
    log.append(_experiment("exp_1"))
    log.append(_experiment("exp_2"))
    assert [e.id for e in log] == ["exp_1", "exp_2"]
    assert log.latest().id == "exp_2"


def test_log_persists(tmp_path):
    path = tmp_path / "experiments.json"
    ExperimentLog(path).append(_experiment())

    data = json.loads(path.read_text())
    assert data[0]["params"]["token"] == {"method": "token", "token_count": 64, "overlap": 8}
    assert data[0]["chunk_counts"] == {"token": 12, "fixed": 4}

    reloaded = ExperimentLog(path)
    assert reloaded.entries == [_experiment()]


def test_failed_append_keeps_entries(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("")
    log = ExperimentLog(blocker / "experiments.json")

    with pytest.raises(StorageError):
        log.append(_experiment())
    assert len(log) == 0


def test_corrupt_log_raises(tmp_path):
    path = tmp_path / "experiments.json"
    path.write_text("[{\"id\": ")
    with pytest.raises(StorageError):
        ExperimentLog(path)
