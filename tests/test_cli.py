"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from chunklab.cli import main


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return {
        "CHUNKLAB_DATA_DIR": str(tmp_path / "data"),
        "CHUNKLAB_EMBEDDING_MODEL": "mock",
    }


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def document(tmp_path, sample_text):
    path = tmp_path / "economy.md"
    path.write_text(sample_text)
    return path


def test_strategies(runner, env):
    result = runner.invoke(main, ["strategies"], env=env)
    assert result.exit_code == 0
    for name in ("fixed", "recursive", "token", "sentence", "semantic"):
        assert name in result.output


def test_add_and_list_files(runner, env, document):
    result = runner.invoke(main, ["add", str(document)], env=env)
    assert result.exit_code == 0, result.output
    assert "economy.md" in result.output

    result = runner.invoke(main, ["files"], env=env)
    assert "economy.md" in result.output
    assert "markdown" in result.output


def test_add_unsupported_file(runner, env, tmp_path):
    path = tmp_path / "scan.docx"
    path.write_bytes(b"PK")
    result = runner.invoke(main, ["add", str(path)], env=env)
    assert result.exit_code != 0
    assert "Unsupported file type" in result.output


def test_process_search_and_history(runner, env, document):
    runner.invoke(main, ["add", str(document)], env=env)

    result = runner.invoke(main, ["process", "-m", "sentence", "-m", "token"], env=env)
    assert result.exit_code == 0, result.output
    assert result.output.count(": finished") == 2
    assert "Experiment exp_" in result.output

    result = runner.invoke(main, ["collections"], env=env)
    assert "economy.md_sentence_" in result.output
    assert "economy.md_token_" in result.output

    result = runner.invoke(main, ["search", "inflation", "-r", "dense", "-r", "sparse", "-k", "1"], env=env)
    assert result.exit_code == 0, result.output
    assert "2 result(s) in" in result.output

    result = runner.invoke(main, ["experiments"], env=env)
    assert "Methods: sentence, token" in result.output


def test_process_default_method(runner, env, document):
    runner.invoke(main, ["add", str(document)], env=env)
    result = runner.invoke(main, ["process"], env=env)
    assert result.exit_code == 0, result.output
    assert "_recursive: finished" in result.output


def test_process_without_files(runner, env):
    result = runner.invoke(main, ["process"], env=env)
    assert result.exit_code != 0
    assert "Select at least one file" in result.output


def test_search_without_collections(runner, env):
    result = runner.invoke(main, ["search", "anything"], env=env)
    assert result.exit_code != 0
    assert "Select at least one collection" in result.output


def test_delete_and_clear(runner, env, document):
    runner.invoke(main, ["add", str(document)], env=env)
    runner.invoke(main, ["process", "-m", "fixed", "-m", "token"], env=env)

    result = runner.invoke(main, ["delete", "col_missing"], env=env)
    assert result.exit_code != 0

    result = runner.invoke(main, ["clear", "--yes"], env=env)
    assert "Deleted 2 collection(s)" in result.output

    result = runner.invoke(main, ["collections"], env=env)
    assert "No collections" in result.output


def test_remove_unknown_file(runner, env):
    result = runner.invoke(main, ["remove", "nope"], env=env)
    assert result.exit_code != 0
    assert "not found" in result.output


def test_missing_config_file(runner, env, tmp_path):
    result = runner.invoke(main, ["--config", str(tmp_path / "missing.yaml"), "files"], env=env)
    assert result.exit_code != 0
    assert "Could not load config" in result.output
