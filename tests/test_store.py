"""Tests for records and stores."""

import pytest

from chunklab.errors import CollectionIntegrityError, StorageError
from chunklab.store import (
    Chunk,
    Collection,
    InMemoryCollectionStore,
    InMemoryFileStore,
    JsonCollectionStore,
    JsonFileStore,
    get_stores,
)
from chunklab.strategies import ChunkingMethod, FixedParams


def test_collection_rejects_count_mismatch(make_collection):
    good = make_collection(["one", "two"])
    with pytest.raises(CollectionIntegrityError):
        Collection(
            id="bad",
            name="bad",
            chunk_method=good.chunk_method,
            source_file_id="f1",
            source_file_name="doc.txt",
            chunk_count=2,
            params=FixedParams(),
            created_at="",
            chunks=good.chunks,
            vectors=good.vectors[:1],
        )


def test_collection_rejects_index_gap(make_collection):
    good = make_collection(["one", "two"])
    shifted = tuple(
        Chunk(c.id, c.text, c.index + 1, c.source_file_id, c.source_file_name, c.chunk_method)
        for c in good.chunks
    )
    with pytest.raises(CollectionIntegrityError):
        Collection(
            id="bad",
            name="bad",
            chunk_method=good.chunk_method,
            source_file_id="f1",
            source_file_name="doc.txt",
            chunk_count=2,
            params=FixedParams(),
            created_at="",
            chunks=shifted,
            vectors=good.vectors,
        )


def test_collection_dict_roundtrip(make_collection):
    collection = make_collection(["alpha beta", "gamma"], method=ChunkingMethod.TOKEN)
    assert Collection.from_dict(collection.to_dict()) == collection


def test_memory_collection_store(make_collection):
    store = InMemoryCollectionStore()
    a = make_collection(["a"], collection_id="col_a")
    b = make_collection(["b"], collection_id="col_b")
    store.save(a)
    store.save(b)
    assert store.get("col_a") == a
    assert [c.id for c in store.list_all()] == ["col_a", "col_b"]

    store.delete("col_a")
    store.delete("col_missing")
    assert store.get("col_a") is None

    store.clear()
    assert store.list_all() == []


def test_memory_file_store(make_file):
    store = InMemoryFileStore()
    store.save(make_file("f1"))
    assert store.get("f1").name == "doc.txt"
    store.delete("f1")
    assert store.list_all() == []


def test_json_collection_store(tmp_path, make_collection):
    store = JsonCollectionStore(tmp_path / "collections")
    newer = make_collection(["b"], collection_id="col_b", created_at="2024-02-01T00:00:00+00:00")
    older = make_collection(["a"], collection_id="col_a", created_at="2024-01-01T00:00:00+00:00")
    store.save(newer)
    store.save(older)

    reopened = JsonCollectionStore(tmp_path / "collections")
    assert reopened.get("col_b") == newer
    assert [c.id for c in reopened.list_all()] == ["col_a", "col_b"]
    assert not list((tmp_path / "collections").glob("*.tmp"))

    reopened.delete("col_a")
    assert reopened.get("col_a") is None
    reopened.clear()
    assert reopened.list_all() == []


def test_json_file_store(tmp_path, make_file):
    store = JsonFileStore(tmp_path / "files")
    store.save(make_file("f2", uploaded_at="2024-03-01T00:00:00+00:00"))
    store.save(make_file("f1", uploaded_at="2024-01-01T00:00:00+00:00"))
    assert [f.id for f in store.list_all()] == ["f1", "f2"]
    assert store.get("f2").content == make_file().content


def test_json_store_corrupt_record(tmp_path):
    directory = tmp_path / "collections"
    store = JsonCollectionStore(directory)
    (directory / "col_x.json").write_text("{not json")
    with pytest.raises(StorageError):
        store.get("col_x")
    with pytest.raises(StorageError):
        store.list_all()


def test_json_store_rejects_path_ids(tmp_path):
    store = JsonFileStore(tmp_path / "files")
    with pytest.raises(StorageError):
        store.get("../escape")


def test_get_stores(tmp_path):
    file_store, collection_store = get_stores("json", tmp_path)
    assert isinstance(file_store, JsonFileStore)
    assert (tmp_path / "collections").is_dir()

    file_store, collection_store = get_stores("memory")
    assert isinstance(collection_store, InMemoryCollectionStore)

    with pytest.raises(ValueError):
        get_stores("sqlite", tmp_path)
    with pytest.raises(ValueError):
        get_stores("json")
