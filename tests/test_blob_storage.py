"""Tests for the fsspec-backed blob store."""

import json

import fsspec

from notebuddy.blob_storage import BlobStore


def test_put_and_fetch(blob_store: BlobStore) -> None:
    info = blob_store.put("notes/user-1/1.md", "hello", {"userId": "user-1"})
    assert info.pathname == "notes/user-1/1.md"
    assert info.metadata == {"userId": "user-1"}
    assert info.uploaded_at is not None
    assert blob_store.fetch(info.url) == "hello"


def test_put_overwrites(blob_store: BlobStore) -> None:
    blob_store.put("notes/user-1/1.md", "first")
    info = blob_store.put("notes/user-1/1.md", "second")
    assert blob_store.fetch(info.url) == "second"
    assert len(blob_store.list("notes/user-1/")) == 1


def test_metadata_is_kept_in_a_sidecar(
    blob_store: BlobStore,
    fs_impl: tuple[fsspec.AbstractFileSystem, str],
) -> None:
    fs, root = fs_impl
    blob_store.put("notes/user-1/1.md", "body", {"updatedAt": "2024-06-10T06:13:20.000Z"})

    with fs.open(f"{root}/.metadata/notes/user-1/1.md.json", "r") as handle:
        sidecar = json.load(handle)
    assert sidecar["metadata"] == {"updatedAt": "2024-06-10T06:13:20.000Z"}
    assert sidecar["uploadedAt"].endswith("Z")


def test_list_filters_by_prefix(blob_store: BlobStore) -> None:
    blob_store.put("notes/user-1/1.md", "a", {"k": "v"})
    blob_store.put("notes/user-1/2.md", "b")
    blob_store.put("notes/user-10/3.md", "c")

    listed = blob_store.list("notes/user-1/")
    assert [blob.pathname for blob in listed] == [
        "notes/user-1/1.md",
        "notes/user-1/2.md",
    ]
    assert listed[0].metadata == {"k": "v"}
    assert listed[0].uploaded_at is not None


def test_list_never_returns_metadata_files(blob_store: BlobStore) -> None:
    blob_store.put("notes/user-1/1.md", "a")
    assert [blob.pathname for blob in blob_store.list()] == ["notes/user-1/1.md"]


def test_list_on_empty_store(blob_store: BlobStore) -> None:
    assert blob_store.list("notes/user-1/") == []


def test_delete_removes_blob_and_sidecar(
    blob_store: BlobStore,
    fs_impl: tuple[fsspec.AbstractFileSystem, str],
) -> None:
    fs, root = fs_impl
    info = blob_store.put("notes/user-1/1.md", "a", {"k": "v"})
    blob_store.delete(info.url)

    assert blob_store.list("notes/user-1/") == []
    assert not fs.exists(f"{root}/.metadata/notes/user-1/1.md.json")


def test_memory_filesystem_root() -> None:
    store = BlobStore("memory://notebuddy-blob-test")
    try:
        info = store.put("notes/user-1/1.md", "in memory")
        assert info.url.startswith("memory://")
        assert store.fetch(info.url) == "in memory"
        assert [blob.pathname for blob in store.list("notes/")] == ["notes/user-1/1.md"]
    finally:
        store.fs.rm(store.root, recursive=True)
