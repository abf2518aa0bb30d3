"""Blob stores are write-once: an artifact is never overwritten."""

import pytest
from protean.exceptions import ObjectNotFoundError

from ticketing.artifacts import get_blob_store, reset_artifacts
from ticketing.artifacts.blob_store import FilesystemBlobStore, MemoryBlobStore
from ticketing.errors import InvalidStateError


@pytest.fixture(params=["memory", "filesystem"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryBlobStore()
    return FilesystemBlobStore(tmp_path)


class TestBlobStores:
    def test_put_then_get(self, store):
        key = store.put("ticket_abc.pdf", b"%PDF-1", "application/pdf")
        assert key == "ticket_abc.pdf"
        assert store.exists(key)
        assert store.get(key) == b"%PDF-1"

    def test_existing_key_is_never_overwritten(self, store):
        store.put("invoice_1.pdf", b"first", "application/pdf")
        with pytest.raises(InvalidStateError):
            store.put("invoice_1.pdf", b"second", "application/pdf")
        assert store.get("invoice_1.pdf") == b"first"

    def test_missing_key(self, store):
        assert store.exists("nope.png") is False
        with pytest.raises(ObjectNotFoundError):
            store.get("nope.png")


def test_filesystem_store_refuses_keys_outside_its_root(tmp_path):
    store = FilesystemBlobStore(tmp_path / "blobs")
    with pytest.raises(InvalidStateError):
        store.put("../escape.pdf", b"x", "application/pdf")


def test_blob_root_setting_selects_filesystem_store(tmp_path, monkeypatch):
    monkeypatch.setenv("TICKETING_BLOB_ROOT", str(tmp_path))
    reset_artifacts()
    assert isinstance(get_blob_store(), FilesystemBlobStore)
