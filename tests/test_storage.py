"""
Tests for the filesystem blob store.
"""

import io

import pytest

from content_registry.errors import NotFoundError, StorageError, ValidationError
from content_registry.storage import FileBlobStore, create_blob_store


class TestFileBlobStore:
    """Tests for put/get/exists."""

    def test_put_then_get(self, tmp_path):
        store = FileBlobStore(tmp_path / "blobs")
        payload = b"encrypted bytes" * 100

        stored = store.put("abc123", io.BytesIO(payload), len(payload))

        assert stored.key == "abc123"
        assert stored.size == len(payload)
        assert store.exists("abc123")

        stream, size = store.get("abc123")
        with stream:
            assert size == len(payload)
            assert stream.read() == payload

    def test_put_overwrites(self, tmp_path):
        store = FileBlobStore(tmp_path)
        store.put("abc123", io.BytesIO(b"first"), 5)
        store.put("abc123", io.BytesIO(b"second payload"), 14)

        stream, size = store.get("abc123")
        with stream:
            assert stream.read() == b"second payload"
        assert size == 14

    def test_put_without_size_copies_to_eof(self, tmp_path):
        store = FileBlobStore(tmp_path)
        stored = store.put("abc123", io.BytesIO(b"0123456789"))
        assert stored.size == 10

    def test_short_stream_keeps_previous_blob(self, tmp_path):
        """A failed write never replaces what readers can see."""
        store = FileBlobStore(tmp_path)
        store.put("abc123", io.BytesIO(b"old"), 3)

        with pytest.raises(StorageError):
            store.put("abc123", io.BytesIO(b"short"), 1000)

        stream, _ = store.get("abc123")
        with stream:
            assert stream.read() == b"old"
        # No temporary files left behind
        assert sorted(p.name for p in tmp_path.iterdir()) == ["abc123"]

    def test_get_missing_raises_not_found(self, tmp_path):
        store = FileBlobStore(tmp_path)
        with pytest.raises(NotFoundError):
            store.get("missing")
        assert not store.exists("missing")

    @pytest.mark.parametrize("bad_id", ["", "   ", "../escape", "a/b", "..", "a\\b"])
    def test_rejects_unsafe_ids(self, tmp_path, bad_id):
        store = FileBlobStore(tmp_path)
        with pytest.raises(ValidationError):
            store.put(bad_id, io.BytesIO(b"x"), 1)


class TestCreateBlobStore:
    """Tests for the URI factory."""

    def test_file_uri(self, tmp_path):
        store = create_blob_store(f"file://{tmp_path / 'blobs'}")
        assert isinstance(store, FileBlobStore)
        assert store.root == tmp_path / "blobs"
        assert store.get_uri() == f"file://{tmp_path / 'blobs'}"

    def test_s3_not_implemented(self):
        with pytest.raises(NotImplementedError):
            create_blob_store("s3://bucket/prefix")

    def test_unknown_scheme(self):
        with pytest.raises(ValueError):
            create_blob_store("ftp://host/path")
