"""
Tests for the registration coordinator.

Tests verify:
1. Insert vs update semantics keyed by content id
2. Blob-before-metadata ordering on failures
3. Read reconciliation between the catalog and the blob store
"""

import pytest

from content_registry.core.artifact import EncryptedArtifact, RegistrationOutcome
from content_registry.core.coordinator import RegistrationCoordinator
from content_registry.db.services import ContentService
from content_registry.errors import (
    IntegrityError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from content_registry.storage import FileBlobStore


def make_artifact(path, key=b"K1", location="book", length=None, sha256=None):
    return EncryptedArtifact(
        content_key=key,
        path=path,
        location=location,
        length=length if length is not None else path.stat().st_size,
        sha256=sha256,
    )


class FailingBlobStore(FileBlobStore):
    def put(self, blob_id, stream, size=-1):
        raise StorageError("disk full")


class TestRegisterArtifact:
    """Tests for register_artifact."""

    def test_first_registration_creates(self, coordinator, db_session, encrypted_file):
        path = encrypted_file(b"x" * 1024)
        outcome = coordinator.register_artifact(
            "abc123", make_artifact(path, sha256="deadbeef")
        )

        assert outcome is RegistrationOutcome.CREATED
        assert outcome.status_code == 201

        record = ContentService(db_session).get("abc123")
        assert record.encryption_key == b"K1"
        assert record.length == 1024
        assert record.sha256 == "deadbeef"
        assert record.location == "book"

    def test_second_registration_updates_in_place(
        self, coordinator, db_session, encrypted_file
    ):
        """Scenario: K1/1024 then K2/2048 under the same id."""
        first = encrypted_file(b"a" * 1024)
        second = encrypted_file(b"b" * 2048)

        assert (
            coordinator.register_artifact(
                "abc123", make_artifact(first, key=b"K1", sha256="deadbeef")
            )
            is RegistrationOutcome.CREATED
        )
        outcome = coordinator.register_artifact(
            "abc123", make_artifact(second, key=b"K2")
        )
        assert outcome is RegistrationOutcome.UPDATED
        assert outcome.status_code == 200

        records = ContentService(db_session).list()
        assert [r.id for r in records] == ["abc123"]

        with coordinator.fetch_artifact("abc123") as fetched:
            assert fetched.record.encryption_key == b"K2"
            assert fetched.record.length == 2048
            assert fetched.stream.read() == b"b" * 2048

    def test_update_resets_unsupplied_fields(self, coordinator, encrypted_file):
        path = encrypted_file(b"payload")
        coordinator.register_artifact(
            "abc123", make_artifact(path, location="first", sha256="deadbeef")
        )

        bare = EncryptedArtifact(content_key=b"K2", path=path)
        coordinator.register_artifact("abc123", bare)

        with coordinator.fetch_artifact("abc123") as fetched:
            assert fetched.record.length == -1
            assert fetched.record.sha256 == ""
            assert fetched.record.location == ""

    def test_blob_failure_writes_no_metadata(self, db_session, tmp_path, encrypted_file):
        coordinator = RegistrationCoordinator(db_session, FailingBlobStore(tmp_path / "b"))
        with pytest.raises(StorageError):
            coordinator.register_artifact("abc123", make_artifact(encrypted_file(b"x")))

        assert ContentService(db_session).get("abc123") is None

    def test_metadata_failure_leaves_orphan_blob_repaired_by_retry(
        self, coordinator, blob_store, db_session, encrypted_file, monkeypatch
    ):
        path = encrypted_file(b"orphan bytes")

        def broken_add(*args, **kwargs):
            raise StorageError("database is down")

        with monkeypatch.context() as m:
            m.setattr(coordinator.contents, "add", broken_add)
            with pytest.raises(StorageError):
                coordinator.register_artifact("abc123", make_artifact(path))

        # Orphan blob: bytes present, no row
        assert blob_store.exists("abc123")
        assert ContentService(db_session).get("abc123") is None

        outcome = coordinator.register_artifact("abc123", make_artifact(path))
        assert outcome is RegistrationOutcome.CREATED
        with coordinator.fetch_artifact("abc123") as fetched:
            assert fetched.stream.read() == b"orphan bytes"

    def test_concurrent_first_insert_becomes_update(
        self, coordinator, session_factory, encrypted_file, monkeypatch
    ):
        """The lookup misses, but another request inserts before our add."""
        other = session_factory()
        try:
            ContentService(other).add("abc123", b"K0", "other", 1, "")
        finally:
            other.close()

        real_get = coordinator.contents.get
        calls = {"n": 0}

        def stale_get(content_id):
            calls["n"] += 1
            if calls["n"] == 1:
                return None
            return real_get(content_id)

        monkeypatch.setattr(coordinator.contents, "get", stale_get)

        outcome = coordinator.register_artifact(
            "abc123", make_artifact(encrypted_file(b"mine"), key=b"K1")
        )
        assert outcome is RegistrationOutcome.UPDATED

        record = real_get("abc123")
        assert record.encryption_key == b"K1"
        assert record.location == "book"

    def test_missing_encrypted_file_is_validation_error(
        self, coordinator, blob_store, tmp_path
    ):
        artifact = EncryptedArtifact(content_key=b"K1", path=tmp_path / "nope.epub")
        with pytest.raises(ValidationError):
            coordinator.register_artifact("abc123", artifact)
        assert not blob_store.exists("abc123")

    def test_lookup_failure_aborts_before_writes(
        self, coordinator, blob_store, encrypted_file, monkeypatch
    ):
        def broken_get(content_id):
            raise StorageError("connection reset")

        monkeypatch.setattr(coordinator.contents, "get", broken_get)
        with pytest.raises(StorageError):
            coordinator.register_artifact("abc123", make_artifact(encrypted_file(b"x")))
        assert not blob_store.exists("abc123")

    def test_rejects_empty_id(self, coordinator, encrypted_file):
        with pytest.raises(ValidationError):
            coordinator.register_artifact("", make_artifact(encrypted_file(b"x")))


class TestFetchArtifact:
    """Tests for fetch_artifact."""

    def test_round_trip(self, coordinator, encrypted_file):
        payload = bytes(range(256)) * 16
        path = encrypted_file(payload)
        coordinator.register_artifact(
            "rt", make_artifact(path, key=b"\x00\x01key", sha256="cafe")
        )

        with coordinator.fetch_artifact("rt") as fetched:
            assert fetched.record.encryption_key == b"\x00\x01key"
            assert fetched.record.sha256 == "cafe"
            assert fetched.record.length == len(payload)
            assert fetched.size == len(payload)
            assert fetched.stream.read() == payload
        assert fetched.stream.closed

    def test_never_registered_is_not_found(self, coordinator):
        with pytest.raises(NotFoundError):
            coordinator.fetch_artifact("missing")

    def test_blob_removed_out_of_band_is_integrity_error(
        self, coordinator, blob_store, encrypted_file
    ):
        coordinator.register_artifact("abc123", make_artifact(encrypted_file(b"x")))
        (blob_store.root / "abc123").unlink()

        with pytest.raises(IntegrityError) as exc_info:
            coordinator.fetch_artifact("abc123")
        assert not isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.status_code == 500

    def test_list_contents_in_insertion_order(self, coordinator, encrypted_file):
        for content_id in ["zeta", "alpha", "mid"]:
            coordinator.register_artifact(content_id, make_artifact(encrypted_file(b"x")))

        assert [c.id for c in coordinator.list_contents()] == ["zeta", "alpha", "mid"]
