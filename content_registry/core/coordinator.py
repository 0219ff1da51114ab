"""
Registration coordinator.

Writes an encrypted artifact to the blob store and its metadata to the
content catalog, in that order, and reconciles the two stores on read.

Failure ordering:
- blob write fails: no metadata is written, the catalog never points at
  missing bytes.
- metadata write fails after the blob write: the blob stays behind as an
  orphan. It is harmless and a later registration of the same id overwrites
  it and creates the missing row. Nothing is rolled back or retried here.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import BinaryIO, List

import structlog
from sqlalchemy.orm import Session

from ..db.models import ContentModel
from ..db.services import ContentService
from ..errors import (
    DuplicateContentError,
    IntegrityError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from ..storage import BlobStore, validate_blob_id
from .artifact import EncryptedArtifact, RegistrationOutcome

logger = structlog.get_logger()


@dataclass
class FetchedArtifact:
    """Metadata plus an open stream on the encrypted bytes.

    The stream must be closed by the caller; use it as a context manager.
    """

    record: ContentModel
    stream: BinaryIO
    size: int

    def close(self) -> None:
        self.stream.close()

    def __enter__(self) -> "FetchedArtifact":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RegistrationCoordinator:
    """Keeps the blob store and the content catalog in lockstep."""

    def __init__(self, db: Session, blob_store: BlobStore):
        self.contents = ContentService(db)
        self.blob_store = blob_store

    def register_artifact(
        self, content_id: str, artifact: EncryptedArtifact
    ) -> RegistrationOutcome:
        """Register (insert or replace) the artifact stored under content_id.

        Args:
            content_id: Artifact identifier shared by the blob and the record
            artifact: Encrypted file and its metadata

        Returns:
            RegistrationOutcome.CREATED on insert, UPDATED on replace

        Raises:
            ValidationError: Bad id or unreadable encrypted file; nothing written
            StorageError: Catalog or blob failure
        """
        validate_blob_id(content_id)
        log = logger.bind(content_id=content_id)

        # Step 1: resolve insert vs update before any write
        existing = self.contents.get(content_id)
        outcome = (
            RegistrationOutcome.UPDATED if existing else RegistrationOutcome.CREATED
        )
        log = log.bind(outcome=outcome.value)

        # Step 2: bytes first
        self._write_blob(content_id, artifact)

        # Step 3: metadata, every mutable field replaced
        fields = dict(
            encryption_key=artifact.content_key,
            location=artifact.resolved_location,
            length=artifact.resolved_length,
            sha256=artifact.resolved_sha256,
        )
        try:
            if outcome is RegistrationOutcome.CREATED:
                try:
                    self.contents.add(content_id, **fields)
                except DuplicateContentError:
                    # A concurrent registration inserted first
                    log.info("content_insert_conflict_retry_as_update")
                    self.contents.update(content_id, **fields)
                    outcome = RegistrationOutcome.UPDATED
            else:
                self.contents.update(content_id, **fields)
        except StorageError as e:
            log.error("content_metadata_write_failed", error=str(e), orphan_blob=True)
            raise

        log.info(
            "content_registered",
            outcome=outcome.value,
            location=fields["location"],
            length=fields["length"],
        )
        return outcome

    def _write_blob(self, content_id: str, artifact: EncryptedArtifact) -> None:
        try:
            source = artifact.open()
        except FileNotFoundError as e:
            raise ValidationError(f"Encrypted file not found: {artifact.path}") from e
        except OSError as e:
            raise StorageError(f"Cannot read encrypted file {artifact.path}: {e}") from e

        with source:
            try:
                size = os.fstat(source.fileno()).st_size
            except OSError as e:
                raise StorageError(f"Cannot stat {artifact.path}: {e}") from e
            self.blob_store.put(content_id, source, size)

    def fetch_artifact(self, content_id: str) -> FetchedArtifact:
        """Return the record and an open stream on its bytes.

        Raises:
            NotFoundError: The artifact was never registered
            IntegrityError: The record exists but its blob does not
        """
        validate_blob_id(content_id)

        record = self.contents.get(content_id)
        if not record:
            raise NotFoundError(f"Content {content_id} not found")

        try:
            stream, size = self.blob_store.get(content_id)
        except NotFoundError as e:
            logger.error("content_blob_missing", content_id=content_id)
            raise IntegrityError(content_id) from e

        return FetchedArtifact(record=record, stream=stream, size=size)

    def list_contents(self) -> List[ContentModel]:
        """Snapshot of every content record, in insertion order."""
        return self.contents.list()
