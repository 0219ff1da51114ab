"""
Publication pipeline.

create: master file -> encrypter -> RegistrationCoordinator -> publication row.
Each step runs only if the previous one succeeded. A failure after
registration leaves a registered artifact with no publication, which is
accepted and not cleaned up.

Publications and contents are linked by the slug of the title only. Deleting
a publication leaves its content record and blob in place.
"""

from __future__ import annotations

import re
import shutil
import unicodedata
import uuid
from enum import Enum
from pathlib import Path
from typing import BinaryIO, List, Optional

import structlog
from sqlalchemy.orm import Session

from ..config import Settings
from ..db.models import PublicationModel
from ..db.services import PublicationService
from ..errors import NotFoundError, StorageError, ValidationError
from ..storage import BlobStore, validate_blob_id
from .coordinator import RegistrationCoordinator
from .encrypter import Encrypter

logger = structlog.get_logger()


class PublicationStatus(str, Enum):
    REGISTERED = "registered"


def slugify(title: str) -> str:
    """Derive the disposition name of a publication from its title."""
    normalized = (
        unicodedata.normalize("NFKD", title or "").encode("ascii", "ignore").decode("ascii")
    )
    normalized = re.sub(r"[^a-zA-Z0-9\s_-]+", "", normalized).strip().lower()
    return re.sub(r"[-\s_]+", "-", normalized).strip("-")


def _require_title(title: Optional[str]) -> str:
    if not title or not title.strip():
        raise ValidationError("The publication title must be set")
    return title


class PublicationPipeline:
    """Creates, renames and deletes publications."""

    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        encrypter: Encrypter,
        settings: Settings,
    ):
        self.publications = PublicationService(db)
        self.coordinator = RegistrationCoordinator(db, blob_store)
        self.encrypter = encrypter
        self.master_repository = Path(settings.master_repository)

    def master_path(self, master_filename: str) -> Path:
        """Resolve a master filename inside the master repository."""
        if not master_filename or not master_filename.strip("/"):
            raise ValidationError("The master filename must be set")
        root = self.master_repository.resolve()
        path = (root / master_filename.lstrip("/")).resolve()
        if not path.is_relative_to(root):
            raise ValidationError(f"Invalid master filename: {master_filename!r}")
        return path

    def create_publication(
        self,
        master_filename: str,
        title: str,
        content_id: Optional[str] = None,
    ) -> PublicationModel:
        """Encrypt a master file, register it, then record the publication.

        Args:
            master_filename: File name relative to the master repository
            title: Publication title; its slug is the disposition name
            content_id: Artifact id to register under; generated when omitted

        Raises:
            ValidationError: Bad title, filename or content id; nothing was encrypted
            NotFoundError: The master file does not exist
            EncryptionError: The encrypter failed; nothing was stored
            StorageError: Registration or publication insert failed
        """
        _require_title(title)
        input_path = self.master_path(master_filename)
        if not input_path.is_file():
            raise NotFoundError(f"Master file {master_filename} not found")

        content_id = content_id or uuid.uuid4().hex
        validate_blob_id(content_id)
        disposition = slugify(title)
        log = logger.bind(content_id=content_id, title=title, disposition=disposition)

        artifact = self.encrypter.encrypt(input_path, disposition)
        try:
            self.coordinator.register_artifact(content_id, artifact)
        finally:
            artifact.path.unlink(missing_ok=True)

        publication = self.publications.add(
            title=title,
            master_filename=master_filename,
            status=PublicationStatus.REGISTERED.value,
        )
        log.info("publication_created", publication_id=publication.id)
        return publication

    def upload_publication(
        self, stream: BinaryIO, filename: str, title: str
    ) -> PublicationModel:
        """Store an uploaded master file, then run create_publication on it.

        The file is created exclusively: an upload never replaces an existing
        master file, and a failed publication removes the file it created.

        Raises:
            ValidationError: No usable filename, or the name is already taken
        """
        _require_title(title)
        name = Path(filename or "").name
        if not name:
            raise ValidationError("The uploaded file must have a name")

        destination = self.master_path(name)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            out = open(destination, "xb")
        except FileExistsError as e:
            raise ValidationError(f"Master file {name} already exists") from e
        except OSError as e:
            raise StorageError(f"Cannot store uploaded file {name}: {e}") from e

        try:
            with out:
                shutil.copyfileobj(stream, out)
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise StorageError(f"Cannot store uploaded file {name}: {e}") from e

        try:
            return self.create_publication(name, title)
        except Exception:
            destination.unlink(missing_ok=True)
            raise

    def get_publication(self, publication_id: int) -> PublicationModel:
        publication = self.publications.get(publication_id)
        if not publication:
            raise NotFoundError(f"Publication {publication_id} not found")
        return publication

    def get_publication_by_title(self, title: str) -> PublicationModel:
        _require_title(title)
        publication = self.publications.get_by_title(title)
        if not publication:
            raise NotFoundError(f"No publication titled {title!r}")
        return publication

    def list_publications(self, page: int, per_page: int) -> List[PublicationModel]:
        """page is 0-based here."""
        return self.publications.list(per_page=per_page, page=page)

    def update_publication(self, publication_id: int, title: str) -> PublicationModel:
        """Rename a publication. Status and the backing artifact are untouched."""
        _require_title(title)
        return self.publications.update(publication_id, title)

    def delete_publication(self, publication_id: int) -> None:
        """Remove the master file, then the publication row.

        The content record and blob stay. If the master file cannot be
        removed the row is kept and StorageError is raised.
        """
        publication = self.get_publication(publication_id)
        log = logger.bind(publication_id=publication_id)

        if publication.master_filename:
            path = self.master_path(publication.master_filename)
            if path.exists():
                try:
                    path.unlink()
                except OSError as e:
                    log.error("master_file_remove_failed", path=str(path), error=str(e))
                    raise StorageError(f"Cannot remove master file {path}: {e}") from e

        self.publications.delete(publication_id)
        log.info("publication_deleted")
