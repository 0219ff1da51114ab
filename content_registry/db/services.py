"""
Database services for the Content Registry.

ContentService is the content catalog keyed by artifact id; PublicationService
is the publication catalog keyed by a store-assigned integer id. Neither
retries: database failures are rolled back and surfaced as StorageError.
"""

from datetime import datetime, timezone
from typing import List, Optional

import structlog
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from ..errors import DuplicateContentError, NotFoundError, StorageError, ValidationError
from .models import ContentModel, PublicationModel

logger = structlog.get_logger()


class ContentService:
    """Service for managing content records in the database."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, content_id: str) -> Optional[ContentModel]:
        """Get a content record by ID."""
        try:
            return (
                self.db.query(ContentModel).filter(ContentModel.id == content_id).first()
            )
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot read content {content_id}: {e}") from e

    def add(
        self,
        content_id: str,
        encryption_key: bytes,
        location: str = "",
        length: int = -1,
        sha256: str = "",
    ) -> ContentModel:
        """Insert a new content record.

        Uniqueness of the id is enforced by the primary key, so two concurrent
        first-time inserts cannot both succeed.

        Raises:
            DuplicateContentError: If a record with this id already exists
            StorageError: On any other database failure
        """
        now = datetime.now(timezone.utc)
        db_content = ContentModel(
            id=content_id,
            encryption_key=encryption_key,
            location=location,
            length=length,
            sha256=sha256,
            created_at=now,
            updated_at=now,
        )

        self.db.add(db_content)
        try:
            self.db.commit()
        except sa_exc.IntegrityError as e:
            self.db.rollback()
            raise DuplicateContentError(content_id) from e
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot add content {content_id}: {e}") from e

        self.db.refresh(db_content)
        return db_content

    def update(
        self,
        content_id: str,
        encryption_key: bytes,
        location: str = "",
        length: int = -1,
        sha256: str = "",
    ) -> ContentModel:
        """Replace every mutable field of an existing content record.

        Raises:
            NotFoundError: If no record with this id exists
            StorageError: On any other database failure
        """
        content = self.get(content_id)
        if not content:
            raise NotFoundError(f"Content {content_id} not found")

        content.encryption_key = encryption_key
        content.location = location
        content.length = length
        content.sha256 = sha256
        content.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot update content {content_id}: {e}") from e

        self.db.refresh(content)
        return content

    def list(self) -> List[ContentModel]:
        """Get all content records in insertion order."""
        try:
            return (
                self.db.query(ContentModel)
                .order_by(ContentModel.created_at, ContentModel.id)
                .all()
            )
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot list contents: {e}") from e


class PublicationService:
    """Service for managing publications in the database."""

    def __init__(self, db: Session):
        self.db = db

    def list(self, per_page: int, page: int) -> List[PublicationModel]:
        """Get one page of publications. page is 0-based."""
        try:
            return (
                self.db.query(PublicationModel)
                .order_by(PublicationModel.id)
                .offset(page * per_page)
                .limit(per_page)
                .all()
            )
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot list publications: {e}") from e

    def get(self, publication_id: int) -> Optional[PublicationModel]:
        """Get a publication by ID."""
        try:
            return (
                self.db.query(PublicationModel)
                .filter(PublicationModel.id == publication_id)
                .first()
            )
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot read publication {publication_id}: {e}") from e

    def get_by_title(self, title: str) -> Optional[PublicationModel]:
        """Get a publication by its exact title."""
        try:
            return (
                self.db.query(PublicationModel)
                .filter(PublicationModel.title == title)
                .first()
            )
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot read publication {title!r}: {e}") from e

    def add(self, title: str, master_filename: str, status: str) -> PublicationModel:
        """Insert a new publication."""
        now = datetime.now(timezone.utc)
        db_publication = PublicationModel(
            title=title,
            status=status,
            master_filename=master_filename,
            created_at=now,
            updated_at=now,
        )

        self.db.add(db_publication)
        try:
            self.db.commit()
        except sa_exc.IntegrityError as e:
            self.db.rollback()
            raise ValidationError(f"A publication titled {title!r} already exists") from e
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot add publication {title!r}: {e}") from e

        self.db.refresh(db_publication)
        logger.info("publication_added", publication_id=db_publication.id, title=title)
        return db_publication

    def update(self, publication_id: int, title: str) -> PublicationModel:
        """Change the title of a publication. Status is left untouched."""
        publication = self.get(publication_id)
        if not publication:
            raise NotFoundError(f"Publication {publication_id} not found")

        publication.title = title
        publication.updated_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
        except sa_exc.IntegrityError as e:
            self.db.rollback()
            raise ValidationError(f"A publication titled {title!r} already exists") from e
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot update publication {publication_id}: {e}") from e

        self.db.refresh(publication)
        return publication

    def delete(self, publication_id: int) -> None:
        """Delete a publication row."""
        publication = self.get(publication_id)
        if not publication:
            raise NotFoundError(f"Publication {publication_id} not found")

        self.db.delete(publication)
        try:
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError(f"Cannot delete publication {publication_id}: {e}") from e
