"""
SQLAlchemy models for the Content Registry.
"""

import base64
from typing import Any, Dict

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.sql import func

from .base import Base


class ContentModel(Base):
    """Metadata of one encrypted artifact.

    The row is keyed by the same identifier as the blob holding the bytes.
    There is no history: a later registration overwrites every mutable field.
    """

    __tablename__ = "contents"

    id = Column(String(255), primary_key=True)
    encryption_key = Column(LargeBinary, nullable=False)
    location = Column(String(255), nullable=False, default="")
    length = Column(BigInteger, nullable=False, default=-1)
    sha256 = Column(String(64), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("ix_contents_created_at", "created_at"),)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "encryption_key": (
                base64.b64encode(self.encryption_key).decode("ascii")
                if self.encryption_key is not None
                else None
            ),
            "location": self.location,
            "length": self.length,
            "sha256": self.sha256,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class PublicationModel(Base):
    """A publication whose master file was encrypted and registered.

    The backing content is found through the slug of the title, not a
    foreign key.
    """

    __tablename__ = "publications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, unique=True, index=True)
    status = Column(String(50), nullable=False, default="registered", index=True)
    master_filename = Column(String(512), nullable=False, default="")

    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(), onupdate=func.now()
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "master_filename": self.master_filename,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
