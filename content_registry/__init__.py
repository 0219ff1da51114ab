"""
Content Registry

Registers encrypted publication artifacts in a blob store and a relational
catalog, and keeps the two consistent.
"""

from .core.artifact import EncryptedArtifact, RegistrationOutcome
from .core.coordinator import FetchedArtifact, RegistrationCoordinator
from .core.pipeline import PublicationPipeline
from .errors import (
    IntegrityError,
    NotFoundError,
    RegistryError,
    StorageError,
    ValidationError,
)
from .storage import BlobStore, FileBlobStore, create_blob_store

__all__ = [
    "BlobStore",
    "EncryptedArtifact",
    "FetchedArtifact",
    "FileBlobStore",
    "IntegrityError",
    "NotFoundError",
    "PublicationPipeline",
    "RegistrationCoordinator",
    "RegistrationOutcome",
    "RegistryError",
    "StorageError",
    "ValidationError",
    "create_blob_store",
]
