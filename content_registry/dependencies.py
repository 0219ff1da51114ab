"""FastAPI dependencies shared by the routers."""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .core.coordinator import RegistrationCoordinator
from .core.encrypter import Encrypter
from .core.encrypter import get_encrypter as build_encrypter
from .core.pipeline import PublicationPipeline
from .db.base import get_db
from .storage import BlobStore, create_blob_store


@lru_cache(maxsize=None)
def _blob_store_for(uri: str) -> BlobStore:
    return create_blob_store(uri)


def get_blob_store(settings: Settings = Depends(get_settings)) -> BlobStore:
    """The blob store configured by blob_storage_uri, one per process."""
    return _blob_store_for(settings.blob_storage_uri)


def get_encrypter(settings: Settings = Depends(get_settings)) -> Encrypter:
    return build_encrypter(settings)


def get_coordinator(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> RegistrationCoordinator:
    return RegistrationCoordinator(db, blob_store)


def get_pipeline(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    encrypter: Encrypter = Depends(get_encrypter),
    settings: Settings = Depends(get_settings),
) -> PublicationPipeline:
    return PublicationPipeline(db, blob_store, encrypter, settings)
