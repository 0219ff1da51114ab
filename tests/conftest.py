"""Test configuration and fixtures."""

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from content_registry.api import app
from content_registry.config import Settings, get_settings
from content_registry.core.coordinator import RegistrationCoordinator
from content_registry.core.encrypter import StubEncrypter
from content_registry.core.pipeline import PublicationPipeline
from content_registry.db.base import create_db_engine, get_db, init_database
from content_registry.dependencies import get_blob_store
from content_registry.storage import FileBlobStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every store at a temporary directory."""
    master = tmp_path / "master"
    master.mkdir()
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'registry.db'}",
        blob_storage_uri=f"file://{tmp_path / 'blobs'}",
        master_repository=str(master),
        work_directory=str(tmp_path / "work"),
        encrypter="stub",
        log_format="console",
    )


@pytest.fixture
def engine(settings: Settings):
    engine = create_db_engine(settings.database_url)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    """Get a test database session."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def blob_store(tmp_path: Path) -> FileBlobStore:
    return FileBlobStore(tmp_path / "blobs")


@pytest.fixture
def coordinator(db_session, blob_store) -> RegistrationCoordinator:
    return RegistrationCoordinator(db_session, blob_store)


@pytest.fixture
def pipeline(db_session, blob_store, settings) -> PublicationPipeline:
    return PublicationPipeline(
        db_session, blob_store, StubEncrypter(settings.work_directory), settings
    )


@pytest.fixture
def master_file(settings: Settings):
    """Write a file into the master repository and return its name."""

    def _write(name: str = "book.epub", payload: bytes = b"PK\x03\x04 master epub") -> str:
        path = Path(settings.master_repository) / name
        path.write_bytes(payload)
        return name

    return _write


@pytest.fixture
def encrypted_file(tmp_path: Path):
    """Write an "encrypted" output file outside the stores and return its path."""
    counter = {"n": 0}

    def _write(payload: bytes) -> Path:
        counter["n"] += 1
        path = tmp_path / f"encrypted-{counter['n']}.epub"
        path.write_bytes(payload)
        return path

    return _write


@pytest.fixture
def client(settings, session_factory, blob_store) -> Generator[TestClient, None, None]:
    """Get a test client wired to the temporary stores."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
