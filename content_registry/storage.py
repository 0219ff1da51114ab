"""
Blob storage for encrypted artifacts.

v0: file:// support (local filesystem)
v2: s3:// support (add an S3 handler without changing the coordinator)

Blobs are keyed by the artifact identifier. A write is published with an
atomic rename, so readers observe either the previous bytes or the new ones.
"""
from __future__ import annotations

import os
import shutil
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Tuple
from urllib.parse import urlparse

import structlog

from .errors import NotFoundError, StorageError, ValidationError

logger = structlog.get_logger()

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StoredBlob:
    """Handle returned by a successful put."""

    key: str
    size: int
    uri: str


class BlobStore(ABC):
    """Abstract base class for artifact byte storage."""

    @abstractmethod
    def put(self, blob_id: str, stream: BinaryIO, size: int = -1) -> StoredBlob:
        """Write bytes from stream under blob_id, replacing any existing blob.

        Args:
            blob_id: Artifact identifier
            stream: Readable binary stream
            size: Number of bytes to copy; negative copies to EOF

        Raises:
            ValidationError: If blob_id is not a usable key
            StorageError: On any I/O failure or a short stream
        """
        pass

    @abstractmethod
    def get(self, blob_id: str) -> Tuple[BinaryIO, int]:
        """Open the blob for reading. The caller closes the stream.

        Raises:
            NotFoundError: If no blob is stored under blob_id
            StorageError: On any other I/O failure
        """
        pass

    @abstractmethod
    def exists(self, blob_id: str) -> bool:
        """Check whether a blob is stored under blob_id."""
        pass

    @abstractmethod
    def get_uri(self) -> str:
        """Get the base URI of this store."""
        pass


def validate_blob_id(blob_id: str) -> str:
    """Reject identifiers that are empty or could escape the store root."""
    if not blob_id or not blob_id.strip():
        raise ValidationError("The content id must be set")
    if "/" in blob_id or "\\" in blob_id or blob_id in (".", "..") or "\x00" in blob_id:
        raise ValidationError(f"Invalid content id: {blob_id!r}")
    return blob_id


class FileBlobStore(BlobStore):
    """Local filesystem blob store (file:// URIs).

    Structure:
        {root}/
        ├── {content_id}        # Encrypted artifact bytes
        └── .tmp-*              # In-flight writes, renamed on completion
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, blob_id: str) -> Path:
        return self.root / validate_blob_id(blob_id)

    def put(self, blob_id: str, stream: BinaryIO, size: int = -1) -> StoredBlob:
        dest = self._path(blob_id)
        log = logger.bind(blob_id=blob_id, size=size)

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=".tmp-", dir=self.root)
        except OSError as e:
            raise StorageError(f"Cannot create temporary file for {blob_id}: {e}") from e

        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as out:
                written = _copy(stream, out, size)
                out.flush()
                os.fsync(out.fileno())
            if size >= 0 and written != size:
                raise StorageError(
                    f"Short write for {blob_id}: expected {size} bytes, got {written}"
                )
            os.replace(tmp, dest)
        except StorageError:
            tmp.unlink(missing_ok=True)
            raise
        except OSError as e:
            tmp.unlink(missing_ok=True)
            log.error("blob_put_failed", error=str(e))
            raise StorageError(f"Cannot store {blob_id}: {e}") from e

        log.info("blob_stored", written=written)
        return StoredBlob(key=blob_id, size=written, uri=f"file://{dest}")

    def get(self, blob_id: str) -> Tuple[BinaryIO, int]:
        path = self._path(blob_id)
        try:
            stream = open(path, "rb")
        except FileNotFoundError as e:
            raise NotFoundError(f"No encrypted file stored for {blob_id}") from e
        except OSError as e:
            raise StorageError(f"Cannot open {blob_id}: {e}") from e

        try:
            size = os.fstat(stream.fileno()).st_size
        except OSError as e:
            stream.close()
            raise StorageError(f"Cannot stat {blob_id}: {e}") from e
        return stream, size

    def exists(self, blob_id: str) -> bool:
        return self._path(blob_id).is_file()

    def get_uri(self) -> str:
        return f"file://{self.root}"


def _copy(source: BinaryIO, target: BinaryIO, size: int) -> int:
    """Copy size bytes (or everything when size < 0) and return the count."""
    if size < 0:
        before = target.tell()
        shutil.copyfileobj(source, target, CHUNK_SIZE)
        return target.tell() - before

    remaining = size
    written = 0
    while remaining > 0:
        chunk = source.read(min(CHUNK_SIZE, remaining))
        if not chunk:
            break
        target.write(chunk)
        written += len(chunk)
        remaining -= len(chunk)
    return written


def create_blob_store(uri: str) -> BlobStore:
    """Factory function to create the appropriate BlobStore from a URI.

    Args:
        uri: Base URI (e.g., "file:///var/lib/registry/blobs" or "s3://bucket/prefix")

    Returns:
        BlobStore instance for the given URI scheme

    Raises:
        ValueError: If URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        # file://./data/blobs keeps the relative path in netloc
        return FileBlobStore(Path(parsed.netloc + parsed.path))

    elif parsed.scheme == "s3":
        raise NotImplementedError(f"S3 storage not yet implemented. URI: {uri}")

    else:
        raise ValueError(
            f"Unsupported storage scheme: {parsed.scheme}. "
            f"Supported: file://, s3:// (v2)"
        )
