"""
Content API Routes.

Ingestion, registration, retrieval and listing of encrypted artifacts.
All endpoints are prefixed with /contents.
"""

import os
import tempfile
import unicodedata
import uuid
from pathlib import Path
from typing import Any, Dict, Iterator, List
from urllib.parse import quote

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

from ..config import Settings, get_settings
from ..core.artifact import EncryptedArtifact
from ..core.coordinator import FetchedArtifact, RegistrationCoordinator
from ..core.encrypter import Encrypter
from ..dependencies import get_coordinator, get_encrypter
from ..errors import ValidationError
from ..schemas import ContentRegistration
from ..storage import CHUNK_SIZE

logger = structlog.get_logger()

router = APIRouter(prefix="/contents", tags=["contents"])


def _ingest(
    payload: bytes,
    name: str,
    encrypter: Encrypter,
    coordinator: RegistrationCoordinator,
) -> str:
    """Encrypt a raw upload and register it under a fresh id."""
    fd, tmp_name = tempfile.mkstemp(prefix="upload-")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)

        artifact = encrypter.encrypt(tmp, name)
        content_id = uuid.uuid4().hex
        try:
            coordinator.register_artifact(content_id, artifact)
        finally:
            artifact.path.unlink(missing_ok=True)
        return content_id
    finally:
        tmp.unlink(missing_ok=True)


@router.post("/{name}", status_code=201)
async def store_content(
    name: str,
    request: Request,
    encrypter: Encrypter = Depends(get_encrypter),
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """Encrypt the request body and store it. Returns the generated content id."""
    payload = await request.body()
    if not payload:
        raise ValidationError("The request body is empty")

    content_id = await run_in_threadpool(_ingest, payload, name, encrypter, coordinator)
    return JSONResponse(status_code=201, content=content_id)


@router.put("/{content_id}")
def add_content(
    content_id: str,
    registration: ContentRegistration,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
) -> JSONResponse:
    """
    Register the result of an external encryption.

    The encrypted file named by `output` is copied into the blob store under
    content_id, then the key and metadata are inserted or replaced.
    Answers 201 on insert and 200 on update.
    """
    output = Path(registration.output)
    if not output.is_file():
        raise ValidationError(f"Encrypted file not found: {registration.output}")

    artifact = EncryptedArtifact(
        content_key=registration.key_bytes(),
        path=output,
        location=registration.content_disposition,
        length=registration.size,
        sha256=registration.checksum,
    )
    outcome = coordinator.register_artifact(content_id, artifact)
    return JSONResponse(
        status_code=outcome.status_code,
        content={
            "status": "success",
            "content_id": content_id,
            "outcome": outcome.value,
        },
    )


@router.get("")
def list_contents(
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
) -> List[Dict[str, Any]]:
    """List every registered content record."""
    return [content.to_dict() for content in coordinator.list_contents()]


def content_disposition(location: str) -> str:
    """Attachment header for a disposition name.

    Names that need no quoting go out as-is. Others get an ASCII fallback
    plus an RFC 5987 ``filename*`` parameter, as Starlette's FileResponse does.
    """
    quoted = quote(location)
    if quoted == location:
        return f"attachment; filename={location}"

    fallback = (
        unicodedata.normalize("NFKD", location).encode("ascii", "ignore").decode("ascii")
    )
    fallback = "".join(
        c for c in fallback if c.isprintable() and c not in '"\\'
    ).strip() or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quoted}"


def _iter_blob(fetched: FetchedArtifact) -> Iterator[bytes]:
    try:
        while True:
            chunk = fetched.stream.read(CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        fetched.close()


@router.get("/{content_id}")
def get_content(
    content_id: str,
    coordinator: RegistrationCoordinator = Depends(get_coordinator),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Stream an encrypted artifact."""
    fetched = coordinator.fetch_artifact(content_id)
    record = fetched.record

    length = record.length
    if length < 0 or length != fetched.size:
        if length >= 0:
            logger.warning(
                "content_length_mismatch",
                content_id=content_id,
                recorded=length,
                stored=fetched.size,
            )
        # The header must match the bytes actually sent
        length = fetched.size

    headers = {
        "Content-Disposition": content_disposition(record.location),
        "Content-Length": str(length),
    }
    try:
        return StreamingResponse(
            _iter_blob(fetched),
            media_type=settings.content_type,
            headers=headers,
        )
    except Exception:
        fetched.close()
        raise
