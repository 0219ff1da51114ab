"""
Publication API Routes.

All endpoints are prefixed with /publications.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from ..config import Settings, get_settings
from ..core.pipeline import PublicationPipeline
from ..dependencies import get_pipeline
from ..pagination import build_link_header, parse_page_request
from ..schemas import PublicationCreate, PublicationUpdate

router = APIRouter(prefix="/publications", tags=["publications"])


@router.get("")
def list_publications(
    page: Optional[str] = Query(None),
    per_page: Optional[str] = Query(None),
    pipeline: PublicationPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    """List publications, 1-based page, with Link headers for next/previous."""
    request = parse_page_request(page, per_page, settings.default_per_page)
    publications = pipeline.list_publications(request.index, request.per_page)

    headers = {}
    link = build_link_header("/publications", request, len(publications))
    if link:
        headers["Link"] = link

    return JSONResponse(
        content=[p.to_dict() for p in publications],
        headers=headers,
    )


@router.get("/check-by-title")
def check_publication_by_title(
    title: str = Query(...),
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Get the publication stored with this exact title."""
    return pipeline.get_publication_by_title(title).to_dict()


@router.get("/{publication_id}")
def get_publication(
    publication_id: int,
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Get a publication by ID."""
    return pipeline.get_publication(publication_id).to_dict()


@router.post("", status_code=201)
def create_publication(
    publication: PublicationCreate,
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Encrypt a master file, register its content and record the publication."""
    db_publication = pipeline.create_publication(
        publication.master_filename,
        publication.title,
        content_id=publication.content_id,
    )
    return {"status": "success", "publication": db_publication.to_dict()}


@router.post("/upload", status_code=201)
def upload_publication(
    title: str = Form(...),
    file: UploadFile = File(...),
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Store an uploaded master file and publish it."""
    db_publication = pipeline.upload_publication(file.file, file.filename, title)
    return {"status": "success", "publication": db_publication.to_dict()}


@router.put("/{publication_id}")
def update_publication(
    publication_id: int,
    update: PublicationUpdate,
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Rename a publication. Its status is preserved."""
    db_publication = pipeline.update_publication(publication_id, update.title)
    return {"status": "success", "publication": db_publication.to_dict()}


@router.delete("/{publication_id}")
def delete_publication(
    publication_id: int,
    pipeline: PublicationPipeline = Depends(get_pipeline),
) -> Dict[str, str]:
    """Delete a publication and its master file. The content stays registered."""
    pipeline.delete_publication(publication_id)
    return {"status": "success", "message": f"Publication {publication_id} deleted"}
