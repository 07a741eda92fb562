"""Uploads API router.

Endpoints:
- POST /projects/{project_id}/uploads -- ingest images, zip archives, and videos
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile

from labeloo.dependencies import get_ingestion_service, require_permission
from labeloo.models.ingestion import IngestionSummary
from labeloo.services.ingestion import IngestionService, UploadedFile
from labeloo.services.permissions import UPLOAD_DATA

router = APIRouter(prefix="/projects/{project_id}/uploads", tags=["uploads"])


@router.post("", response_model=IngestionSummary, status_code=201)
def upload_files(
    project_id: int,
    files: list[UploadFile] = File(...),
    fps: float | None = Form(default=None),
    _user_id: int = Depends(require_permission(UPLOAD_DATA)),
    ingestion_service: IngestionService = Depends(get_ingestion_service),
) -> IngestionSummary:
    """Store uploads and create one task per image or extracted frame.

    ``fps`` is required (and must be positive) when any file is a video.
    Per-file results are reported in ``files``; one bad file never fails
    the others.
    """
    received = []
    for upload in files:
        try:
            received.append(
                UploadedFile(
                    filename=upload.filename or "upload",
                    content_type=upload.content_type,
                    data=upload.file.read(),
                )
            )
        finally:
            upload.file.close()
    return ingestion_service.ingest_files(project_id, received, fps=fps)
