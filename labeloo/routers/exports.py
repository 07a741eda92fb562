"""Export API router.

Endpoints:
- POST /projects/{project_id}/export -- build a dataset archive (YOLO or JSON)
- GET /exports/{archive_name}        -- download a previously built archive
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends
from fastapi.responses import FileResponse

from labeloo.dependencies import (
    get_current_user_id,
    get_export_service,
    require_permission,
)
from labeloo.models.export import ExportRequest, ExportResult
from labeloo.services.export import ExportService
from labeloo.services.permissions import EXPORT_DATA

router = APIRouter(tags=["exports"])


@router.post("/projects/{project_id}/export", response_model=ExportResult)
def export_project(
    project_id: int,
    body: ExportRequest | None = Body(default=None),
    _user_id: int = Depends(require_permission(EXPORT_DATA)),
    export_service: ExportService = Depends(get_export_service),
) -> ExportResult:
    """Export the project's completed tasks.

    Defaults to YOLO with an 80/10/10 split when no body is sent.
    """
    request = body or ExportRequest()
    return export_service.export_project(
        project_id, format=request.format, split_config=request.split_config
    )


@router.get("/exports/{archive_name}")
def download_export(
    archive_name: str,
    _user_id: int = Depends(get_current_user_id),
    export_service: ExportService = Depends(get_export_service),
) -> FileResponse:
    path = export_service.archive_path(archive_name)
    return FileResponse(path, media_type="application/zip", filename=archive_name)
