"""Media bucket router.

Endpoints:
- GET /bucket/{path} -- serve a stored media file (task images, raw uploads)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from labeloo.dependencies import get_media_store
from labeloo.repositories.storage import MediaStore

router = APIRouter(prefix="/bucket", tags=["bucket"])


@router.get("/{path:path}")
def get_media(
    path: str,
    media: MediaStore = Depends(get_media_store),
) -> FileResponse:
    """Serve a file by its bucket-relative path.

    Paths that would leave the bucket are rejected with 400 by the store.
    """
    local = media.local_path(path)
    if not local.is_file():
        raise HTTPException(status_code=404, detail="File not found")
    return FileResponse(local)
