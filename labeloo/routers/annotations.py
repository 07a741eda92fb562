"""Annotations router.

Endpoints:
- GET /annotations                  -- annotations authored by the caller
- GET /annotations/{annotation_id}  -- one of the caller's annotations
- POST /annotations                 -- create an annotation authored by the caller
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from labeloo.dependencies import (
    get_annotation_store,
    get_current_user_id,
    require_permission,
)
from labeloo.models.annotation import AnnotationCreate, AnnotationResponse
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.permissions import CREATE_ANNOTATIONS

router = APIRouter(prefix="/annotations", tags=["annotations"])


@router.get("", response_model=list[AnnotationResponse])
def list_my_annotations(
    user_id: int = Depends(get_current_user_id),
    store: AnnotationStore = Depends(get_annotation_store),
) -> list[AnnotationResponse]:
    return store.list_by_user(user_id)


@router.get("/{annotation_id}", response_model=AnnotationResponse)
def get_annotation(
    annotation_id: int,
    user_id: int = Depends(get_current_user_id),
    store: AnnotationStore = Depends(get_annotation_store),
) -> AnnotationResponse:
    return store.get_by_id(annotation_id, user_id=user_id)


@router.post("", response_model=AnnotationResponse, status_code=201)
def create_annotation(
    body: AnnotationCreate,
    user_id: int = Depends(require_permission(CREATE_ANNOTATIONS)),
    store: AnnotationStore = Depends(get_annotation_store),
) -> AnnotationResponse:
    """Create an annotation; the caller is always recorded as its author."""
    return store.create(body, author_id=user_id)
