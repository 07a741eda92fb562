"""Pydantic models for annotation records and annotation shape payloads."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError


class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AnnotationCreate(BaseModel):
    """Request body for POST /annotations.

    ``user_id`` is accepted for compatibility with older clients but is
    never trusted: the authenticated caller is always recorded as author.
    ``project_id`` is derived from the task when omitted.
    """

    task_id: int
    annotation_data: dict[str, Any] | list[Any]
    is_ground_truth: bool = False
    review_status: ReviewStatus = ReviewStatus.PENDING
    reviewer_id: int | None = None
    project_id: int | None = None
    user_id: int | None = None


class AnnotationResponse(BaseModel):
    """Single annotation record returned by the API."""

    id: int
    task_id: int
    user_id: int
    project_id: int
    annotation_data: dict[str, Any] | list[Any]
    is_ground_truth: bool
    review_status: ReviewStatus
    reviewer_id: int | None = None
    created_at: datetime
    updated_at: datetime


# ----------------------------------------------------------------------
# Shape payloads
# ----------------------------------------------------------------------


class Point(BaseModel):
    x: float
    y: float


class _LabeledShape(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    class_id: int = Field(0, alias="classId")

    @field_validator("class_id", mode="before")
    @classmethod
    def _default_class(cls, value: Any) -> Any:
        return 0 if value is None else value


class RectangleShape(_LabeledShape):
    """Rectangle given as a start point plus (possibly negative) extents."""

    start_point: Point = Field(alias="startPoint")
    width: float
    height: float


class BoxShape(_LabeledShape):
    """Rectangle given as a COCO-style ``[x, y, w, h]`` box."""

    bbox: tuple[float, float, float, float]


class UnrecognizedShape(BaseModel):
    """Any primitive this service cannot interpret (polygons, points, ...)."""

    type: str | None = None
    raw: Any = None


Shape = RectangleShape | BoxShape | UnrecognizedShape


def parse_shape(raw: Any) -> Shape:
    """Classify one raw primitive into a :data:`Shape` variant.

    Malformed rectangles become :class:`UnrecognizedShape` rather than
    raising.
    """
    if not isinstance(raw, dict):
        return UnrecognizedShape(raw=raw)

    shape_type = raw.get("type")
    if shape_type == "rectangle":
        try:
            if "startPoint" in raw or "start_point" in raw:
                return RectangleShape.model_validate(raw)
            if "bbox" in raw:
                return BoxShape.model_validate(raw)
        except PydanticValidationError:
            pass
    return UnrecognizedShape(
        type=shape_type if isinstance(shape_type, str) else None, raw=raw
    )


def extract_shapes(annotation_data: Any) -> list[Shape]:
    """Return the shapes contained in an annotation payload.

    Accepts ``{"annotations": [...]}``, a bare list, or a single shape
    object carrying a ``type`` key.  Anything else yields no shapes.
    """
    if isinstance(annotation_data, dict):
        items = annotation_data.get("annotations")
        if isinstance(items, list):
            return [parse_shape(item) for item in items]
        if "type" in annotation_data:
            return [parse_shape(annotation_data)]
        return []
    if isinstance(annotation_data, list):
        return [parse_shape(item) for item in annotation_data]
    return []
