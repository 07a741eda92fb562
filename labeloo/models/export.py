"""Pydantic models for dataset export requests and results."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


class ExportFormat(str, Enum):
    """Supported export formats.

    ``yolo`` writes normalized detection labels plus ``data.yaml``;
    ``json`` writes each annotation payload verbatim.
    """

    YOLO = "yolo"
    JSON = "json"


class SplitConfig(BaseModel):
    """Train/test/validation percentages recorded in the manifest.

    Purely descriptive: files are not partitioned into split folders.
    """

    train: float = Field(80, ge=0, le=100)
    test: float = Field(10, ge=0, le=100)
    validation: float = Field(10, ge=0, le=100)

    @model_validator(mode="after")
    def _sums_to_hundred(self) -> "SplitConfig":
        total = self.train + self.test + self.validation
        if abs(total - 100) > 1e-6:
            raise ValueError(f"split percentages must sum to 100, got {total:g}")
        return self


class ExportRequest(BaseModel):
    """Request body for POST /projects/{project_id}/export."""

    format: ExportFormat = ExportFormat.YOLO
    split_config: SplitConfig | None = None


class ExportRecord(BaseModel):
    """One exported task, as listed in the manifest."""

    task_id: int
    annotation_id: int
    image_url: str
    image_path: str
    label_path: str
    metadata: dict[str, Any] | None = None
    is_ground_truth: bool


class ExportResult(BaseModel):
    """Summary returned once the archive has been written."""

    format: ExportFormat
    project_id: int
    project_name: str
    total_tasks: int
    exported_tasks: int
    skipped_tasks: int
    archive_path: str
    exported_at: datetime
    split_config: SplitConfig | None = None
