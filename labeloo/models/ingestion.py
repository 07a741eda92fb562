"""Pydantic models for upload ingestion results."""

from enum import Enum

from pydantic import BaseModel


class OutcomeStatus(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


class FileOutcome(BaseModel):
    """What happened to one uploaded file, archive entry, or video frame."""

    original_name: str
    """Client-side filename, in-archive path, or extracted frame name."""

    source: str | None = None
    """Upload the item came from (archive or video), if not uploaded directly."""

    stored_name: str | None = None
    """Generated name in the project bucket; ``None`` if nothing was stored."""

    task_id: int | None = None
    """Created task; ``None`` if skipped or task creation failed."""

    status: OutcomeStatus
    message: str


class IngestionSummary(BaseModel):
    """Response from the ``POST /projects/{project_id}/uploads`` endpoint."""

    project_id: int
    files: list[FileOutcome]
    created_tasks: int
