"""Pydantic models for annotation tasks and their lifecycle."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class TaskStatus(str, Enum):
    """Lifecycle status of a task.

    ``unassigned`` tasks sit in the shared pool with no assignee;
    ``annotating`` tasks always have one.
    """

    UNASSIGNED = "unassigned"
    ANNOTATING = "annotating"
    COMPLETED = "completed"


class TaskResponse(BaseModel):
    """Single task record returned by the API."""

    id: int
    project_id: int
    data_url: str
    data_type: str = "image"
    status: TaskStatus
    assigned_to: int | None = None
    metadata: dict[str, Any] | None = None
    priority: int = 0
    created_at: datetime
    updated_at: datetime


class TaskDetailResponse(TaskResponse):
    """Task detail with the pointer that drives the "next" button."""

    next_task_id: int | None = None


class GroupedTasksResponse(BaseModel):
    """Tasks of one project grouped by lifecycle status."""

    unassigned: list[TaskResponse]
    annotating: list[TaskResponse]
    completed: list[TaskResponse]


class TaskStats(BaseModel):
    """Per-status task counts for a project."""

    total: int
    unassigned: int
    annotating: int
    completed: int


class TaskCreate(BaseModel):
    """Request body for POST /projects/{project_id}/tasks."""

    data_url: str
    data_type: str = "image"
    metadata: dict[str, Any] | None = None
    priority: int = 0


class TaskFieldsUpdate(BaseModel):
    """Partial task fields; only fields explicitly set are written.

    ``assigned_to`` and ``metadata`` may be set to null; ``status`` and
    ``priority`` may only be omitted.
    """

    status: TaskStatus | None = None
    assigned_to: int | None = None
    metadata: dict[str, Any] | None = None
    priority: int | None = None

    @field_validator("status", "priority", mode="before")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class TaskBulkUpdate(BaseModel):
    """Request body for PATCH /tasks."""

    task_ids: list[int] = Field(..., min_length=1)
    updates: TaskFieldsUpdate


class TaskAssign(BaseModel):
    """Request body for POST /tasks/{task_id}/assign.

    When *user_id* is omitted the caller assigns the task to themselves.
    """

    user_id: int | None = None
