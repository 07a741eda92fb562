"""Tasks API router.

Endpoints:
- GET /projects/{project_id}/tasks        -- project tasks grouped by status
- GET /projects/{project_id}/tasks/pool   -- unassigned tasks of a project
- GET /projects/{project_id}/tasks/stats  -- per-status task counts
- POST /projects/{project_id}/tasks       -- create a task
- GET /tasks/mine                         -- tasks assigned to the caller
- GET /tasks/{task_id}                    -- task detail with next_task_id
- PATCH /tasks                            -- apply one update to many tasks
- POST /tasks/{task_id}/assign            -- assign (to the caller by default)
- POST /tasks/{task_id}/unassign          -- return a task to the pool
- POST /tasks/{task_id}/complete          -- mark an assigned task completed
- DELETE /tasks/{task_id}                 -- delete a task and its annotations
- GET /tasks/{task_id}/annotations        -- annotations of one task
"""

from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Query

from labeloo.dependencies import (
    get_annotation_store,
    get_current_user_id,
    get_project_directory,
    get_task_registry,
    require_permission,
)
from labeloo.models.annotation import AnnotationResponse
from labeloo.models.task import (
    GroupedTasksResponse,
    TaskAssign,
    TaskBulkUpdate,
    TaskCreate,
    TaskDetailResponse,
    TaskResponse,
    TaskStats,
)
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.permissions import MANAGE_TASKS
from labeloo.services.projects import ProjectDirectory
from labeloo.services.task_registry import TaskRegistry

# Project-scoped task endpoints
projects_router = APIRouter(prefix="/projects/{project_id}/tasks", tags=["tasks"])

# Task-level endpoints
router = APIRouter(prefix="/tasks", tags=["tasks"])


@projects_router.get("", response_model=GroupedTasksResponse)
def list_project_tasks(
    project_id: int,
    _user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
) -> GroupedTasksResponse:
    """All tasks of a project, grouped by status, highest priority first."""
    return registry.group_by_status(project_id)


@projects_router.get("/pool", response_model=list[TaskResponse])
def list_task_pool(
    project_id: int,
    _user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
) -> list[TaskResponse]:
    return registry.list_unassigned(project_id)


@projects_router.get("/stats", response_model=TaskStats)
def get_task_stats(
    project_id: int,
    _user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskStats:
    return registry.stats(project_id)


@projects_router.post("", response_model=TaskResponse, status_code=201)
def create_task(
    project_id: int,
    body: TaskCreate,
    _user_id: int = Depends(require_permission(MANAGE_TASKS)),
    projects: ProjectDirectory = Depends(get_project_directory),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    """Create a task in the project's unassigned pool."""
    projects.get(project_id)
    return registry.create(
        project_id=project_id,
        data_url=body.data_url,
        data_type=body.data_type,
        metadata=body.metadata,
        priority=body.priority,
    )


@router.get("/mine", response_model=list[TaskResponse])
def list_my_tasks(
    project_id: int | None = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
) -> list[TaskResponse]:
    """Tasks assigned to the caller, optionally limited to one project."""
    return registry.list_by_assignee(user_id, project_id)


@router.patch("", response_model=list[TaskResponse])
def bulk_update_tasks(
    body: TaskBulkUpdate,
    _user_id: int = Depends(require_permission(MANAGE_TASKS)),
    registry: TaskRegistry = Depends(get_task_registry),
) -> list[TaskResponse]:
    """Apply the same partial update to every listed task.

    Unknown ids are skipped; the response lists only updated tasks.
    """
    return registry.update_many(body.task_ids, body.updates)


@router.get("/{task_id}", response_model=TaskDetailResponse)
def get_task(
    task_id: int,
    _user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskDetailResponse:
    return registry.get_by_id(task_id)


@router.post("/{task_id}/assign", response_model=TaskResponse)
def assign_task(
    task_id: int,
    body: TaskAssign | None = Body(default=None),
    user_id: int = Depends(require_permission(MANAGE_TASKS)),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    """Assign a task; without a body the caller takes it."""
    assignee = body.user_id if body is not None and body.user_id is not None else user_id
    return registry.assign(task_id, assignee)


@router.post("/{task_id}/unassign", response_model=TaskResponse)
def unassign_task(
    task_id: int,
    _user_id: int = Depends(require_permission(MANAGE_TASKS)),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    return registry.unassign(task_id)


@router.post("/{task_id}/complete", response_model=TaskResponse)
def complete_task(
    task_id: int,
    _user_id: int = Depends(require_permission(MANAGE_TASKS)),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    return registry.complete(task_id)


@router.delete("/{task_id}", response_model=TaskResponse)
def delete_task(
    task_id: int,
    _user_id: int = Depends(require_permission(MANAGE_TASKS)),
    registry: TaskRegistry = Depends(get_task_registry),
) -> TaskResponse:
    """Delete a task together with all of its annotations."""
    return registry.delete(task_id)


@router.get("/{task_id}/annotations", response_model=list[AnnotationResponse])
def list_task_annotations(
    task_id: int,
    _user_id: int = Depends(get_current_user_id),
    registry: TaskRegistry = Depends(get_task_registry),
    annotations: AnnotationStore = Depends(get_annotation_store),
) -> list[AnnotationResponse]:
    registry.get(task_id)
    return annotations.list_for_task(task_id)
