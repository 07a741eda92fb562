"""Task registry: task records and their lifecycle state.

Every listing is ordered by priority (highest first), then creation time
(newest first).  ``id DESC`` breaks ties between rows created in the same
instant so the order is total.

The registry maintains the lifecycle invariant on every write::

    status == "unassigned"  <=>  assigned_to IS NULL
"""

from __future__ import annotations

import json
import logging
from typing import Any

from labeloo.errors import InvalidTransitionError, NotFoundError, ValidationError
from labeloo.models.task import (
    GroupedTasksResponse,
    TaskDetailResponse,
    TaskFieldsUpdate,
    TaskResponse,
    TaskStats,
    TaskStatus,
)
from labeloo.repositories.duckdb_repo import DuckDBRepo

logger = logging.getLogger(__name__)

_TASK_COLUMNS = (
    "id, project_id, data_url, data_type, status, assigned_to, "
    "metadata, priority, created_at, updated_at"
)
_LIST_ORDER = "ORDER BY priority DESC, created_at DESC, id DESC"
_NON_NULLABLE_FIELDS = ("status", "priority")


def _row_to_task(row: tuple) -> TaskResponse:
    """Convert a row selected with ``_TASK_COLUMNS`` into a TaskResponse."""
    return TaskResponse(
        id=row[0],
        project_id=row[1],
        data_url=row[2],
        data_type=row[3],
        status=row[4],
        assigned_to=row[5],
        metadata=json.loads(row[6]) if isinstance(row[6], str) else row[6],
        priority=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


class TaskRegistry:
    """CRUD and lifecycle transitions for tasks stored in DuckDB."""

    def __init__(self, db: DuckDBRepo) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _select(self, where: str, params: list[Any]) -> list[TaskResponse]:
        cursor = self.db.connection.cursor()
        try:
            rows = cursor.execute(
                f"SELECT {_TASK_COLUMNS} FROM tasks WHERE {where} {_LIST_ORDER}",
                params,
            ).fetchall()
        finally:
            cursor.close()
        return [_row_to_task(row) for row in rows]

    def list_by_project(self, project_id: int) -> list[TaskResponse]:
        return self._select("project_id = ?", [project_id])

    def group_by_status(self, project_id: int) -> GroupedTasksResponse:
        """Return the project's tasks split into the three status buckets."""
        tasks = self.list_by_project(project_id)
        return GroupedTasksResponse(
            unassigned=[t for t in tasks if t.status == TaskStatus.UNASSIGNED],
            annotating=[t for t in tasks if t.status == TaskStatus.ANNOTATING],
            completed=[t for t in tasks if t.status == TaskStatus.COMPLETED],
        )

    def list_by_assignee(
        self, user_id: int, project_id: int | None = None
    ) -> list[TaskResponse]:
        if project_id is None:
            return self._select("assigned_to = ?", [user_id])
        return self._select(
            "assigned_to = ? AND project_id = ?", [user_id, project_id]
        )

    def list_unassigned(self, project_id: int) -> list[TaskResponse]:
        """Return the shared pool: tasks of *project_id* with no assignee."""
        return self._select("project_id = ? AND assigned_to IS NULL", [project_id])

    def list_completed(self, project_id: int) -> list[TaskResponse]:
        return self._select(
            "project_id = ? AND status = ?",
            [project_id, TaskStatus.COMPLETED.value],
        )

    def get(self, task_id: int) -> TaskResponse:
        """Return a task or raise :class:`NotFoundError`."""
        tasks = self._select("id = ?", [task_id])
        if not tasks:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return tasks[0]

    def get_by_id(self, task_id: int) -> TaskDetailResponse:
        """Return a task plus the id of the next annotatable task.

        The next task is the first "annotating" task in the same project
        with a larger id, ordered by priority desc, creation desc, id asc.
        """
        task = self.get(task_id)
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "SELECT id FROM tasks "
                "WHERE project_id = ? AND status = ? AND id > ? "
                "ORDER BY priority DESC, created_at DESC, id ASC "
                "LIMIT 1",
                [task.project_id, TaskStatus.ANNOTATING.value, task_id],
            ).fetchone()
        finally:
            cursor.close()

        return TaskDetailResponse(
            **task.model_dump(), next_task_id=row[0] if row else None
        )

    def stats(self, project_id: int) -> TaskStats:
        cursor = self.db.connection.cursor()
        try:
            rows = cursor.execute(
                "SELECT status, COUNT(*) FROM tasks "
                "WHERE project_id = ? GROUP BY status",
                [project_id],
            ).fetchall()
        finally:
            cursor.close()

        counts = {status: count for status, count in rows}
        return TaskStats(
            total=sum(counts.values()),
            unassigned=counts.get(TaskStatus.UNASSIGNED.value, 0),
            annotating=counts.get(TaskStatus.ANNOTATING.value, 0),
            completed=counts.get(TaskStatus.COMPLETED.value, 0),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        project_id: int,
        data_url: str,
        data_type: str = "image",
        metadata: dict[str, Any] | None = None,
        priority: int = 0,
    ) -> TaskResponse:
        """Insert a new task into the unassigned pool."""
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "INSERT INTO tasks "
                "(project_id, data_url, data_type, status, assigned_to, metadata, priority) "
                "VALUES (?, ?, ?, ?, NULL, CAST(? AS JSON), ?) "
                f"RETURNING {_TASK_COLUMNS}",
                [
                    project_id,
                    data_url,
                    data_type,
                    TaskStatus.UNASSIGNED.value,
                    json.dumps(metadata) if metadata is not None else None,
                    priority,
                ],
            ).fetchone()
        finally:
            cursor.close()
        return _row_to_task(row)

    def _update_one(
        self, task_id: int, fields: dict[str, Any], condition: str = ""
    ) -> TaskResponse | None:
        """Apply *fields* to one task; return ``None`` if no row matched."""
        assignments = []
        params: list[Any] = []
        for column, value in fields.items():
            if column == "metadata":
                assignments.append("metadata = CAST(? AS JSON)")
                params.append(json.dumps(value) if value is not None else None)
            else:
                assignments.append(f"{column} = ?")
                params.append(value.value if isinstance(value, TaskStatus) else value)
        assignments.append("updated_at = current_timestamp")

        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                f"UPDATE tasks SET {', '.join(assignments)} "
                f"WHERE id = ? {condition} "
                f"RETURNING {_TASK_COLUMNS}",
                [*params, task_id],
            ).fetchone()
        finally:
            cursor.close()
        return _row_to_task(row) if row else None

    def update_many(
        self, task_ids: list[int], updates: TaskFieldsUpdate
    ) -> list[TaskResponse]:
        """Apply the same partial update to each task in *task_ids*.

        Ids that do not exist (or whose current state cannot take the
        update) are skipped; only the updated tasks are returned.
        """
        fields = updates.model_dump(include=updates.model_fields_set)
        if not fields:
            raise ValidationError("No fields to update")
        for column in _NON_NULLABLE_FIELDS:
            if column in fields and fields[column] is None:
                raise ValidationError(f"Field {column!r} cannot be null")

        condition = ""
        status = fields.get("status")
        if "assigned_to" in fields:
            assignee = fields["assigned_to"]
            if status is None:
                fields["status"] = (
                    TaskStatus.UNASSIGNED if assignee is None else TaskStatus.ANNOTATING
                )
            elif (status == TaskStatus.UNASSIGNED) != (assignee is None):
                raise InvalidTransitionError(
                    f"Status {status.value!r} is incompatible with assignee {assignee!r}"
                )
        elif status == TaskStatus.UNASSIGNED:
            fields["assigned_to"] = None
        elif status is not None:
            # annotating/completed need an assignee the update does not supply
            condition = "AND assigned_to IS NOT NULL"

        updated: list[TaskResponse] = []
        for task_id in task_ids:
            task = self._update_one(task_id, fields, condition)
            if task is None:
                logger.info("Bulk update skipped task %s", task_id)
                continue
            updated.append(task)
        return updated

    def assign(self, task_id: int, user_id: int) -> TaskResponse:
        task = self._update_one(
            task_id,
            {"assigned_to": user_id, "status": TaskStatus.ANNOTATING},
        )
        if task is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return task

    def unassign(self, task_id: int) -> TaskResponse:
        """Return a task to the pool, clearing status and assignee together."""
        task = self._update_one(
            task_id,
            {"assigned_to": None, "status": TaskStatus.UNASSIGNED},
        )
        if task is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return task

    def complete(self, task_id: int) -> TaskResponse:
        task = self.get(task_id)
        if task.status == TaskStatus.UNASSIGNED:
            raise InvalidTransitionError(
                f"Task {task_id} must be assigned before it can be completed"
            )
        completed = self._update_one(task_id, {"status": TaskStatus.COMPLETED})
        if completed is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return completed

    def delete(self, task_id: int) -> TaskResponse:
        """Delete a task together with its annotations."""
        cursor = self.db.connection.cursor()
        try:
            cursor.begin()
            cursor.execute("DELETE FROM annotations WHERE task_id = ?", [task_id])
            row = cursor.execute(
                f"DELETE FROM tasks WHERE id = ? RETURNING {_TASK_COLUMNS}",
                [task_id],
            ).fetchone()
            if row is None:
                cursor.rollback()
            else:
                cursor.commit()
        except Exception:
            cursor.rollback()
            raise
        finally:
            cursor.close()

        if row is None:
            raise NotFoundError(f"Task with ID {task_id} not found")
        return _row_to_task(row)
