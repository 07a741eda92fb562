"""Annotation store: reviewer annotations attached to tasks.

Update and delete are intentionally not offered.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from labeloo.errors import NotFoundError, ValidationError
from labeloo.models.annotation import AnnotationCreate, AnnotationResponse
from labeloo.repositories.duckdb_repo import DuckDBRepo
from labeloo.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)

_ANNOTATION_COLUMNS = (
    "id, task_id, user_id, project_id, annotation_data, is_ground_truth, "
    "review_status, reviewer_id, created_at, updated_at"
)


def _row_to_annotation(row: tuple) -> AnnotationResponse:
    return AnnotationResponse(
        id=row[0],
        task_id=row[1],
        user_id=row[2],
        project_id=row[3],
        annotation_data=json.loads(row[4]) if isinstance(row[4], str) else row[4],
        is_ground_truth=row[5],
        review_status=row[6],
        reviewer_id=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


class AnnotationStore:
    """Create and query annotations stored in DuckDB."""

    def __init__(self, db: DuckDBRepo, tasks: TaskRegistry) -> None:
        self.db = db
        self.tasks = tasks

    def _select(
        self, where: str, params: list[Any], order: str = "created_at DESC, id DESC"
    ) -> list[AnnotationResponse]:
        cursor = self.db.connection.cursor()
        try:
            rows = cursor.execute(
                f"SELECT {_ANNOTATION_COLUMNS} FROM annotations "
                f"WHERE {where} ORDER BY {order}",
                params,
            ).fetchall()
        finally:
            cursor.close()
        return [_row_to_annotation(row) for row in rows]

    def list_by_user(self, user_id: int) -> list[AnnotationResponse]:
        """Annotations authored by *user_id*, newest first."""
        return self._select("user_id = ?", [user_id])

    def list_for_task(self, task_id: int) -> list[AnnotationResponse]:
        return self._select("task_id = ?", [task_id])

    def get_by_id(
        self, annotation_id: int, user_id: int | None = None
    ) -> AnnotationResponse:
        """Return an annotation, optionally restricted to one author."""
        if user_id is None:
            found = self._select("id = ?", [annotation_id])
        else:
            found = self._select("id = ? AND user_id = ?", [annotation_id, user_id])
        if not found:
            raise NotFoundError(f"Annotation with ID {annotation_id} not found")
        return found[0]

    def primary_for_task(self, task_id: int) -> AnnotationResponse | None:
        """Pick the one annotation used when a task is exported.

        Ground-truth annotations win; ties go to the lowest id.
        """
        found = self._select(
            "task_id = ?", [task_id], order="is_ground_truth DESC, id ASC"
        )
        return found[0] if found else None

    def create(self, request: AnnotationCreate, author_id: int) -> AnnotationResponse:
        """Insert an annotation authored by *author_id*.

        Whatever author the payload claims is ignored.  The project is
        taken from the task; a conflicting ``project_id`` is rejected.
        """
        task = self.tasks.get(request.task_id)
        if request.project_id is not None and request.project_id != task.project_id:
            raise ValidationError(
                f"Task {task.id} belongs to project {task.project_id}, "
                f"not {request.project_id}"
            )
        if request.user_id is not None and request.user_id != author_id:
            logger.warning(
                "Ignoring claimed author %s on annotation for task %s (caller %s)",
                request.user_id,
                task.id,
                author_id,
            )

        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "INSERT INTO annotations "
                "(task_id, user_id, project_id, annotation_data, is_ground_truth, "
                "review_status, reviewer_id) "
                "VALUES (?, ?, ?, CAST(? AS JSON), ?, ?, ?) "
                f"RETURNING {_ANNOTATION_COLUMNS}",
                [
                    task.id,
                    author_id,
                    task.project_id,
                    json.dumps(request.annotation_data),
                    request.is_ground_truth,
                    request.review_status.value,
                    request.reviewer_id,
                ],
            ).fetchone()
        finally:
            cursor.close()
        return _row_to_annotation(row)
