"""Project lookup used by the ingestion and export pipelines."""

from __future__ import annotations

from labeloo.errors import NotFoundError
from labeloo.models.project import ProjectResponse
from labeloo.repositories.duckdb_repo import DuckDBRepo


class ProjectDirectory:
    """Read access to project records (project CRUD lives elsewhere)."""

    def __init__(self, db: DuckDBRepo) -> None:
        self.db = db

    def get(self, project_id: int) -> ProjectResponse:
        """Return the project or raise :class:`NotFoundError`."""
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "SELECT id, name, description FROM projects WHERE id = ?",
                [project_id],
            ).fetchone()
        finally:
            cursor.close()

        if row is None:
            raise NotFoundError(f"Project with ID {project_id} not found")
        return ProjectResponse(id=row[0], name=row[1], description=row[2])

    def create(self, name: str, description: str | None = None) -> ProjectResponse:
        """Insert a project record (used by provisioning scripts and tests)."""
        cursor = self.db.connection.cursor()
        try:
            row = cursor.execute(
                "INSERT INTO projects (name, description) VALUES (?, ?) "
                "RETURNING id, name, description",
                [name, description],
            ).fetchone()
        finally:
            cursor.close()
        return ProjectResponse(id=row[0], name=row[1], description=row[2])
