"""FastAPI dependency injection for DuckDB and application services."""

from collections.abc import Callable

from fastapi import Depends, Header, HTTPException, Request

from labeloo.config import Settings
from labeloo.errors import PermissionDeniedError
from labeloo.repositories.duckdb_repo import DuckDBRepo
from labeloo.repositories.storage import MediaStore
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.export import ExportService
from labeloo.services.frame_extractor import FrameExtractor
from labeloo.services.ingestion import IngestionService
from labeloo.services.permissions import PermissionGate
from labeloo.services.projects import ProjectDirectory
from labeloo.services.task_registry import TaskRegistry


def get_db(request: Request) -> DuckDBRepo:
    """Return the application-wide DuckDBRepo stored on app.state."""
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    """Return the Settings instance the application was built with."""
    return request.app.state.settings


def get_media_store(request: Request) -> MediaStore:
    """Return the application-wide MediaStore stored on app.state."""
    return request.app.state.media


def get_frame_extractor(request: Request) -> FrameExtractor:
    return request.app.state.frame_extractor


def get_permission_gate(request: Request) -> PermissionGate:
    return request.app.state.permission_gate


def get_project_directory(db: DuckDBRepo = Depends(get_db)) -> ProjectDirectory:
    return ProjectDirectory(db)


def get_task_registry(db: DuckDBRepo = Depends(get_db)) -> TaskRegistry:
    return TaskRegistry(db)


def get_annotation_store(
    db: DuckDBRepo = Depends(get_db),
    tasks: TaskRegistry = Depends(get_task_registry),
) -> AnnotationStore:
    return AnnotationStore(db, tasks)


def get_ingestion_service(
    tasks: TaskRegistry = Depends(get_task_registry),
    projects: ProjectDirectory = Depends(get_project_directory),
    media: MediaStore = Depends(get_media_store),
    frame_extractor: FrameExtractor = Depends(get_frame_extractor),
) -> IngestionService:
    """Compose an IngestionService from its collaborators."""
    return IngestionService(
        tasks=tasks,
        projects=projects,
        media=media,
        frame_extractor=frame_extractor,
    )


def get_export_service(
    projects: ProjectDirectory = Depends(get_project_directory),
    tasks: TaskRegistry = Depends(get_task_registry),
    annotations: AnnotationStore = Depends(get_annotation_store),
    media: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_app_settings),
) -> ExportService:
    """Compose an ExportService from its collaborators."""
    return ExportService(
        projects=projects,
        tasks=tasks,
        annotations=annotations,
        media=media,
        export_dir=settings.export_dir,
        keep_archives=settings.export_keep_archives,
    )


def get_current_user_id(x_user_id: int | None = Header(default=None)) -> int:
    """Caller identity, set by the authentication proxy in front of the API."""
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def require_permission(action: str) -> Callable[..., int]:
    """Build a dependency that checks *action* for the caller.

    The project scope comes from the ``project_id`` path or query
    parameter when the route has one.  Returns the caller's user id.
    """

    def checker(
        request: Request,
        user_id: int = Depends(get_current_user_id),
        gate: PermissionGate = Depends(get_permission_gate),
    ) -> int:
        raw_scope = request.path_params.get("project_id") or request.query_params.get(
            "project_id"
        )
        try:
            scope_id = int(raw_scope) if raw_scope is not None else None
        except ValueError:
            scope_id = None
        if not gate.may_perform(user_id, scope_id, action):
            raise PermissionDeniedError(
                f"User {user_id} may not perform {action!r}"
            )
        return user_id

    return checker
