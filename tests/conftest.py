"""Shared pytest fixtures for Labeloo tests."""

import io
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from PIL import Image

from labeloo.config import Settings
from labeloo.errors import ExternalToolError, LabelooError
from labeloo.main import labeloo_error_handler, request_validation_handler
from labeloo.repositories.duckdb_repo import DuckDBRepo
from labeloo.repositories.storage import MediaStore
from labeloo.routers import annotations, bucket, exports, tasks, uploads
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.export import ExportService
from labeloo.services.ingestion import IngestionService
from labeloo.services.permissions import AllowAllPermissionGate
from labeloo.services.projects import ProjectDirectory
from labeloo.services.task_registry import TaskRegistry

BASE_URL = "http://testserver/bucket"


def make_png(size: tuple[int, int] = (100, 100), color: str = "red") -> bytes:
    """Encode a solid-color PNG in memory."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, "PNG")
    return buffer.getvalue()


class FakeFrameExtractor:
    """Writes *frame_count* PNG frames instead of running ffmpeg."""

    def __init__(self, frame_count: int = 3, error: str | None = None) -> None:
        self.frame_count = frame_count
        self.error = error
        self.calls: list[tuple[Path, float, Path]] = []

    def extract_frames(self, video_path: Path, fps: float, output_dir: Path) -> list[Path]:
        self.calls.append((video_path, fps, output_dir))
        output_dir.mkdir(parents=True, exist_ok=True)
        if self.error is not None:
            raise ExternalToolError(self.error)
        frames = []
        for i in range(1, self.frame_count + 1):
            frame = output_dir / f"frame_{i:04d}.png"
            frame.write_bytes(make_png((32, 24)))
            frames.append(frame)
        return frames


class DenyAllPermissionGate:
    def may_perform(self, user_id: int, scope_id: int | None, action: str) -> bool:
        return False


@pytest.fixture()
def tmp_db_path(tmp_path: Path) -> Path:
    """Return a temporary DuckDB file path."""
    return tmp_path / "test.duckdb"


@pytest.fixture()
def db(tmp_db_path: Path) -> DuckDBRepo:
    """Create a DuckDBRepo with a temporary database, initialize schema, then close."""
    repo = DuckDBRepo(tmp_db_path)
    repo.initialize_schema()
    yield repo
    repo.close()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "test.duckdb",
        bucket_root=tmp_path / "bucket",
        export_dir=tmp_path / "exports",
        public_base_url=BASE_URL,
    )


@pytest.fixture()
def media(settings: Settings) -> MediaStore:
    return MediaStore(settings.bucket_root, settings.public_base_url)


@pytest.fixture()
def projects(db: DuckDBRepo) -> ProjectDirectory:
    return ProjectDirectory(db)


@pytest.fixture()
def registry(db: DuckDBRepo) -> TaskRegistry:
    return TaskRegistry(db)


@pytest.fixture()
def annotation_store(db: DuckDBRepo, registry: TaskRegistry) -> AnnotationStore:
    return AnnotationStore(db, registry)


@pytest.fixture()
def project(projects: ProjectDirectory):
    return projects.create("Street scenes", "Cars and pedestrians")


@pytest.fixture()
def frame_extractor() -> FakeFrameExtractor:
    return FakeFrameExtractor()


@pytest.fixture()
def ingestion(
    registry: TaskRegistry,
    projects: ProjectDirectory,
    media: MediaStore,
    frame_extractor: FakeFrameExtractor,
) -> IngestionService:
    return IngestionService(
        tasks=registry,
        projects=projects,
        media=media,
        frame_extractor=frame_extractor,
    )


@pytest.fixture()
def exporter(
    projects: ProjectDirectory,
    registry: TaskRegistry,
    annotation_store: AnnotationStore,
    media: MediaStore,
    settings: Settings,
) -> ExportService:
    return ExportService(
        projects=projects,
        tasks=registry,
        annotations=annotation_store,
        media=media,
        export_dir=settings.export_dir,
    )


def build_test_app(
    db: DuckDBRepo,
    settings: Settings,
    media: MediaStore,
    frame_extractor: FakeFrameExtractor,
    permission_gate=None,
) -> FastAPI:
    """Wire a FastAPI app with test services and all routers."""
    test_app = FastAPI()

    test_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    test_app.add_exception_handler(LabelooError, labeloo_error_handler)
    test_app.add_exception_handler(RequestValidationError, request_validation_handler)

    # Wire services onto app.state
    test_app.state.settings = settings
    test_app.state.db = db
    test_app.state.media = media
    test_app.state.frame_extractor = frame_extractor
    test_app.state.permission_gate = permission_gate or AllowAllPermissionGate()

    # Include routers
    test_app.include_router(tasks.router)
    test_app.include_router(tasks.projects_router)
    test_app.include_router(annotations.router)
    test_app.include_router(uploads.router)
    test_app.include_router(exports.router)
    test_app.include_router(bucket.router)

    @test_app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "ok"}

    return test_app


@pytest.fixture()
async def app_client(
    db: DuckDBRepo,
    settings: Settings,
    media: MediaStore,
    frame_extractor: FakeFrameExtractor,
) -> httpx.AsyncClient:
    """Yield an async HTTP client for a fully wired test app."""
    test_app = build_test_app(db, settings, media, frame_extractor)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=test_app),
        base_url="http://testserver",
    ) as client:
        yield client
