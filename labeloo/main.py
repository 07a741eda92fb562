"""Labeloo FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labeloo.config import get_settings
from labeloo.errors import LabelooError
from labeloo.repositories.duckdb_repo import DuckDBRepo
from labeloo.repositories.storage import MediaStore
from labeloo.services.frame_extractor import FfmpegFrameExtractor
from labeloo.services.permissions import AllowAllPermissionGate

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown.

    On startup:
    - Create DuckDB connection and initialize schema.
    - Create the MediaStore rooted at the configured bucket.
    - Create the ffmpeg frame extractor and the permission gate.
    - Store settings and services on app.state for dependency injection.

    On shutdown:
    - Checkpoint and close the DuckDB connection.
    """
    settings = get_settings()
    app.state.settings = settings

    # Database
    db = DuckDBRepo(settings.db_path)
    db.initialize_schema()
    app.state.db = db

    # Media bucket
    app.state.media = MediaStore(settings.bucket_root, settings.public_base_url)
    settings.export_dir.mkdir(parents=True, exist_ok=True)

    app.state.frame_extractor = FfmpegFrameExtractor(
        binary=settings.ffmpeg_binary,
        timeout=settings.frame_extraction_timeout,
    )
    app.state.permission_gate = AllowAllPermissionGate()
    logger.info(
        "Labeloo started: bucket=%s exports=%s",
        settings.bucket_root,
        settings.export_dir,
    )

    yield

    # Shutdown
    db.connection.execute("CHECKPOINT")  # Flush WAL to disk before container stops
    db.close()


async def labeloo_error_handler(request: Request, exc: LabelooError) -> JSONResponse:
    """Render domain errors as ``{"error": kind, "detail": message}``."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.detail},
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed requests with the same ``{"error", "detail"}`` shape."""
    return JSONResponse(
        status_code=422,
        content={"error": "validation", "detail": jsonable_encoder(exc.errors())},
    )


settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Labeloo",
    description="Annotation task lifecycle and dataset export service",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_exception_handler(LabelooError, labeloo_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)

# In Docker behind a reverse proxy (same origin): no CORS needed.
# In local dev: allow the frontend dev server origins.
if not settings.behind_proxy:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Router includes
from labeloo.routers import annotations, bucket, exports, tasks, uploads  # noqa: E402

app.include_router(tasks.router)
app.include_router(tasks.projects_router)
app.include_router(annotations.router)
app.include_router(uploads.router)
app.include_router(exports.router)
app.include_router(bucket.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "ok"}
