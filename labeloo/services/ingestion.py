"""Upload ingestion: images, zipped image sets, and videos become tasks.

Each accepted image is stored in the project bucket under a freshly
generated name and yields one task.  Items are processed sequentially in
upload order; a failing item is recorded in its outcome and never stops
its siblings.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any

import duckdb

from labeloo.errors import ExternalToolError, ValidationError
from labeloo.models.ingestion import FileOutcome, IngestionSummary, OutcomeStatus
from labeloo.repositories.storage import MediaStore
from labeloo.services.frame_extractor import FrameExtractor
from labeloo.services.projects import ProjectDirectory
from labeloo.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".gif"}
ZIP_EXTENSIONS = {".zip"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".m4v"}
ZIP_CONTENT_TYPES = {"application/zip", "application/x-zip-compressed"}


@dataclass
class UploadedFile:
    """An uploaded file fully read into memory."""

    filename: str
    content_type: str | None
    data: bytes


def _extension(name: str) -> str:
    return PurePosixPath(name).suffix.lower()


def classify_upload(upload: UploadedFile) -> str | None:
    """Return ``"image"``, ``"zip"``, ``"video"``, or ``None`` if unsupported.

    The file extension decides; the MIME type is consulted only when the
    extension is missing or unknown.
    """
    ext = _extension(upload.filename)
    if ext in IMAGE_EXTENSIONS:
        return "image"
    if ext in ZIP_EXTENSIONS:
        return "zip"
    if ext in VIDEO_EXTENSIONS:
        return "video"

    content_type = (upload.content_type or "").lower()
    if content_type in ZIP_CONTENT_TYPES:
        return "zip"
    if content_type.startswith("image/"):
        return "image"
    if content_type.startswith("video/"):
        return "video"
    return None


def _is_archive_junk(entry_name: str) -> bool:
    """Resource-fork and hidden entries that macOS adds to archives."""
    path = PurePosixPath(entry_name)
    return path.parts[0] == "__MACOSX" or path.name.startswith(".")


class IngestionService:
    """Turns uploads into stored media plus one task per image.

    Collaborators are injected:

    * *tasks* -- task registry that receives the new tasks.
    * *projects* -- project lookup; unknown projects abort the call.
    * *media* -- bucket storage for originals, images, and frame scratch.
    * *frame_extractor* -- samples video frames (ffmpeg in production).
    """

    def __init__(
        self,
        tasks: TaskRegistry,
        projects: ProjectDirectory,
        media: MediaStore,
        frame_extractor: FrameExtractor,
    ) -> None:
        self.tasks = tasks
        self.projects = projects
        self.media = media
        self.frame_extractor = frame_extractor

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def ingest_files(
        self,
        project_id: int,
        files: list[UploadedFile],
        fps: float | None = None,
    ) -> IngestionSummary:
        """Ingest a batch of uploads into *project_id*.

        Raises :class:`NotFoundError` for an unknown project and
        :class:`ValidationError` when a video is present without a
        positive *fps*; both happen before anything is stored.
        """
        self.projects.get(project_id)

        classified = [(upload, classify_upload(upload)) for upload in files]
        if any(kind == "video" for _, kind in classified) and (fps is None or fps <= 0):
            raise ValidationError(
                "A positive target frame rate (fps) is required for video uploads"
            )

        outcomes: list[FileOutcome] = []
        for upload, kind in classified:
            if kind == "image":
                outcomes.append(self.ingest_image(project_id, upload))
            elif kind == "zip":
                outcomes.extend(self.ingest_zip(project_id, upload))
            elif kind == "video":
                outcomes.extend(self.ingest_video(project_id, upload, fps))
            else:
                outcomes.append(
                    FileOutcome(
                        original_name=upload.filename,
                        status=OutcomeStatus.SKIPPED,
                        message="Unsupported file type; skipped",
                    )
                )

        created = sum(1 for o in outcomes if o.task_id is not None)
        logger.info(
            "Ingested %d upload(s) into project %s: %d task(s) created",
            len(files),
            project_id,
            created,
        )
        return IngestionSummary(
            project_id=project_id, files=outcomes, created_tasks=created
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _register(
        self,
        project_id: int,
        original_name: str,
        stored_name: str,
        relative_path: str,
        metadata: dict[str, Any],
        source: str | None = None,
    ) -> FileOutcome:
        """Create the task for a stored image and describe the outcome."""
        try:
            task = self.tasks.create(
                project_id=project_id,
                data_url=self.media.url_for(relative_path),
                data_type="image",
                metadata=metadata,
            )
        except duckdb.Error:
            logger.warning(
                "Stored %s but could not create its task", stored_name, exc_info=True
            )
            return FileOutcome(
                original_name=original_name,
                source=source,
                stored_name=stored_name,
                status=OutcomeStatus.FAILED,
                message="File stored but task creation failed",
            )

        return FileOutcome(
            original_name=original_name,
            source=source,
            stored_name=stored_name,
            task_id=task.id,
            status=OutcomeStatus.CREATED,
            message="Task created",
        )

    # ------------------------------------------------------------------
    # Single image
    # ------------------------------------------------------------------

    def ingest_image(self, project_id: int, upload: UploadedFile) -> FileOutcome:
        """Store one image and create its task."""
        stored_name = f"{uuid.uuid4()}{_extension(upload.filename) or '.png'}"
        relative = self.media.project_path(project_id, stored_name)
        try:
            self.media.store(upload.data, relative)
        except OSError as e:
            logger.warning("Failed to store %s", upload.filename, exc_info=True)
            return FileOutcome(
                original_name=upload.filename,
                status=OutcomeStatus.FAILED,
                message=f"Failed to store file: {e}",
            )

        return self._register(
            project_id,
            upload.filename,
            stored_name,
            relative,
            metadata={
                "original_filename": upload.filename,
                "mime_type": upload.content_type
                or mimetypes.guess_type(upload.filename)[0],
            },
        )

    # ------------------------------------------------------------------
    # Zip archive
    # ------------------------------------------------------------------

    def ingest_zip(self, project_id: int, upload: UploadedFile) -> list[FileOutcome]:
        """Keep the archive under ``raw/`` and create a task per image entry.

        Saving the archive is the only step whose failure propagates.
        Non-image entries are discarded and reported as skipped; read
        errors are reported next to whatever was already extracted.
        """
        archive_name = f"{uuid.uuid4()}.zip"
        archive_path = self.media.store(
            upload.data, self.media.raw_path(project_id, archive_name)
        )

        outcomes: list[FileOutcome] = []
        try:
            with zipfile.ZipFile(archive_path) as archive:
                for info in archive.infolist():
                    if info.is_dir():
                        continue
                    outcomes.append(
                        self._ingest_zip_entry(project_id, archive, info, upload.filename)
                    )
        except zipfile.BadZipFile as e:
            logger.warning("Could not read archive %s: %s", upload.filename, e)
            outcomes.append(
                FileOutcome(
                    original_name=upload.filename,
                    stored_name=archive_name,
                    status=OutcomeStatus.FAILED,
                    message=f"Could not read archive: {e}",
                )
            )
        return outcomes

    def _ingest_zip_entry(
        self,
        project_id: int,
        archive: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        archive_filename: str,
    ) -> FileOutcome:
        entry_name = info.filename
        ext = _extension(entry_name)
        if ext not in IMAGE_EXTENSIONS or _is_archive_junk(entry_name):
            return FileOutcome(
                original_name=entry_name,
                source=archive_filename,
                status=OutcomeStatus.SKIPPED,
                message="Not an image; entry discarded",
            )

        try:
            data = archive.read(info)
        except (zipfile.BadZipFile, RuntimeError, OSError, zlib.error) as e:
            logger.warning("Could not extract %s from %s: %s", entry_name, archive_filename, e)
            return FileOutcome(
                original_name=entry_name,
                source=archive_filename,
                status=OutcomeStatus.FAILED,
                message=f"Could not extract entry: {e}",
            )

        stored_name = f"{uuid.uuid4()}{ext}"
        relative = self.media.project_path(project_id, stored_name)
        try:
            self.media.store(data, relative)
        except OSError as e:
            logger.warning("Failed to store %s", entry_name, exc_info=True)
            return FileOutcome(
                original_name=entry_name,
                source=archive_filename,
                status=OutcomeStatus.FAILED,
                message=f"Failed to store file: {e}",
            )

        return self._register(
            project_id,
            entry_name,
            stored_name,
            relative,
            metadata={
                "original_filename": entry_name,
                "source_archive": archive_filename,
                "mime_type": mimetypes.guess_type(entry_name)[0],
            },
            source=archive_filename,
        )

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    def ingest_video(
        self, project_id: int, upload: UploadedFile, fps: float
    ) -> list[FileOutcome]:
        """Keep the video under ``raw/``, sample frames, and create a task per frame.

        The frame scratch directory is removed on every exit path.  If
        extraction fails the saved video is kept and no tasks are created.
        """
        upload_id = uuid.uuid4().hex
        raw_name = f"{upload_id}{_extension(upload.filename) or '.mp4'}"
        try:
            video_path = self.media.store(
                upload.data, self.media.raw_path(project_id, raw_name)
            )
        except OSError as e:
            logger.warning("Failed to store video %s", upload.filename, exc_info=True)
            return [
                FileOutcome(
                    original_name=upload.filename,
                    status=OutcomeStatus.FAILED,
                    message=f"Failed to store file: {e}",
                )
            ]

        frames_dir = self.media.frames_dir(project_id, upload_id)
        try:
            try:
                frames = self.frame_extractor.extract_frames(video_path, fps, frames_dir)
            except ExternalToolError as e:
                logger.warning("Frame extraction failed for %s: %s", upload.filename, e)
                return [
                    FileOutcome(
                        original_name=upload.filename,
                        stored_name=raw_name,
                        status=OutcomeStatus.FAILED,
                        message=e.detail,
                    )
                ]

            if not frames:
                return [
                    FileOutcome(
                        original_name=upload.filename,
                        stored_name=raw_name,
                        status=OutcomeStatus.FAILED,
                        message="No frames were extracted from the video",
                    )
                ]

            return [
                self._ingest_frame(project_id, frame, index, fps, upload.filename, raw_name)
                for index, frame in enumerate(frames, start=1)
            ]
        finally:
            self.media.remove_tree(frames_dir)

    def _ingest_frame(
        self,
        project_id: int,
        frame: Path,
        index: int,
        fps: float,
        video_filename: str,
        raw_name: str,
    ) -> FileOutcome:
        stored_name = f"{uuid.uuid4()}.png"
        relative = self.media.project_path(project_id, stored_name)
        try:
            self.media.copy_in(frame, relative)
        except OSError as e:
            logger.warning("Failed to store frame %s", frame.name, exc_info=True)
            return FileOutcome(
                original_name=frame.name,
                source=video_filename,
                status=OutcomeStatus.FAILED,
                message=f"Failed to store frame: {e}",
            )

        return self._register(
            project_id,
            frame.name,
            stored_name,
            relative,
            metadata={
                "original_filename": frame.name,
                "frame_index": index,
                "fps": fps,
                "source_video": video_filename,
                "raw_video": raw_name,
                "mime_type": "image/png",
            },
            source=video_filename,
        )
