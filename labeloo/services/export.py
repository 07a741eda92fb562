"""Dataset export: completed, annotated tasks -> a compressed dataset bundle.

Pipeline for one call:

1. Load the project and its completed tasks.
2. Pick one annotation per task (ground truth first, then lowest id).
3. Copy each task's image into ``images/<task_id>.png`` of a staging tree.
4. Write ``labels/<task_id>.txt`` (YOLO) or ``.json`` (raw payload).
5. For YOLO, write ``data.yaml``.
6. Zip the staging tree at maximum compression.

The staging tree is removed on every exit path.  Per-task problems
(missing image, unreadable file) skip that task and never abort the
export.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import uuid
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from labeloo.errors import ExhaustedInputError, LabelooError, NotFoundError
from labeloo.formats.manifest import (
    IMAGES_FOLDER,
    LABELS_FOLDER,
    MANIFEST_FILENAME,
    render_manifest,
)
from labeloo.formats.yolo import to_yolo_label
from labeloo.models.annotation import AnnotationResponse
from labeloo.models.export import ExportFormat, ExportRecord, ExportResult, SplitConfig
from labeloo.models.task import TaskResponse
from labeloo.repositories.storage import MediaStore
from labeloo.services.annotation_store import AnnotationStore
from labeloo.services.image_inspector import read_dimensions
from labeloo.services.projects import ProjectDirectory
from labeloo.services.task_registry import TaskRegistry

logger = logging.getLogger(__name__)

_ARCHIVE_NAME = re.compile(r"^dataset_\d+_[0-9A-Za-z_]+\.zip$")


@contextmanager
def staging_tree(path: Path) -> Iterator[Path]:
    """Create ``path/images`` and ``path/labels``; delete *path* on exit."""
    try:
        (path / IMAGES_FOLDER).mkdir(parents=True)
        (path / LABELS_FOLDER).mkdir()
        yield path
    finally:
        shutil.rmtree(path, ignore_errors=True)


def write_archive(source_dir: Path, archive_path: Path) -> None:
    """Zip every file under *source_dir* (deflate level 9).

    A partially written archive is removed if compression fails.
    """
    try:
        with zipfile.ZipFile(
            archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as zf:
            for path in sorted(source_dir.rglob("*")):
                if path.is_file():
                    zf.write(path, path.relative_to(source_dir).as_posix())
    except Exception:
        archive_path.unlink(missing_ok=True)
        raise


class ExportService:
    """Builds downloadable dataset archives for a project.

    Collaborators are injected; *export_dir* holds staging trees while an
    export runs and the finished archives afterwards.
    When *keep_archives* is set, only that many of the newest archives are
    kept after each export.
    """

    def __init__(
        self,
        projects: ProjectDirectory,
        tasks: TaskRegistry,
        annotations: AnnotationStore,
        media: MediaStore,
        export_dir: Path,
        keep_archives: int | None = None,
    ) -> None:
        self.projects = projects
        self.tasks = tasks
        self.annotations = annotations
        self.media = media
        self.export_dir = Path(export_dir)
        self.keep_archives = keep_archives

    def export_project(
        self,
        project_id: int,
        format: ExportFormat = ExportFormat.YOLO,
        split_config: SplitConfig | None = None,
    ) -> ExportResult:
        """Export the project's completed tasks and return the archive summary.

        Raises :class:`NotFoundError` for an unknown project and
        :class:`ExhaustedInputError` when there is nothing to export.
        Neither creates any file.
        """
        project = self.projects.get(project_id)

        completed = self.tasks.list_completed(project_id)
        if not completed:
            raise ExhaustedInputError("No completed tasks found for export")
        logger.info(
            "Found %d completed tasks for export of project %s",
            len(completed),
            project_id,
        )

        candidates: list[tuple[TaskResponse, AnnotationResponse]] = []
        for task in completed:
            annotation = self.annotations.primary_for_task(task.id)
            if annotation is None:
                logger.info("No annotation found for task %s, skipping", task.id)
                continue
            candidates.append((task, annotation))
        if not candidates:
            raise ExhaustedInputError("No completed task has an annotation to export")

        split = split_config or SplitConfig()
        exported_at = datetime.now(timezone.utc)
        bundle_name = (
            f"dataset_{project_id}_{exported_at:%Y%m%dT%H%M%S%f}_{uuid.uuid4().hex[:8]}"
        )
        self.export_dir.mkdir(parents=True, exist_ok=True)
        archive_path = self.export_dir / f"{bundle_name}.zip"

        with staging_tree(self.export_dir / bundle_name) as staging:
            records: list[ExportRecord] = []
            for task, annotation in candidates:
                record = self._export_task(staging, task, annotation, format)
                if record is not None:
                    records.append(record)

            if not records:
                raise ExhaustedInputError("No valid data could be exported")

            if format == ExportFormat.YOLO:
                (staging / MANIFEST_FILENAME).write_text(
                    render_manifest(project, records, split, exported_at),
                    encoding="utf-8",
                )

            write_archive(staging, archive_path)

        logger.info(
            "Exported %d/%d tasks of project %s to %s",
            len(records),
            len(completed),
            project_id,
            archive_path.name,
        )
        self._prune_archives(archive_path)
        return ExportResult(
            format=format,
            project_id=project.id,
            project_name=project.name,
            total_tasks=len(completed),
            exported_tasks=len(records),
            skipped_tasks=len(completed) - len(records),
            archive_path=str(archive_path),
            exported_at=exported_at,
            split_config=split_config,
        )

    def _export_task(
        self,
        staging: Path,
        task: TaskResponse,
        annotation: AnnotationResponse,
        format: ExportFormat,
    ) -> ExportRecord | None:
        """Stage one task's image and label; ``None`` means it was skipped."""
        try:
            source = self.media.resolve(task.data_url)
        except LabelooError as e:
            logger.warning("Task %s has an unusable media URL: %s", task.id, e)
            return None
        if not source.is_file():
            logger.warning("Image file not found for task %s: %s", task.id, source)
            return None

        image_rel = f"{IMAGES_FOLDER}/{task.id}.png"
        extension = "txt" if format == ExportFormat.YOLO else "json"
        label_rel = f"{LABELS_FOLDER}/{task.id}.{extension}"

        try:
            shutil.copyfile(source, staging / image_rel)
            if format == ExportFormat.YOLO:
                width, height = read_dimensions(staging / image_rel)
                content = to_yolo_label(annotation.annotation_data, width, height)
            else:
                content = json.dumps(annotation.annotation_data, indent=2)
            (staging / label_rel).write_text(content, encoding="utf-8")
        except (OSError, ValueError):
            logger.warning("Failed to process task %s", task.id, exc_info=True)
            (staging / image_rel).unlink(missing_ok=True)
            return None

        return ExportRecord(
            task_id=task.id,
            annotation_id=annotation.id,
            image_url=task.data_url,
            image_path=image_rel,
            label_path=label_rel,
            metadata=task.metadata,
            is_ground_truth=annotation.is_ground_truth,
        )

    def archive_path(self, archive_name: str) -> Path:
        """Return the path of a previously produced archive for download."""
        if not _ARCHIVE_NAME.match(archive_name):
            raise NotFoundError(f"Export archive {archive_name} not found")
        path = self.export_dir / archive_name
        if not path.is_file():
            raise NotFoundError(f"Export archive {archive_name} not found")
        return path

    def _prune_archives(self, latest: Path) -> None:
        """Delete the oldest archives beyond ``keep_archives``; *latest* always stays."""
        if self.keep_archives is None:
            return
        archives = sorted(
            (
                path
                for path in self.export_dir.glob("dataset_*.zip")
                if _ARCHIVE_NAME.match(path.name) and path != latest
            ),
            key=lambda path: (path.stat().st_mtime_ns, path.name),
        )
        surplus = len(archives) + 1 - self.keep_archives
        for path in archives[: max(surplus, 0)]:
            logger.info("Removing old export archive %s", path.name)
            path.unlink(missing_ok=True)
