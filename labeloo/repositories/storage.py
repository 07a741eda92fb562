"""Media store: bucket path resolution and byte-level I/O using fsspec.

The bucket is a namespaced file tree::

    <bucket_root>/public/<name>
    <bucket_root>/projects/<project_id>/<name>
    <bucket_root>/projects/<project_id>/raw/<name>
    <bucket_root>/projects/<project_id>/frames/<upload_id>/frame_%04d.png
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlsplit

import fsspec

from labeloo.errors import ValidationError

PUBLIC_BUCKET = "public"
PROJECTS_BUCKET = "projects"


@dataclass(frozen=True)
class BucketRule:
    """Map URLs containing *marker* to the *target* directory under the root."""

    marker: str
    target: str


# Evaluated top to bottom; the first rule whose marker occurs in the URL wins.
# Task-scoped URLs live in the project bucket because tasks belong to projects.
BUCKET_RULES: tuple[BucketRule, ...] = (
    BucketRule("/bucket/taskData/", PROJECTS_BUCKET),
    BucketRule("/bucket/projects/", PROJECTS_BUCKET),
    BucketRule("/bucket/public/", PUBLIC_BUCKET),
    BucketRule("/bucket/", ""),
)

# Used when no rule matches: the trailing segment is a bare public filename.
FALLBACK_BUCKET = PUBLIC_BUCKET


class MediaStore:
    """Resolve media URLs to local paths and read/write files in the bucket.

    Uses an fsspec ``file`` filesystem internally so every write goes
    through the same abstraction.  Write failures propagate as ``OSError``.
    """

    def __init__(self, root: Path, public_base_url: str) -> None:
        self.root = Path(root).resolve()
        self.public_base_url = public_base_url.rstrip("/")
        self._fs: fsspec.AbstractFileSystem = fsspec.filesystem("file")
        self._fs.makedirs(str(self.root), exist_ok=True)

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    @staticmethod
    def project_path(project_id: int, name: str) -> str:
        """Bucket-relative path of a file in a project's media folder."""
        return f"{PROJECTS_BUCKET}/{project_id}/{name}"

    @staticmethod
    def raw_path(project_id: int, name: str) -> str:
        """Bucket-relative path of an original upload kept for auditing."""
        return f"{PROJECTS_BUCKET}/{project_id}/raw/{name}"

    def frames_dir(self, project_id: int, upload_id: str) -> Path:
        """Scratch directory for frames extracted from one video upload."""
        return self.local_path(f"{PROJECTS_BUCKET}/{project_id}/frames/{upload_id}")

    def local_path(self, relative_path: str) -> Path:
        """Join *relative_path* onto the bucket root, refusing to escape it."""
        candidate = (self.root / relative_path).resolve()
        if not candidate.is_relative_to(self.root):
            raise ValidationError(f"Path escapes the media bucket: {relative_path}")
        return candidate

    def url_for(self, relative_path: str) -> str:
        """Externally-facing URL for a bucket-relative path."""
        return f"{self.public_base_url}/{PurePosixPath(relative_path).as_posix()}"

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, url: str) -> Path:
        """Map a media URL to its local file location via :data:`BUCKET_RULES`."""
        path = urlsplit(url).path or url
        path = "/" + path.lstrip("/")

        for rule in BUCKET_RULES:
            if rule.marker in path:
                remainder = path.rsplit(rule.marker, 1)[1]
                relative = f"{rule.target}/{remainder}" if rule.target else remainder
                return self.local_path(relative)

        filename = path.rstrip("/").rsplit("/", 1)[-1] or url
        return self.local_path(f"{FALLBACK_BUCKET}/{filename}")

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def store(self, data: bytes, relative_path: str) -> Path:
        """Write *data* at *relative_path*, creating parent directories."""
        target = self.local_path(relative_path)
        self._fs.makedirs(str(target.parent), exist_ok=True)
        self._fs.pipe_file(str(target), data)
        return target

    def copy_in(self, source: Path, relative_path: str) -> Path:
        """Copy a local file into the bucket at *relative_path*."""
        target = self.local_path(relative_path)
        self._fs.makedirs(str(target.parent), exist_ok=True)
        self._fs.cp_file(str(source), str(target))
        return target

    def exists(self, path: str | Path) -> bool:
        """Return ``True`` if *path* exists on the local filesystem."""
        return self._fs.exists(str(path))

    def open(self, path: str | Path, mode: str = "rb"):
        """Return an open file-like object for *path*."""
        return self._fs.open(str(path), mode)

    def remove_tree(self, path: str | Path) -> None:
        """Recursively delete *path* if it exists."""
        if self._fs.exists(str(path)):
            self._fs.rm(str(path), recursive=True)
