"""Tests for MediaStore URL resolution and bucket I/O."""

from pathlib import Path

import pytest

from labeloo.errors import ValidationError
from labeloo.repositories.storage import MediaStore


@pytest.fixture()
def store(tmp_path: Path) -> MediaStore:
    return MediaStore(tmp_path / "bucket", "http://media.example/bucket/")


class TestResolve:
    def test_task_data_alias_maps_to_projects_bucket(self, store: MediaStore) -> None:
        path = store.resolve("http://host/bucket/taskData/7/a.png")
        assert path == store.root / "projects" / "7" / "a.png"

    def test_projects_url(self, store: MediaStore) -> None:
        path = store.resolve("http://host/bucket/projects/3/b.png")
        assert path == store.root / "projects" / "3" / "b.png"

    def test_public_url(self, store: MediaStore) -> None:
        path = store.resolve("https://cdn.example/bucket/public/logo.png")
        assert path == store.root / "public" / "logo.png"

    def test_generic_bucket_url(self, store: MediaStore) -> None:
        path = store.resolve("http://host/bucket/misc/c.png")
        assert path == store.root / "misc" / "c.png"

    def test_unmatched_url_falls_back_to_public_filename(self, store: MediaStore) -> None:
        path = store.resolve("http://elsewhere.example/images/photo.jpg")
        assert path == store.root / "public" / "photo.jpg"

    def test_query_string_is_ignored(self, store: MediaStore) -> None:
        path = store.resolve("http://host/bucket/projects/3/b.png?v=2")
        assert path == store.root / "projects" / "3" / "b.png"

    def test_escape_attempt_is_rejected(self, store: MediaStore) -> None:
        with pytest.raises(ValidationError):
            store.resolve("http://host/bucket/projects/../../etc/passwd")


class TestStorage:
    def test_url_round_trips_through_resolve(self, store: MediaStore) -> None:
        relative = store.project_path(5, "img.png")
        stored = store.store(b"data", relative)

        url = store.url_for(relative)
        assert url == "http://media.example/bucket/projects/5/img.png"
        assert store.resolve(url) == stored
        assert stored.read_bytes() == b"data"

    def test_store_creates_parent_directories(self, store: MediaStore) -> None:
        stored = store.store(b"zip", store.raw_path(2, "a.zip"))
        assert stored == store.root / "projects" / "2" / "raw" / "a.zip"
        assert store.exists(stored)

    def test_copy_in_and_remove_tree(self, store: MediaStore, tmp_path: Path) -> None:
        source = tmp_path / "frame.png"
        source.write_bytes(b"png")
        frames = store.frames_dir(1, "abc")
        frames.mkdir(parents=True)

        copied = store.copy_in(source, store.project_path(1, "copy.png"))
        assert copied.read_bytes() == b"png"

        store.remove_tree(frames)
        assert not frames.exists()
        # Removing a missing tree is a no-op
        store.remove_tree(frames)

    def test_local_path_rejects_escape(self, store: MediaStore) -> None:
        with pytest.raises(ValidationError):
            store.local_path("../outside.txt")
