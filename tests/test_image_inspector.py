"""Tests for reading image dimensions from file headers."""

from pathlib import Path

from PIL import Image

from labeloo.services.image_inspector import DEFAULT_DIMENSIONS, read_dimensions


def test_png_dimensions(tmp_path: Path) -> None:
    path = tmp_path / "wide.png"
    Image.new("RGB", (320, 200), color="green").save(path, "PNG")
    assert read_dimensions(path) == (320, 200)


def test_jpeg_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "photo.jpg"
    Image.new("RGB", (320, 200), color="green").save(path, "JPEG")
    assert read_dimensions(path) == DEFAULT_DIMENSIONS


def test_truncated_png_falls_back_to_default(tmp_path: Path) -> None:
    path = tmp_path / "short.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")
    assert read_dimensions(path) == (640, 480)


def test_missing_file_falls_back_to_default(tmp_path: Path) -> None:
    assert read_dimensions(tmp_path / "missing.png") == (640, 480)
