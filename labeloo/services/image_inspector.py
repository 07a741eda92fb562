"""Pixel dimensions from a stored image's binary header.

Only the PNG ``IHDR`` layout is understood: width and height are
big-endian unsigned 32-bit integers at byte offsets 16 and 20.  Anything
else falls back to :data:`DEFAULT_DIMENSIONS` so that an export keeps
going even when a source image is not a PNG or is corrupt.
"""

from __future__ import annotations

import logging
import struct
from pathlib import Path

logger = logging.getLogger(__name__)

PNG_SIGNATURE_PREFIX: bytes = b"\x89PNG"
HEADER_LENGTH: int = 24
DEFAULT_DIMENSIONS: tuple[int, int] = (640, 480)


def read_dimensions(path: str | Path) -> tuple[int, int]:
    """Return ``(width, height)`` for the image at *path*.

    Never raises: non-PNG signatures, short reads, and I/O errors all
    return ``(640, 480)``.
    """
    try:
        with open(path, "rb") as f:
            header = f.read(HEADER_LENGTH)
    except OSError:
        logger.warning("Could not read image header from %s", path, exc_info=True)
        return DEFAULT_DIMENSIONS

    if len(header) < HEADER_LENGTH or not header.startswith(PNG_SIGNATURE_PREFIX):
        logger.warning(
            "Image %s is not a PNG or its header is truncated; using %dx%d",
            path,
            *DEFAULT_DIMENSIONS,
        )
        return DEFAULT_DIMENSIONS

    width, height = struct.unpack(">II", header[16:24])
    return width, height
