"""Annotation payload -> YOLO detection label conversion.

Each label line is ``class_id x_center y_center width height`` with the
four spatial values normalized by the image size and printed with six
decimals.  Only rectangles are representable; other primitives are
dropped.  A drawn rectangle (``startPoint`` form) with zero width or
height is dropped as well; a ``bbox`` box is always written.
"""

from __future__ import annotations

import logging
from typing import Any

from labeloo.models.annotation import (
    BoxShape,
    RectangleShape,
    Shape,
    extract_shapes,
)

logger = logging.getLogger(__name__)


def _format_line(
    class_id: int, x: float, y: float, w: float, h: float, width: int, height: int
) -> str:
    x_center = (x + w / 2) / width
    y_center = (y + h / 2) / height
    norm_w = abs(w) / width
    norm_h = abs(h) / height
    return f"{class_id} {x_center:.6f} {y_center:.6f} {norm_w:.6f} {norm_h:.6f}"


def shape_to_yolo_line(shape: Shape, width: int, height: int) -> str | None:
    """Return the YOLO line for *shape*, or ``None`` if it cannot be expressed."""
    if isinstance(shape, RectangleShape):
        x, y, w, h = shape.start_point.x, shape.start_point.y, shape.width, shape.height
        # Drawn rectangles with no extent are unfinished clicks
        if w == 0 or h == 0:
            logger.debug("Skipping degenerate rectangle %r", shape)
            return None
    elif isinstance(shape, BoxShape):
        x, y, w, h = shape.bbox
    else:
        return None

    return _format_line(shape.class_id, x, y, w, h, width, height)


def to_yolo_lines(annotation_data: Any, width: int, height: int) -> list[str]:
    """Convert an annotation payload into YOLO label lines.

    Raises ``ValueError`` if the image dimensions are not positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    lines: list[str] = []
    skipped = 0
    for shape in extract_shapes(annotation_data):
        line = shape_to_yolo_line(shape, width, height)
        if line is None:
            skipped += 1
            continue
        lines.append(line)

    if skipped:
        logger.debug("Omitted %d shape(s) not representable as YOLO boxes", skipped)
    return lines


def to_yolo_label(annotation_data: Any, width: int, height: int) -> str:
    """Return the full contents of a YOLO ``.txt`` label file."""
    return "\n".join(to_yolo_lines(annotation_data, width, height))

