"""Convert recognizer geometry into axis-aligned chunk-pixel boxes."""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from .errors import GeometryError
from .models import BoundingBox, OcrResult
from .text import normalize_text
from .types import LineGeometry, Orientation, Point, RawLine

ROTATION_THRESHOLD = 0.1
VERTICAL_TOLERANCE = 0.5


def _rotated_corners(cx: float, cy: float, w: float, h: float, rotation: float) -> List[Point]:
    hw = w / 2.0
    hh = h / 2.0
    cos_a = math.cos(rotation)
    sin_a = math.sin(rotation)
    corners: List[Point] = []
    for lx, ly in ((-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh)):
        corners.append((lx * cos_a - ly * sin_a + cx, lx * sin_a + ly * cos_a + cy))
    return corners


def classify_orientation(rotation: float, aabb_width: float, aabb_height: float) -> Orientation:
    """Rotation decides when the line is visibly rotated; aspect ratio decides otherwise."""
    if abs(rotation) > ROTATION_THRESHOLD:
        is_vertical = abs(abs(rotation) - math.pi / 2) < VERTICAL_TOLERANCE
    else:
        is_vertical = aabb_width <= aabb_height
    return "vertical" if is_vertical else "horizontal"


def _checked_geometry(geometry: Optional[LineGeometry]) -> Tuple[float, float, float, float, float]:
    if geometry is None:
        raise GeometryError("line has no geometry")
    try:
        values = tuple(
            float(geometry[key])  # type: ignore[literal-required]
            for key in ("center_x", "center_y", "width", "height", "rotation_z")
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise GeometryError(f"malformed geometry {geometry!r}") from exc
    if not all(math.isfinite(v) for v in values):
        raise GeometryError(f"non-finite geometry {geometry!r}")
    cx, cy, w, h, rotation = values
    if w < 0 or h < 0:
        raise GeometryError(f"negative size in geometry {geometry!r}")
    return cx, cy, w, h, rotation


def resolve_line(
    line: RawLine, chunk_width: int, chunk_height: int
) -> Tuple[BoundingBox, Orientation]:
    """Return the chunk-pixel AABB of a recognized line and its orientation."""
    cx, cy, w, h, rotation = _checked_geometry(line.get("geometry"))
    corners = _rotated_corners(
        cx * chunk_width, cy * chunk_height, w * chunk_width, h * chunk_height, rotation
    )
    xs = [p[0] for p in corners]
    ys = [p[1] for p in corners]
    min_x, max_x = min(xs), max(xs)
    min_y, max_y = min(ys), max(ys)
    box = BoundingBox(x=min_x, y=min_y, width=max_x - min_x, height=max_y - min_y)
    return box, classify_orientation(rotation, box.width, box.height)


def build_line_result(line: RawLine, chunk_width: int, chunk_height: int) -> Optional[OcrResult]:
    """Resolve one recognized line; returns None when its text is blank.

    Raises GeometryError when the line cannot be placed.
    """
    text = normalize_text(line.get("text") or "")
    if not text.strip():
        return None
    box, orientation = resolve_line(line, chunk_width, chunk_height)
    return OcrResult(
        text=text,
        tight_bounding_box=box,
        is_merged=False,
        forced_orientation=orientation,
    )


__all__ = ["classify_orientation", "resolve_line", "build_line_result"]
