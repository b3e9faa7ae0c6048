"""Typed structures for data exchanged with the text recognizer."""

from __future__ import annotations

from typing import Literal, Optional, Tuple, TypedDict

Point = Tuple[float, float]
Orientation = Literal["vertical", "horizontal"]


class LineGeometry(TypedDict):
    """Rotated rectangle of a recognized line, normalized to the submitted image."""

    center_x: float
    center_y: float
    width: float
    height: float
    rotation_z: float


class RawLine(TypedDict):
    """Single recognized text line; lines without geometry carry no placement."""

    text: str
    geometry: Optional[LineGeometry]


__all__ = ["Point", "Orientation", "LineGeometry", "RawLine"]
