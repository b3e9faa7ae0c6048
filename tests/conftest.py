"""Shared fixtures for the OCR server tests."""

from __future__ import annotations

import io
from typing import Callable, List, Optional, Sequence, Tuple

import pytest
from PIL import Image

from ocr_server.models import BoundingBox, OcrResult
from ocr_server.types import Orientation, RawLine


def _png_bytes(width: int, height: int, mode: str = "RGB", color: object = "white") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeRecognizer:
    """Returns scripted lines per call and records the size of every submitted chunk."""

    def __init__(self, responses: Sequence[List[RawLine]] = (), error: Optional[Exception] = None) -> None:
        self._responses = list(responses)
        self._error = error
        self.calls: List[Tuple[int, int]] = []
        self.hints: List[Optional[str]] = []

    async def recognize(self, png_bytes: bytes, language_hint: Optional[str] = None) -> List[RawLine]:
        with Image.open(io.BytesIO(png_bytes)) as im:
            self.calls.append(im.size)
        self.hints.append(language_hint)
        if self._error is not None:
            raise self._error
        index = len(self.calls) - 1
        if index < len(self._responses):
            return self._responses[index]
        return []


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    """Factory for PNG-encoded solid images."""
    return _png_bytes


@pytest.fixture
def fake_recognizer() -> Callable[..., FakeRecognizer]:
    return FakeRecognizer


@pytest.fixture
def raw_line() -> Callable[..., RawLine]:
    """Factory for recognizer lines with normalized rotated geometry."""

    def _make(
        text: str,
        center_x: float,
        center_y: float,
        width: float,
        height: float,
        rotation: float = 0.0,
    ) -> RawLine:
        return {
            "text": text,
            "geometry": {
                "center_x": center_x,
                "center_y": center_y,
                "width": width,
                "height": height,
                "rotation_z": rotation,
            },
        }

    return _make


@pytest.fixture
def line() -> Callable[..., OcrResult]:
    """Factory for resolved, unmerged lines in chunk pixels."""

    def _make(
        text: str,
        x: float,
        y: float,
        width: float,
        height: float,
        orientation: Orientation = "vertical",
    ) -> OcrResult:
        return OcrResult(
            text=text,
            tight_bounding_box=BoundingBox(x=x, y=y, width=width, height=height),
            is_merged=False,
            forced_orientation=orientation,
        )

    return _make
