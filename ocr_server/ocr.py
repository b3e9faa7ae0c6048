"""Text recognizer interface and its Google Cloud Vision implementation."""

from __future__ import annotations

import asyncio
import io
import logging
import math
from typing import Any, Iterable, List, Optional, Protocol, Sequence, Tuple, cast

from PIL import Image

from .errors import RecognitionError
from .types import LineGeometry, Point, RawLine

try:  # pragma: no cover - optional dependency
    from google.api_core import exceptions as _api_exceptions  # type: ignore[import]
    from google.cloud import vision as _vision  # type: ignore[import]
except ImportError:  # pragma: no cover - optional dependency
    _api_exceptions = None
    _vision = None

vision = cast(Any | None, _vision)

logger = logging.getLogger(__name__)


class Recognizer(Protocol):
    async def recognize(self, png_bytes: bytes, language_hint: Optional[str] = None) -> List[RawLine]:
        """Return recognized lines with geometry normalized to the submitted image."""
        ...


def geometry_from_quad(quad: Sequence[Point], width: int, height: int) -> Optional[LineGeometry]:
    """Describe a text quadrilateral as a normalized rotated rectangle.

    Vertices follow the text direction, so the first edge gives the line's
    rotation and length and the second edge its thickness.
    """
    if len(quad) != 4 or width < 1 or height < 1:
        return None
    (x0, y0), (x1, y1), (x2, y2), _ = quad
    cx = sum(p[0] for p in quad) / 4.0
    cy = sum(p[1] for p in quad) / 4.0
    return {
        "center_x": cx / width,
        "center_y": cy / height,
        "width": math.hypot(x1 - x0, y1 - y0) / width,
        "height": math.hypot(x2 - x1, y2 - y1) / height,
        "rotation_z": math.atan2(y1 - y0, x1 - x0),
    }


def _vertices(bounding_box: Any) -> List[Point]:
    vertices: Iterable[Any] = getattr(bounding_box, "vertices", [])
    return [(float(getattr(v, "x", 0)), float(getattr(v, "y", 0))) for v in vertices]


def lines_from_annotation(annotation: Any, width: int, height: int) -> List[RawLine]:
    """Flatten a Vision ``full_text_annotation`` into one line per paragraph."""
    lines: List[RawLine] = []
    for page in getattr(annotation, "pages", []):
        for block in getattr(page, "blocks", []):
            for paragraph in getattr(block, "paragraphs", []):
                words: List[str] = []
                for word in getattr(paragraph, "words", []):
                    symbols: Iterable[Any] = getattr(word, "symbols", [])
                    words.append("".join(str(getattr(symbol, "text", "")) for symbol in symbols))
                quad = _vertices(getattr(paragraph, "bounding_box", None))
                lines.append(
                    {
                        "text": " ".join(w for w in words if w),
                        "geometry": geometry_from_quad(quad, width, height),
                    }
                )
    return lines


def _image_size(png_bytes: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(png_bytes)) as im:
        return im.size


class VisionRecognizer:
    """Runs Vision ``document_text_detection`` off the event loop."""

    def __init__(self, client: Any | None = None) -> None:
        if client is None:
            if vision is None:
                raise RecognitionError("google-cloud-vision not installed")
            client = vision.ImageAnnotatorClient()
        self._client = client

    def _recognize_sync(self, png_bytes: bytes, language_hint: Optional[str]) -> List[RawLine]:
        width, height = _image_size(png_bytes)
        image_context: Any | None = None
        if vision is not None:
            image: Any = vision.Image(content=png_bytes)
            if language_hint:
                image_context = vision.ImageContext(language_hints=[language_hint])
        else:
            image = {"content": png_bytes}
            if language_hint:
                image_context = {"language_hints": [language_hint]}

        api_errors: Tuple[type, ...] = ()
        if _api_exceptions is not None:
            api_errors = (_api_exceptions.GoogleAPIError,)
        try:
            response: Any = self._client.document_text_detection(image=image, image_context=image_context)
        except api_errors as exc:
            raise RecognitionError(f"Vision request failed: {exc}") from exc

        error_message = getattr(getattr(response, "error", None), "message", "")
        if error_message:
            raise RecognitionError(f"Vision returned an error: {error_message}")

        lines = lines_from_annotation(getattr(response, "full_text_annotation", None), width, height)
        logger.debug("Vision recognized %d line(s) in %dx%d image", len(lines), width, height)
        return lines

    async def recognize(self, png_bytes: bytes, language_hint: Optional[str] = None) -> List[RawLine]:
        return await asyncio.to_thread(self._recognize_sync, png_bytes, language_hint)


__all__ = [
    "Recognizer",
    "VisionRecognizer",
    "geometry_from_quad",
    "lines_from_annotation",
]
